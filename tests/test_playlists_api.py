from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from app.core.db import get_db
from app.main import app
from app.models import User


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def _headers(user) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_create_requires_a_known_user(client) -> None:
    assert client.post("/api/playlists", json={"name": "x"}).status_code == 401
    response = client.post(
        "/api/playlists",
        json={"name": "x"},
        headers={"X-User-Id": "00000000-0000-0000-0000-000000000042"},
    )
    assert response.status_code == 401


def test_track_membership_round_trip_keeps_aggregates(client, owner, make_track) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)

    created = client.post("/api/playlists", json={"name": "Road trip"}, headers=_headers(owner))
    assert created.status_code == 201
    playlist_id = created.json()["id"]
    assert created.json()["track_count"] == 0

    client.post(f"/api/playlists/{playlist_id}/tracks/{track_a.id}", headers=_headers(owner))
    added = client.post(
        f"/api/playlists/{playlist_id}/tracks/{track_b.id}", headers=_headers(owner)
    )
    assert added.status_code == 200
    assert added.json()["track_count"] == 2
    assert added.json()["total_duration"] == 400

    removed = client.delete(
        f"/api/playlists/{playlist_id}/tracks/{track_b.id}", headers=_headers(owner)
    )
    assert removed.json()["track_count"] == 1
    assert removed.json()["total_duration"] == 180

    stats = client.get(f"/api/playlists/{playlist_id}/statistics")
    assert stats.status_code == 200
    assert stats.json()["track_count"] == 1
    assert stats.json()["total_duration"] == 180


def test_update_with_stale_version_returns_conflict(client, owner) -> None:
    created = client.post("/api/playlists", json={"name": "v1"}, headers=_headers(owner)).json()

    first = client.put(
        f"/api/playlists/{created['id']}",
        json={"name": "v2", "version": created["version"]},
        headers=_headers(owner),
    )
    second = client.put(
        f"/api/playlists/{created['id']}",
        json={"name": "v2b", "version": created["version"]},
        headers=_headers(owner),
    )

    assert first.status_code == 200
    assert first.json()["version"] == created["version"] + 1
    assert second.status_code == 409


def test_other_users_cannot_edit(client, db, owner) -> None:
    stranger = User(name="Stranger")
    db.add(stranger)
    db.commit()
    created = client.post("/api/playlists", json={"name": "Mine"}, headers=_headers(owner)).json()

    response = client.put(
        f"/api/playlists/{created['id']}", json={"name": "Theirs"}, headers=_headers(stranger)
    )

    assert response.status_code == 403


def test_quick_playlist_then_publish(client, owner) -> None:
    quick = client.post("/api/playlists/quick", headers=_headers(owner))
    assert quick.status_code == 201
    assert quick.json()["is_draft"] is True
    assert quick.json()["name"] == "My Playlist"

    second = client.post("/api/playlists/quick", headers=_headers(owner)).json()
    assert second["name"] == "My Playlist #1"

    published = client.post(
        f"/api/playlists/{quick.json()['id']}/publish",
        json={"privacy": "unlisted"},
        headers=_headers(owner),
    )
    assert published.status_code == 200
    assert published.json()["is_draft"] is False
    assert published.json()["privacy"] == "unlisted"


def test_cleanup_endpoint_is_admin_only(client, owner, admin, make_playlist, backdate_activity) -> None:
    draft = make_playlist("Forgotten", is_draft=True)
    backdate_activity(draft, days_ago=10)

    forbidden = client.post("/api/admin/playlists/cleanup-drafts", headers=_headers(owner))
    assert forbidden.status_code == 403

    response = client.post(
        "/api/admin/playlists/cleanup-drafts?days_old=7", headers=_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 1
    assert response.json()["deleted_ids"] == [str(draft.id)]

    again = client.post("/api/admin/playlists/cleanup-drafts?days_old=7", headers=_headers(admin))
    assert again.json()["deleted_count"] == 0


def test_platform_playlist_lifecycle(client, admin, make_track) -> None:
    track = make_track("A", 200)

    created = client.post(
        "/api/admin/playlists/platform",
        json={"name": "Editorial picks", "tracks": [str(track.id)]},
        headers=_headers(admin),
    )
    assert created.status_code == 201
    body = created.json()
    assert body["category"] == "featured"
    assert body["is_draft"] is True
    assert body["total_duration"] == 200

    drafts = client.get("/api/admin/playlists/platform/drafts", headers=_headers(admin))
    assert [item["id"] for item in drafts.json()["items"]] == [body["id"]]

    published = client.post(
        f"/api/admin/playlists/platform/{body['id']}/publish", headers=_headers(admin)
    )
    assert published.status_code == 200
    assert published.json()["is_draft"] is False

    featured = client.get("/api/playlists/featured")
    assert [item["id"] for item in featured.json()] == [body["id"]]


def test_user_can_find_their_quick_drafts(client, db, owner) -> None:
    quick = client.post("/api/playlists/quick", headers=_headers(owner)).json()
    stranger = User(name="Stranger")
    db.add(stranger)
    db.commit()

    own = client.get(f"/api/playlists/user/{owner.id}", headers=_headers(owner))
    theirs = client.get(f"/api/playlists/user/{owner.id}", headers=_headers(stranger))

    assert own.status_code == 200
    assert [item["id"] for item in own.json()["items"]] == [quick["id"]]
    assert theirs.json()["items"] == []
    assert client.get(f"/api/playlists/user/{uuid.uuid4()}").status_code == 404


def test_tag_and_track_listing(client, owner, make_track) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)
    created = client.post(
        "/api/playlists",
        json={
            "name": "Lazy Sunday",
            "tags": "chill, rock",
            "tracks": [str(track_b.id), str(track_a.id)],
        },
        headers=_headers(owner),
    ).json()

    tagged = client.get("/api/playlists/tag/rock")
    tracks = client.get(f"/api/playlists/{created['id']}/tracks", params={"limit": 1})

    assert [item["id"] for item in tagged.json()["items"]] == [created["id"]]
    assert tracks.status_code == 200
    assert tracks.json()["total"] == 2
    assert tracks.json()["pages"] == 2
    assert [item["name"] for item in tracks.json()["items"]] == ["B"]
