from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event
from sqlalchemy.orm.exc import StaleDataError

from app.models import Playlist
from app.services import playlist_hooks
from app.services.playlist_aggregates import SessionTrackDurationLookup


class CountingLookup(SessionTrackDurationLookup):
    calls: list[list[str]] = []

    def __call__(self, track_ids):
        CountingLookup.calls.append(list(track_ids))
        return super().__call__(track_ids)


@pytest.fixture
def counting_lookup(monkeypatch):
    CountingLookup.calls = []
    monkeypatch.setattr(playlist_hooks, "SessionTrackDurationLookup", CountingLookup)
    return CountingLookup


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def test_new_playlist_gets_aggregates_on_insert(make_track, make_playlist) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)

    playlist = make_playlist(tracks=[track_a, track_b])

    assert playlist.track_count == 2
    assert playlist.total_duration == 400
    assert playlist.version == 1


def test_removing_a_track_recomputes_on_commit(db, make_track, make_playlist) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)
    playlist = make_playlist(tracks=[track_a, track_b])

    playlist.tracks = [str(track_a.id)]
    db.commit()

    assert playlist.track_count == 1
    assert playlist.total_duration == 180
    assert playlist.version == 2


def test_in_place_append_is_detected(db, make_track, make_playlist) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)
    playlist = make_playlist(tracks=[track_a])

    playlist.tracks.append(str(track_b.id))
    db.commit()

    assert playlist.track_count == 2
    assert playlist.total_duration == 400


def test_track_without_duration_contributes_zero(make_track, make_playlist) -> None:
    silent = make_track("Untimed", None)

    playlist = make_playlist(tracks=[silent])

    assert playlist.track_count == 1
    assert playlist.total_duration == 0


def test_metadata_only_save_skips_duration_lookup(
    db, make_track, make_playlist, counting_lookup
) -> None:
    track_a = make_track("A", 180)
    playlist = make_playlist(tracks=[track_a])
    counting_lookup.calls = []
    previous_activity = _as_utc(playlist.last_activity)

    playlist.name = "Renamed"
    db.commit()

    assert counting_lookup.calls == []
    assert playlist.track_count == 1
    assert playlist.total_duration == 180
    assert _as_utc(playlist.last_activity) >= previous_activity


def test_track_change_issues_a_single_batched_lookup(
    db, make_track, make_playlist, counting_lookup
) -> None:
    tracks = [make_track(f"T{index}", 60) for index in range(5)]
    playlist = make_playlist(tracks=[])
    counting_lookup.calls = []

    playlist.tracks = [str(track.id) for track in tracks]
    db.commit()

    assert len(counting_lookup.calls) == 1
    assert playlist.total_duration == 300


def test_direct_aggregate_writes_are_discarded(db, make_track, make_playlist) -> None:
    track_a = make_track("A", 180)
    playlist = make_playlist(tracks=[track_a])

    playlist.track_count = 99
    playlist.total_duration = 5
    db.commit()
    db.refresh(playlist)

    assert playlist.track_count == 1
    assert playlist.total_duration == 180


def test_lookup_failure_aborts_the_save(
    db, session_factory, make_track, make_playlist, monkeypatch
) -> None:
    track_a = make_track("A", 180)
    track_b = make_track("B", 220)
    playlist = make_playlist(tracks=[track_a])

    def _unavailable(self, track_ids):
        raise RuntimeError("track store unavailable")

    monkeypatch.setattr(SessionTrackDurationLookup, "__call__", _unavailable)
    playlist.tracks = [str(track_a.id), str(track_b.id)]
    with pytest.raises(RuntimeError):
        db.commit()
    db.rollback()

    with session_factory() as fresh:
        stored = fresh.get(Playlist, playlist.id)
        assert stored.tracks == [str(track_a.id)]
        assert stored.track_count == 1
        assert stored.total_duration == 180


def test_last_activity_is_monotonic_across_saves(db, make_playlist) -> None:
    playlist = make_playlist()
    seen = [_as_utc(playlist.last_activity)]

    for name in ("One", "Two", "Three"):
        playlist.name = name
        db.commit()
        seen.append(_as_utc(playlist.last_activity))

    assert seen == sorted(seen)


def test_concurrent_writer_is_rejected(session_factory, make_playlist) -> None:
    playlist = make_playlist()

    with session_factory() as first, session_factory() as second:
        mine = first.get(Playlist, playlist.id)
        theirs = second.get(Playlist, playlist.id)

        mine.name = "First writer"
        first.commit()

        theirs.name = "Second writer"
        with pytest.raises(StaleDataError):
            second.commit()
        second.rollback()

    with session_factory() as fresh:
        assert fresh.get(Playlist, playlist.id).name == "First writer"


def test_hooks_install_once(session_factory) -> None:
    playlist_hooks.install_playlist_hooks(session_factory)
    playlist_hooks.install_playlist_hooks(session_factory)

    assert event.contains(
        session_factory, "before_flush", playlist_hooks.reconcile_pending_playlists
    )


def test_backwards_activity_write_is_discarded(db, session_factory, make_playlist) -> None:
    playlist = make_playlist()
    before = _as_utc(playlist.last_activity)

    playlist.last_activity = before - timedelta(days=30)
    db.commit()

    with session_factory() as fresh:
        stored = fresh.get(Playlist, playlist.id)
        assert _as_utc(stored.last_activity) == before
        assert _as_utc(stored.last_modified) >= before


def test_backwards_write_to_unloaded_activity_is_discarded(
    db, session_factory, make_playlist
) -> None:
    playlist = make_playlist()
    before = _as_utc(playlist.last_activity)
    db.expire(playlist, ["last_activity"])

    playlist.last_activity = before - timedelta(days=30)
    db.commit()

    with session_factory() as fresh:
        assert _as_utc(fresh.get(Playlist, playlist.id).last_activity) == before


def test_backwards_activity_write_alongside_an_edit_still_moves_forward(
    db, session_factory, make_playlist
) -> None:
    playlist = make_playlist()
    before = _as_utc(playlist.last_activity)

    playlist.name = "Renamed"
    playlist.last_activity = before - timedelta(days=30)
    db.commit()

    with session_factory() as fresh:
        stored = fresh.get(Playlist, playlist.id)
        assert stored.name == "Renamed"
        assert _as_utc(stored.last_activity) >= before
