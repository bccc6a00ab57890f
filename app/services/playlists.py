from __future__ import annotations

import json
import logging
import math
import re
import uuid
from collections.abc import Iterable

from fastapi import HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import (
    PLAYLISTS_MAX_PAGE_SIZE,
    PLAYLISTS_PAGE_SIZE,
    QUICK_PLAYLIST_BASE_NAME,
)
from app.models.playlist import Playlist
from app.models.user import User
from app.repositories import playlists as playlist_repo
from app.repositories.tracks import get_existing_track_ids, get_track_by_id, get_tracks_by_ids
from app.repositories.users import get_user_by_id
from app.schemas.playlist import PlaylistCreate, PlaylistUpdate

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "category", "privacy", "is_draft")


def parse_tags(tags: list[str] | str | None) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        try:
            parsed = json.loads(tags)
        except ValueError:
            parsed = tags.split(",")
        tags = parsed if isinstance(parsed, list) else [str(parsed)]
    cleaned: list[str] = []
    for entry in tags:
        value = str(entry or "").strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def normalize_track_ids(track_ids: Iterable[uuid.UUID | str]) -> list[str]:
    return [str(track_id) for track_id in track_ids]


def can_edit(playlist: Playlist, user: User | None) -> bool:
    if user is None:
        return False
    if user.is_admin:
        return True
    return playlist.owner_id == user.id


def can_view(playlist: Playlist, viewer: User | None) -> bool:
    if playlist.privacy != "private":
        return True
    return can_edit(playlist, viewer)


def ensure_can_edit(playlist: Playlist, user: User) -> None:
    if not can_edit(playlist, user):
        raise HTTPException(
            status_code=403, detail="You don't have permission to edit this playlist."
        )


def ensure_version(playlist: Playlist, expected_version: int | None) -> None:
    if expected_version is None or expected_version == playlist.version:
        return
    raise HTTPException(
        status_code=409,
        detail={
            "message": "Playlist was modified by another request.",
            "expected_version": expected_version,
            "current_version": playlist.version,
        },
    )


def _ensure_tracks_exist(db: Session, track_ids: list[str]) -> None:
    if not track_ids:
        return
    found = get_existing_track_ids(db, [uuid.UUID(track_id) for track_id in track_ids])
    existing = {str(track_id) for track_id in found}
    missing = [track_id for track_id in dict.fromkeys(track_ids) if track_id not in existing]
    if missing:
        raise HTTPException(
            status_code=404,
            detail={"message": "Track not found.", "track_ids": missing},
        )


def _commit(db: Session, playlist: Playlist) -> Playlist:
    try:
        return playlist_repo.save_playlist(db, playlist)
    except StaleDataError as exc:
        logger.warning("Concurrent playlist update rejected playlist_id=%s", playlist.id)
        raise HTTPException(
            status_code=409, detail="Playlist was modified by another request."
        ) from exc


def _assign(playlist: Playlist, field: str, value) -> None:
    try:
        setattr(playlist, field, value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def get_playlist_or_404(db: Session, playlist_id: uuid.UUID) -> Playlist:
    playlist = playlist_repo.get_playlist_by_id(db, playlist_id)
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found.")
    return playlist


def get_visible_playlist(db: Session, playlist_id: uuid.UUID, viewer: User | None) -> Playlist:
    playlist = get_playlist_or_404(db, playlist_id)
    if not can_view(playlist, viewer):
        raise HTTPException(status_code=403, detail="Access denied to this playlist.")
    return playlist


def get_editable_playlist(db: Session, playlist_id: uuid.UUID, user: User) -> Playlist:
    playlist = get_playlist_or_404(db, playlist_id)
    ensure_can_edit(playlist, user)
    return playlist


def create_playlist(db: Session, owner: User, payload: PlaylistCreate) -> Playlist:
    track_ids = normalize_track_ids(payload.tracks or [])
    _ensure_tracks_exist(db, track_ids)

    playlist = Playlist(owner_id=owner.id, tracks=track_ids, tags=parse_tags(payload.tags))
    for field in EDITABLE_FIELDS:
        _assign(playlist, field, getattr(payload, field))

    playlist = _commit(db, playlist)
    logger.info(
        "Playlist created playlist_id=%s owner_id=%s draft=%s tracks=%s",
        playlist.id,
        owner.id,
        playlist.is_draft,
        playlist.track_count,
    )
    return playlist


def generate_unique_playlist_name(
    db: Session,
    owner_id: uuid.UUID,
    base_name: str = QUICK_PLAYLIST_BASE_NAME,
) -> str:
    names = playlist_repo.list_owner_playlist_names(db, owner_id, base_name)
    pattern = re.compile(rf"^{re.escape(base_name)}\s*(?:#?(\d+))?$", re.IGNORECASE)
    numbers: list[int] = []
    for name in names:
        match = pattern.match(name.strip())
        if match:
            numbers.append(int(match.group(1) or 0))
    if not numbers:
        return base_name
    return f"{base_name} #{max(numbers) + 1}"


def create_quick_playlist(db: Session, owner: User) -> Playlist:
    payload = PlaylistCreate(
        name=generate_unique_playlist_name(db, owner.id),
        description="",
        tracks=[],
        tags=[],
        category="user",
        privacy="private",
        is_draft=True,
    )
    return create_playlist(db, owner, payload)


def create_platform_playlist(
    db: Session, admin: User, payload: PlaylistCreate, *, publish: bool = False
) -> Playlist:
    platform_payload = payload.model_copy(
        update={"category": "featured", "privacy": "public", "is_draft": not publish}
    )
    return create_playlist(db, admin, platform_payload)


def update_playlist(db: Session, playlist: Playlist, payload: PlaylistUpdate) -> Playlist:
    ensure_version(playlist, payload.version)
    updates = payload.model_dump(exclude_unset=True, exclude={"version", "tracks", "tags"})

    for field, value in updates.items():
        if field in EDITABLE_FIELDS and value is not None:
            _assign(playlist, field, value)
    if "description" in updates and updates["description"] is None:
        playlist.description = None
    if payload.tags is not None:
        playlist.tags = parse_tags(payload.tags)
    if payload.tracks is not None:
        track_ids = normalize_track_ids(payload.tracks)
        _ensure_tracks_exist(db, track_ids)
        playlist.tracks = track_ids

    playlist = _commit(db, playlist)
    logger.info("Playlist updated playlist_id=%s version=%s", playlist.id, playlist.version)
    return playlist


def delete_playlist(db: Session, playlist: Playlist) -> None:
    playlist_id = playlist.id
    try:
        playlist_repo.delete_playlist(db, playlist)
    except StaleDataError as exc:
        raise HTTPException(
            status_code=409, detail="Playlist was modified by another request."
        ) from exc
    logger.info("Playlist deleted playlist_id=%s", playlist_id)


def add_track(db: Session, playlist: Playlist, track_id: uuid.UUID) -> Playlist:
    if get_track_by_id(db, track_id) is None:
        raise HTTPException(status_code=404, detail="Track not found.")
    key = str(track_id)
    if key in playlist.tracks:
        raise HTTPException(status_code=409, detail="Track is already in this playlist.")
    playlist.tracks.append(key)
    return _commit(db, playlist)


def remove_track(db: Session, playlist: Playlist, track_id: uuid.UUID) -> Playlist:
    key = str(track_id)
    if key not in playlist.tracks:
        raise HTTPException(status_code=404, detail="Track is not in this playlist.")
    playlist.tracks = [entry for entry in playlist.tracks if entry != key]
    return _commit(db, playlist)


def reorder_tracks(
    db: Session,
    playlist: Playlist,
    track_ids: Iterable[uuid.UUID],
    *,
    skip_validation: bool = False,
    expected_version: int | None = None,
) -> Playlist:
    ensure_version(playlist, expected_version)
    ordered = normalize_track_ids(track_ids)
    if not skip_validation:
        current = set(playlist.tracks)
        if any(track_id not in current for track_id in ordered):
            raise HTTPException(
                status_code=400, detail="Some track IDs are not part of this playlist."
            )
    playlist.tracks = ordered
    return _commit(db, playlist)


def publish_playlist(db: Session, playlist: Playlist, *, privacy: str = "public") -> Playlist:
    playlist.is_draft = False
    _assign(playlist, "privacy", privacy)
    playlist = _commit(db, playlist)
    logger.info("Playlist published playlist_id=%s privacy=%s", playlist.id, privacy)
    return playlist


def publish_platform_playlist(db: Session, playlist: Playlist) -> Playlist:
    if playlist.category != "featured":
        raise HTTPException(status_code=400, detail="Only platform playlists can be published.")
    if not playlist.is_draft:
        raise HTTPException(status_code=400, detail="Playlist is already published.")
    if not (playlist.name or "").strip():
        raise HTTPException(status_code=400, detail="Playlist name is required for publishing.")
    if not playlist.tracks:
        raise HTTPException(
            status_code=400,
            detail="Playlist must have at least one track to be published.",
        )
    return publish_playlist(db, playlist, privacy="public")


def get_playlist_stats(playlist: Playlist) -> dict:
    return {
        "track_count": playlist.track_count,
        "total_duration": playlist.total_duration,
        "like_count": playlist.like_count,
        "created_at": playlist.created_at,
        "updated_at": playlist.updated_at,
    }


def _page_bounds(page: int, limit: int) -> tuple[int, int]:
    return max(page, 1), min(max(limit, 1), PLAYLISTS_MAX_PAGE_SIZE)


def list_playlists(
    db: Session,
    *,
    page: int = 1,
    limit: int = PLAYLISTS_PAGE_SIZE,
    search: str | None = None,
    category: str | None = None,
    privacy: str | None = None,
    owner_id: uuid.UUID | None = None,
    tag: str | None = None,
    include_drafts: bool = False,
    drafts_only: bool = False,
) -> dict:
    page, limit = _page_bounds(page, limit)
    items, total = playlist_repo.list_playlists(
        db,
        offset=(page - 1) * limit,
        limit=limit,
        search=search,
        category=category,
        privacy=privacy,
        owner_id=owner_id,
        tag=tag,
        include_drafts=include_drafts,
        drafts_only=drafts_only,
    )
    return {
        "items": items,
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def list_user_playlists(
    db: Session,
    user_id: uuid.UUID,
    viewer: User | None,
    *,
    page: int = 1,
    limit: int = PLAYLISTS_PAGE_SIZE,
    privacy: str | None = None,
) -> dict:
    """List one user's playlists.

    The owner (and admins) also see private playlists and drafts; everyone
    else only sees the user's published public playlists.
    """
    owner = get_user_by_id(db, user_id)
    if owner is None:
        raise HTTPException(status_code=404, detail="User not found.")
    if viewer is not None and (viewer.is_admin or viewer.id == owner.id):
        return list_playlists(
            db, page=page, limit=limit, privacy=privacy, owner_id=owner.id, include_drafts=True
        )
    if privacy not in (None, "public"):
        raise HTTPException(status_code=403, detail="Access denied to these playlists.")
    return list_playlists(db, page=page, limit=limit, privacy="public", owner_id=owner.id)


def list_playlists_by_tag(
    db: Session, tag: str, *, page: int = 1, limit: int = PLAYLISTS_PAGE_SIZE
) -> dict:
    tag = tag.strip()
    if not tag:
        raise HTTPException(status_code=400, detail="Tag is required.")
    return list_playlists(db, page=page, limit=limit, privacy="public", tag=tag)


def list_playlist_tracks(
    db: Session, playlist: Playlist, *, page: int = 1, limit: int = PLAYLISTS_PAGE_SIZE
) -> dict:
    """Page through a playlist's tracks in playlist order.

    Entries that no longer resolve to a stored track are left out.
    """
    page, limit = _page_bounds(page, limit)
    entries = [str(track_id) for track_id in (playlist.tracks or [])]
    known = {str(track_id) for track_id in get_existing_track_ids(db, _parse_uuids(entries))}
    ordered = [track_id for track_id in entries if track_id in known]

    window = ordered[(page - 1) * limit : page * limit]
    tracks = {str(track.id): track for track in get_tracks_by_ids(db, _parse_uuids(window))}
    total = len(ordered)
    return {
        "items": [tracks[track_id] for track_id in window if track_id in tracks],
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def _parse_uuids(values: Iterable[str]) -> list[uuid.UUID]:
    parsed: list[uuid.UUID] = []
    for value in values:
        try:
            parsed.append(uuid.UUID(value))
        except ValueError:
            continue
    return parsed
