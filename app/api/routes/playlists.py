from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user, get_optional_user
from app.core.config import FEATURED_PLAYLISTS_LIMIT, PLAYLISTS_PAGE_SIZE
from app.core.db import get_db
from app.models.user import User
from app.schemas.playlist import (
    PlaylistCategory,
    PlaylistCreate,
    PlaylistOut,
    PlaylistPage,
    PlaylistPrivacy,
    PlaylistPublish,
    PlaylistStatsOut,
    PlaylistTrackPage,
    PlaylistUpdate,
    QuickPlaylistOut,
    TrackOrderUpdate,
)
from app.services import playlists as playlist_service

router = APIRouter(tags=["playlists"])


@router.get("", response_model=PlaylistPage)
def get_playlists(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    search: str | None = None,
    category: PlaylistCategory | None = None,
    db: Session = Depends(get_db),
):
    return playlist_service.list_playlists(
        db,
        page=page,
        limit=limit,
        search=search,
        category=category,
        privacy="public",
    )


@router.post("", response_model=PlaylistOut, status_code=status.HTTP_201_CREATED)
def add_playlist(
    payload: PlaylistCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return playlist_service.create_playlist(db, user, payload)


@router.post("/quick", response_model=QuickPlaylistOut, status_code=status.HTTP_201_CREATED)
def add_quick_playlist(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.create_quick_playlist(db, user)
    return QuickPlaylistOut(id=playlist.id, name=playlist.name, is_draft=playlist.is_draft)


@router.get("/featured", response_model=list[PlaylistOut])
def get_featured_playlists(
    limit: int = Query(default=FEATURED_PLAYLISTS_LIMIT, ge=1),
    db: Session = Depends(get_db),
):
    result = playlist_service.list_playlists(
        db, page=1, limit=limit, category="featured", privacy="public"
    )
    return result["items"]


@router.get("/category/{category}", response_model=PlaylistPage)
def get_playlists_by_category(
    category: PlaylistCategory,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return playlist_service.list_playlists(
        db, page=page, limit=limit, category=category, privacy="public"
    )


@router.get("/user/{user_id}", response_model=PlaylistPage)
def get_user_playlists(
    user_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    privacy: PlaylistPrivacy | None = None,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return playlist_service.list_user_playlists(
        db, user_id, viewer, page=page, limit=limit, privacy=privacy
    )


@router.get("/tag/{tag}", response_model=PlaylistPage)
def get_playlists_by_tag(
    tag: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return playlist_service.list_playlists_by_tag(db, tag, page=page, limit=limit)

@router.get("/{playlist_id}", response_model=PlaylistOut)
def get_playlist(
    playlist_id: UUID,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return playlist_service.get_visible_playlist(db, playlist_id, viewer)


@router.put("/{playlist_id}", response_model=PlaylistOut)
def update_playlist(
    playlist_id: UUID,
    payload: PlaylistUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    return playlist_service.update_playlist(db, playlist, payload)


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    playlist_service.delete_playlist(db, playlist)
    return {"ok": True, "deleted_playlist_id": str(playlist_id)}


@router.get("/{playlist_id}/statistics", response_model=PlaylistStatsOut)
def get_playlist_statistics(
    playlist_id: UUID,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    playlist = playlist_service.get_visible_playlist(db, playlist_id, viewer)
    return playlist_service.get_playlist_stats(playlist)


@router.get("/{playlist_id}/tracks", response_model=PlaylistTrackPage)
def get_playlist_tracks(
    playlist_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    playlist = playlist_service.get_visible_playlist(db, playlist_id, viewer)
    return playlist_service.list_playlist_tracks(db, playlist, page=page, limit=limit)

@router.post("/{playlist_id}/publish", response_model=PlaylistOut)
def publish_playlist(
    playlist_id: UUID,
    payload: PlaylistPublish | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    privacy = payload.privacy if payload else "public"
    return playlist_service.publish_playlist(db, playlist, privacy=privacy)


@router.put("/{playlist_id}/tracks/order", response_model=PlaylistOut)
def update_track_order(
    playlist_id: UUID,
    payload: TrackOrderUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    return playlist_service.reorder_tracks(
        db,
        playlist,
        payload.track_ids,
        skip_validation=payload.skip_validation,
        expected_version=payload.version,
    )


@router.post("/{playlist_id}/tracks/{track_id}", response_model=PlaylistOut)
def add_track_to_playlist(
    playlist_id: UUID,
    track_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    return playlist_service.add_track(db, playlist, track_id)


@router.delete("/{playlist_id}/tracks/{track_id}", response_model=PlaylistOut)
def remove_track_from_playlist(
    playlist_id: UUID,
    track_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    playlist = playlist_service.get_editable_playlist(db, playlist_id, user)
    return playlist_service.remove_track(db, playlist, track_id)
