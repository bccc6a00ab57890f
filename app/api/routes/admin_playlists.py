import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth import require_admin
from app.core.config import DRAFT_CLEANUP_DAYS, PLAYLISTS_PAGE_SIZE
from app.core.db import get_db
from app.models.user import User
from app.schemas.playlist import DraftCleanupOut, PlaylistCreate, PlaylistOut, PlaylistPage
from app.services import playlists as playlist_service
from app.services.draft_cleanup import cleanup_old_drafts

router = APIRouter(tags=["admin-playlists"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.get("/platform", response_model=PlaylistPage)
def get_platform_playlists(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    search: str | None = None,
    db: Session = Depends(get_db),
):
    return playlist_service.list_playlists(
        db,
        page=page,
        limit=limit,
        search=search,
        category="featured",
        privacy="public",
        include_drafts=True,
    )


@router.get("/platform/drafts", response_model=PlaylistPage)
def get_platform_drafts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PLAYLISTS_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return playlist_service.list_playlists(
        db,
        page=page,
        limit=limit,
        category="featured",
        privacy="public",
        drafts_only=True,
    )


@router.post("/platform", response_model=PlaylistOut, status_code=status.HTTP_201_CREATED)
def add_platform_playlist(
    payload: PlaylistCreate,
    publish: bool = False,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return playlist_service.create_platform_playlist(db, admin, payload, publish=publish)


@router.post("/platform/{playlist_id}/publish", response_model=PlaylistOut)
def publish_platform_playlist(
    playlist_id: UUID,
    db: Session = Depends(get_db),
):
    playlist = playlist_service.get_playlist_or_404(db, playlist_id)
    return playlist_service.publish_platform_playlist(db, playlist)


@router.post("/cleanup-drafts", response_model=DraftCleanupOut)
def cleanup_drafts(
    days_old: int = Query(default=DRAFT_CLEANUP_DAYS, ge=0),
    dry_run: bool = False,
    db: Session = Depends(get_db),
):
    logger.info("Draft cleanup requested days_old=%s dry_run=%s", days_old, dry_run)
    result = cleanup_old_drafts(db, days_old, dry_run=dry_run)
    return DraftCleanupOut(
        deleted_count=result.deleted_count,
        deleted_ids=result.deleted_ids,
        cutoff=result.cutoff,
        dry_run=result.dry_run,
    )
