from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import DRAFT_CLEANUP_DAYS
from app.models.playlist import Playlist
from app.services.playlist_aggregates import ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DraftCleanupResult:
    deleted_count: int
    cutoff: datetime
    deleted_ids: list[uuid.UUID] = field(default_factory=list)
    dry_run: bool = False


def draft_cleanup_cutoff(days_old: int, *, now: datetime | None = None) -> datetime:
    if days_old < 0:
        raise ValueError("days_old must not be negative")
    current = ensure_utc(now) or datetime.now(timezone.utc)
    return current - timedelta(days=days_old)


def find_stale_drafts(db: Session, cutoff: datetime) -> list[Playlist]:
    candidates = (
        db.execute(
            select(Playlist).where(
                Playlist.is_draft.is_(True),
                Playlist.last_activity < cutoff,
            )
        )
        .scalars()
        .all()
    )
    # Emptiness is judged on the track list, never on the derived track_count.
    return [playlist for playlist in candidates if not playlist.tracks]


def cleanup_old_drafts(
    db: Session,
    days_old: int = DRAFT_CLEANUP_DAYS,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
) -> DraftCleanupResult:
    """Delete empty drafts whose last activity is older than ``days_old`` days.

    Drafts holding at least one track are never deleted. Safe to call
    repeatedly; a second run finds nothing new to delete.
    """
    cutoff = draft_cleanup_cutoff(days_old, now=now)
    stale = find_stale_drafts(db, cutoff)
    deleted_ids = [playlist.id for playlist in stale]

    if dry_run:
        logger.info(
            "Draft cleanup dry run cutoff=%s candidates=%s",
            cutoff.isoformat(),
            len(deleted_ids),
        )
        return DraftCleanupResult(
            deleted_count=0, cutoff=cutoff, deleted_ids=deleted_ids, dry_run=True
        )

    try:
        for playlist in stale:
            db.delete(playlist)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Draft cleanup failed cutoff=%s", cutoff.isoformat())
        raise

    logger.info(
        "Draft cleanup completed cutoff=%s deleted=%s",
        cutoff.isoformat(),
        len(deleted_ids),
    )
    return DraftCleanupResult(
        deleted_count=len(deleted_ids),
        cutoff=cutoff,
        deleted_ids=deleted_ids,
    )
