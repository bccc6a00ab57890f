import logging

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app.models.playlist import Playlist
from app.services.playlist_hooks import PRESERVE_ACTIVITY

logger = logging.getLogger(__name__)


def backfill_playlist_aggregates(db: Session, *, batch_size: int = 200) -> dict[str, int]:
    """Recompute track_count and total_duration for every stored playlist.

    Each playlist's track list is marked modified so the flush hook recomputes
    the aggregates. Activity stamping is disabled for the session, so
    abandoned drafts stay eligible for cleanup.
    """
    db.info[PRESERVE_ACTIVITY] = True
    scanned = 0
    updated = 0
    offset = 0
    try:
        while True:
            batch = (
                db.execute(
                    select(Playlist).order_by(Playlist.id).offset(offset).limit(batch_size)
                )
                .scalars()
                .all()
            )
            if not batch:
                break
            before = {
                playlist.id: (playlist.track_count, playlist.total_duration)
                for playlist in batch
            }
            for playlist in batch:
                flag_modified(playlist, "tracks")
            db.flush()
            for playlist in batch:
                if before[playlist.id] != (playlist.track_count, playlist.total_duration):
                    updated += 1
                    logger.info(
                        "Backfilled playlist_id=%s track_count=%s total_duration=%s",
                        playlist.id,
                        playlist.track_count,
                        playlist.total_duration,
                    )
            db.commit()
            scanned += len(batch)
            offset += batch_size
    finally:
        db.info.pop(PRESERVE_ACTIVITY, None)

    logger.info("Aggregate backfill completed scanned=%s updated=%s", scanned, updated)
    return {"scanned": scanned, "updated": updated}
