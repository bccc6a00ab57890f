import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.track import Track


def get_track_by_id(db: Session, track_id: uuid.UUID) -> Track | None:
    return db.execute(select(Track).where(Track.id == track_id)).scalar_one_or_none()


def get_existing_track_ids(db: Session, track_ids: Iterable[uuid.UUID]) -> set[uuid.UUID]:
    ids = list(dict.fromkeys(track_ids))
    if not ids:
        return set()
    return set(db.execute(select(Track.id).where(Track.id.in_(ids))).scalars().all())


def get_tracks_by_ids(db: Session, track_ids: Iterable[uuid.UUID]) -> list[Track]:
    ids = list(dict.fromkeys(track_ids))
    if not ids:
        return []
    return list(db.execute(select(Track).where(Track.id.in_(ids))).scalars().all())
