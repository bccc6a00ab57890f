import uuid

from sqlalchemy import cast, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

from app.models.playlist import Playlist


def get_playlist_by_id(db: Session, playlist_id: uuid.UUID) -> Playlist | None:
    return db.execute(select(Playlist).where(Playlist.id == playlist_id)).scalar_one_or_none()


def _has_tag(db: Session, tag: str):
    if db.get_bind().dialect.name == "postgresql":
        return cast(Playlist.tags, JSONB).contains([tag])
    entries = func.json_each(Playlist.tags).table_valued("value")
    return select(entries.c.value).where(entries.c.value == tag).exists()


def list_playlists(
    db: Session,
    *,
    offset: int = 0,
    limit: int = 20,
    search: str | None = None,
    category: str | None = None,
    privacy: str | None = None,
    owner_id: uuid.UUID | None = None,
    tag: str | None = None,
    include_drafts: bool = False,
    drafts_only: bool = False,
) -> tuple[list[Playlist], int]:
    conditions = []
    if search:
        pattern = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(Playlist.name).like(pattern),
                func.lower(func.coalesce(Playlist.description, "")).like(pattern),
            )
        )
    if category:
        conditions.append(Playlist.category == category)
    if privacy:
        conditions.append(Playlist.privacy == privacy)
    if owner_id is not None:
        conditions.append(Playlist.owner_id == owner_id)
    if tag:
        conditions.append(_has_tag(db, tag))
    if drafts_only:
        conditions.append(Playlist.is_draft.is_(True))
    elif not include_drafts:
        conditions.append(Playlist.is_draft.is_(False))

    total = db.execute(select(func.count(Playlist.id)).where(*conditions)).scalar_one()
    items = (
        db.execute(
            select(Playlist)
            .where(*conditions)
            .order_by(Playlist.created_at.desc(), Playlist.id)
            .offset(offset)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return list(items), total


def list_owner_playlist_names(db: Session, owner_id: uuid.UUID, prefix: str) -> list[str]:
    return list(
        db.execute(
            select(Playlist.name).where(
                Playlist.owner_id == owner_id,
                func.lower(Playlist.name).startswith(prefix.lower(), autoescape=True),
            )
        )
        .scalars()
        .all()
    )


def save_playlist(db: Session, playlist: Playlist) -> Playlist:
    db.add(playlist)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(playlist)
    return playlist


def delete_playlist(db: Session, playlist: Playlist) -> None:
    db.delete(playlist)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
