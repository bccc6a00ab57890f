import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.models.base import Base, JSONList

PLAYLIST_CATEGORIES = ("user", "featured", "genre", "mood", "activity")
PLAYLIST_PRIVACY_LEVELS = ("public", "private", "unlisted")
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

# Written only by the flush hook in app.services.playlist_hooks.
AGGREGATE_FIELDS = ("track_count", "total_duration")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Playlist(Base):
    __tablename__ = "playlists"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH), nullable=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    # Ordered track ids (as strings); playback order.
    tracks: Mapped[list[str]] = mapped_column(
        MutableList.as_mutable(JSONList), nullable=False, default=list
    )
    tags: Mapped[list[str]] = mapped_column(
        MutableList.as_mutable(JSONList), nullable=False, default=list
    )
    cover_url: Mapped[str | None] = mapped_column(String, nullable=True)
    like_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    follow_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    track_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    total_duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    category: Mapped[str] = mapped_column(
        String, nullable=False, default="user", server_default=text("'user'"), index=True
    )
    privacy: Mapped[str] = mapped_column(
        String, nullable=False, default="public", server_default=text("'public'"), index=True
    )
    is_draft: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"), index=True
    )
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    owner = relationship("User", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    @validates("name")
    def _validate_name(self, _key, value):
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("Playlist name is required")
        if len(cleaned) > NAME_MAX_LENGTH:
            raise ValueError(f"Name cannot be longer than {NAME_MAX_LENGTH} characters")
        return cleaned

    @validates("description")
    def _validate_description(self, _key, value):
        if value is None:
            return None
        cleaned = value.strip()
        if len(cleaned) > DESCRIPTION_MAX_LENGTH:
            raise ValueError(
                f"Description cannot be longer than {DESCRIPTION_MAX_LENGTH} characters"
            )
        return cleaned

    @validates("owner_id")
    def _validate_owner(self, _key, value):
        if self.owner_id is not None and value != self.owner_id:
            raise ValueError("Playlist owner cannot be changed")
        return value

    @validates("category")
    def _validate_category(self, _key, value):
        if value not in PLAYLIST_CATEGORIES:
            raise ValueError(f"Unknown playlist category: {value}")
        return value

    @validates("privacy")
    def _validate_privacy(self, _key, value):
        if value not in PLAYLIST_PRIVACY_LEVELS:
            raise ValueError(f"Unknown playlist privacy: {value}")
        return value
