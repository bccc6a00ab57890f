from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

PlaylistCategory = Literal["user", "featured", "genre", "mood", "activity"]
PlaylistPrivacy = Literal["public", "private", "unlisted"]


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Road trip"])
    description: str | None = Field(default=None, max_length=500)
    tracks: list[UUID] | None = None
    # A list, a JSON encoded list or a comma separated string.
    tags: list[str] | str | None = None
    category: PlaylistCategory = "user"
    privacy: PlaylistPrivacy = "public"
    is_draft: bool = False


class PlaylistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    tracks: list[UUID] | None = None
    tags: list[str] | str | None = None
    category: PlaylistCategory | None = None
    privacy: PlaylistPrivacy | None = None
    is_draft: bool | None = None
    version: int | None = Field(default=None, ge=1)


class TrackOrderUpdate(BaseModel):
    track_ids: list[UUID]
    skip_validation: bool = False
    version: int | None = Field(default=None, ge=1)


class PlaylistPublish(BaseModel):
    privacy: PlaylistPrivacy = "public"


class PlaylistOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    owner_id: UUID
    tracks: list[str]
    tags: list[str]
    cover_url: str | None = None
    track_count: int
    total_duration: int
    category: str
    privacy: str
    is_draft: bool
    like_count: int
    follow_count: int
    last_modified: datetime
    last_activity: datetime
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PlaylistPage(BaseModel):
    items: list[PlaylistOut]
    page: int
    limit: int
    total: int
    pages: int


class QuickPlaylistOut(BaseModel):
    id: UUID
    name: str
    is_draft: bool


class PlaylistStatsOut(BaseModel):
    track_count: int
    total_duration: int
    like_count: int
    created_at: datetime
    updated_at: datetime


class DraftCleanupOut(BaseModel):
    deleted_count: int
    deleted_ids: list[UUID]
    cutoff: datetime
    dry_run: bool = False


class TrackOut(BaseModel):
    id: UUID
    name: str
    artist_name: str | None = None
    duration: int | None = None
    genre: str | None = None

    class Config:
        from_attributes = True


class PlaylistTrackPage(BaseModel):
    items: list[TrackOut]
    page: int
    limit: int
    total: int
    pages: int
