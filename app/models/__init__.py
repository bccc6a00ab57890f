from app.models.base import Base
from app.models.playlist import Playlist
from app.models.track import Track
from app.models.user import User

__all__ = [
    "Base",
    "Playlist",
    "Track",
    "User",
]
