import os

DRAFT_CLEANUP_DAYS = int(os.getenv("DRAFT_CLEANUP_DAYS", "7"))
QUICK_PLAYLIST_BASE_NAME = os.getenv("QUICK_PLAYLIST_BASE_NAME", "My Playlist")

PLAYLISTS_PAGE_SIZE = int(os.getenv("PLAYLISTS_PAGE_SIZE", "20"))
PLAYLISTS_MAX_PAGE_SIZE = int(os.getenv("PLAYLISTS_MAX_PAGE_SIZE", "100"))
FEATURED_PLAYLISTS_LIMIT = int(os.getenv("FEATURED_PLAYLISTS_LIMIT", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
