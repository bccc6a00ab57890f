from app.api.routes.admin_playlists import router as admin_playlists_router
from app.api.routes.playlists import router as playlists_router

__all__ = ["admin_playlists_router", "playlists_router"]
