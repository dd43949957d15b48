"""
API routers package.
"""
from album_api.routers.auth import router as auth_router
from album_api.routers.auth import user_router
from album_api.routers.albums import router as albums_router
from album_api.routers.images import router as images_router
from album_api.routers.health import router as health_router

__all__ = ["auth_router", "user_router", "albums_router", "images_router", "health_router"]
