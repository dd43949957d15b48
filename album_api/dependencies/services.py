"""
Service dependencies for FastAPI.
Upstream clients are process-wide singletons; tests replace them through
`app.dependency_overrides`.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.config import Settings, get_settings
from album_api.database import get_db
from album_api.services.album import AlbumService
from album_api.services.auth import AuthService
from album_api.services.google_oauth import GoogleIdentityProvider
from album_api.services.image import ImageService
from album_api.services.object_storage import ObjectStorageService


@lru_cache()
def get_identity_provider() -> GoogleIdentityProvider:
    return GoogleIdentityProvider(get_settings())


@lru_cache()
def get_storage_service() -> ObjectStorageService:
    """Singleton so the storage auth token is shared across requests."""
    return ObjectStorageService(get_settings())


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


def get_album_service(db: AsyncSession = Depends(get_db)) -> AlbumService:
    return AlbumService(db)


def get_image_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorageService = Depends(get_storage_service),
) -> ImageService:
    return ImageService(db, storage)
