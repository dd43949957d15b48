"""
Services package.
Contains business logic and external service integrations.
"""
from album_api.services.object_storage import ObjectStorageService, StoredObject
from album_api.services.google_oauth import GoogleIdentityProvider
from album_api.services.auth import AuthService
from album_api.services.album import AlbumService
from album_api.services.image import ImageService

__all__ = [
    "ObjectStorageService",
    "StoredObject",
    "GoogleIdentityProvider",
    "AuthService",
    "AlbumService",
    "ImageService",
]
