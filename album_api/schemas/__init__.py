"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from album_api.schemas.user import (
    VerifiedIdentity,
    UserResponse,
    UserSummary,
    ProfileResponse,
    Token,
    TokenPayload,
)
from album_api.schemas.album import (
    AlbumCreate,
    AlbumResponse,
    AlbumUpdate,
    ShareRequest,
)
from album_api.schemas.image import (
    ImageUploadMetadata,
    ImageResponse,
    CommentCreate,
    CommentResponse,
)

__all__ = [
    # User / session schemas
    "VerifiedIdentity",
    "UserResponse",
    "UserSummary",
    "ProfileResponse",
    "Token",
    "TokenPayload",
    # Album schemas
    "AlbumCreate",
    "AlbumResponse",
    "AlbumUpdate",
    "ShareRequest",
    # Image schemas
    "ImageUploadMetadata",
    "ImageResponse",
    "CommentCreate",
    "CommentResponse",
]
