"""
Utility functions package.
"""
from album_api.utils.security import (
    ACCESS_TOKEN_COOKIE,
    SESSION_TTL,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "SESSION_TTL",
    "create_access_token",
    "decode_access_token",
]
