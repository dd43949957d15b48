"""
Authentication dependencies for FastAPI.

The session credential is accepted from the Authorization header
(`Bearer <token>`) or from the `access_token` cookie; the header wins when
both are present. Both go through the same verification.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from album_api.config import Settings, get_settings
from album_api.exceptions import UnauthenticatedError
from album_api.schemas.user import TokenPayload
from album_api.utils.security import ACCESS_TOKEN_COOKIE, decode_access_token

logger = logging.getLogger("album_api.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


async def get_current_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> TokenPayload:
    """
    Dependency to get the verified caller identity.

    The token is verified statelessly (signature and expiry); the user table
    is not consulted.

    Raises:
        UnauthenticatedError: Token missing, malformed, tampered or expired
    """
    token = _extract_token(request, credentials)
    if not token:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "no_token"})
        raise UnauthenticatedError("Not authenticated")

    caller = decode_access_token(token, settings)
    if caller is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise UnauthenticatedError("Invalid or expired token")

    return caller


async def get_optional_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[TokenPayload]:
    """
    Dependency to optionally get the caller.
    Returns None if no valid token is provided.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None
    return decode_access_token(token, settings)
