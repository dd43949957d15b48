"""
Security utility functions for session credential (JWT) management.

Claim shape: {id, email, role, exp}. Cookie and bearer transports both end
in decode_access_token, so there is exactly one verification path.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from pydantic import ValidationError

from album_api.config import Settings
from album_api.schemas.user import TokenPayload

# Fixed session validity window
SESSION_TTL = timedelta(hours=24)

ACCESS_TOKEN_COOKIE = "access_token"
DEFAULT_ROLE = "user"


def create_access_token(
    user_id: int,
    email: str,
    settings: Settings,
    role: str = DEFAULT_ROLE,
    issued_at: Optional[datetime] = None,
) -> Tuple[str, datetime]:
    """
    Create a signed session credential.

    Args:
        user_id: Internal user ID
        email: User email (used for shared-album lookups)
        settings: Application settings (signing secret and algorithm)
        role: Role claim
        issued_at: Issuance time, defaults to now (UTC)

    Returns:
        Tuple of (encoded JWT, expiry time)
    """
    if issued_at is None:
        issued_at = datetime.now(timezone.utc)
    expire = issued_at + SESSION_TTL

    to_encode = {
        "id": user_id,
        "email": email,
        "role": role,
        "exp": expire,
    }

    encoded_jwt = jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt, expire


def decode_access_token(token: str, settings: Settings) -> Optional[TokenPayload]:
    """
    Decode and validate a session credential.

    Signature, algorithm and expiry are checked by python-jose; a token past
    its `exp` is rejected regardless of whether the user still exists.

    Args:
        token: JWT token string
        settings: Application settings

    Returns:
        TokenPayload if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True},
        )
    except JWTError:
        return None

    if payload.get("id") is None or not payload.get("email"):
        return None

    try:
        return TokenPayload(
            id=payload["id"],
            email=payload["email"],
            role=payload.get("role", DEFAULT_ROLE),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (ValidationError, TypeError, ValueError, OverflowError):
        return None
