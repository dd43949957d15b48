"""
Authentication router: Google OAuth sign-in, logout and the caller's profile.
"""
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse

from album_api.config import Settings, get_settings
from album_api.dependencies.auth import get_current_caller
from album_api.dependencies.services import get_auth_service, get_identity_provider
from album_api.exceptions import UpstreamError
from album_api.middlewares.rate_limit_middleware import get_rate_limit_decorator
from album_api.schemas.user import ProfileResponse, TokenPayload, UserResponse
from album_api.services.auth import AuthService
from album_api.services.google_oauth import GoogleIdentityProvider
from album_api.utils.logger import log_info, log_warning
from album_api.utils.prometheus_metrics import user_login_total
from album_api.utils.security import ACCESS_TOKEN_COOKIE, SESSION_TTL

router = APIRouter(prefix="/auth", tags=["Authentication"])
user_router = APIRouter(prefix="/user", tags=["User"])

settings = get_settings()


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    # 프론트엔드가 다른 도메인이면 SameSite=None + Secure 필요
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=token,
        max_age=int(SESSION_TTL.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
        path="/",
    )


@router.get(
    "/google",
    summary="Redirect to Google consent page",
)
async def google_login(
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
) -> RedirectResponse:
    """Start the OAuth flow."""
    return RedirectResponse(provider.authorization_url(), status_code=status.HTTP_302_FOUND)


@router.get(
    "/google/callback",
    summary="OAuth callback",
)
@get_rate_limit_decorator(settings.login_rate_limit)
async def google_callback(
    request: Request,
    code: str = Query(..., min_length=1),
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """
    Exchange the authorization code, issue a session and send the browser
    back to the frontend with the session cookie set.

    - Provider failure → 502 / 504, no user is written
    - Persistence failure → 500 "Failed to complete sign-in"
    """
    try:
        identity = await provider.exchange_code(code)
    except UpstreamError:
        user_login_total.labels(result="failure").inc()
        log_warning("Login failed - identity provider", event="user_login")
        raise

    token = await auth_service.issue_session(identity)
    user_login_total.labels(result="success").inc()
    log_info("User login successful", event="user_login")

    response = RedirectResponse(
        f"{settings.frontend_url.rstrip('/')}/home",
        status_code=status.HTTP_302_FOUND,
    )
    _set_session_cookie(response, token.access_token, settings)
    return response


@router.post(
    "/logout",
    summary="Clear the session cookie",
)
async def logout(settings: Settings = Depends(get_settings)) -> Response:
    """
    Remove the session cookie. Issued tokens stay valid until they expire.
    """
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(
        key=ACCESS_TOKEN_COOKIE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )
    return response


@user_router.get(
    "/profile/google",
    response_model=ProfileResponse,
    summary="Get current user profile",
)
async def get_profile(
    caller: TokenPayload = Depends(get_current_caller),
    auth_service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """
    Get the current authenticated user's profile.

    Requires authentication via cookie or Bearer token.
    """
    user = await auth_service.get_profile(caller)
    return ProfileResponse(user=UserResponse.model_validate(user))
