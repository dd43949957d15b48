"""
Google OAuth 2.0 identity provider client.

Only the "exchange an authorization code for a verified identity" call is
implemented; protocol details beyond that are Google's concern.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from album_api.config import Settings
from album_api.exceptions import UpstreamError, UpstreamTimeoutError
from album_api.schemas.user import VerifiedIdentity
from album_api.utils.prometheus_metrics import record_external_request

logger = logging.getLogger("album_api.identity")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPES = "profile email"

SERVICE_NAME = "google_oauth"


class GoogleIdentityProvider:
    """
    Exchanges authorization codes with Google.

    Every call carries a bounded timeout; timeouts and failures are raised as
    UpstreamTimeoutError / UpstreamError and never retried here.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._timeout = httpx.Timeout(settings.external_request_timeout_seconds)
        self._transport = transport

    def authorization_url(self, state: Optional[str] = None) -> str:
        """Build the consent page URL the browser is redirected to."""
        params = {
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.google_redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> VerifiedIdentity:
        """
        Exchange an authorization code for the user's verified identity.

        Args:
            code: Authorization code from the callback query string

        Returns:
            VerifiedIdentity (external id, email, name, avatar URL)

        Raises:
            UpstreamTimeoutError: Google did not answer in time
            UpstreamError: Google rejected the code or returned garbage
        """
        try:
            async with record_external_request(SERVICE_NAME):
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    token_response = await client.post(
                        GOOGLE_TOKEN_URL,
                        data={
                            "client_id": self.settings.google_client_id,
                            "client_secret": self.settings.google_client_secret,
                            "code": code,
                            "grant_type": "authorization_code",
                            "redirect_uri": self.settings.google_redirect_uri,
                        },
                    )
                    token_response.raise_for_status()
                    access_token = token_response.json().get("access_token")
                    if not access_token:
                        raise UpstreamError(
                            "Failed to fetch access token from Google.", service=SERVICE_NAME
                        )

                    userinfo_response = await client.get(
                        GOOGLE_USERINFO_URL,
                        headers={"Authorization": f"Bearer {access_token}"},
                    )
                    userinfo_response.raise_for_status()
                    data = userinfo_response.json()
        except httpx.TimeoutException:
            logger.error(
                "Identity provider timeout",
                extra={"event": "auth", "upstream_service": SERVICE_NAME},
            )
            raise UpstreamTimeoutError(
                "Identity provider did not respond in time.", service=SERVICE_NAME
            )
        except httpx.HTTPStatusError as e:
            logger.error(
                "Identity provider rejected the request",
                extra={
                    "event": "auth",
                    "upstream_service": SERVICE_NAME,
                    "http_status": e.response.status_code,
                },
            )
            raise UpstreamError("Failed to fetch access token from Google.", service=SERVICE_NAME)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError: response body was not JSON
            logger.error(
                "Identity provider request failed",
                extra={"event": "auth", "upstream_service": SERVICE_NAME, "error_type": type(e).__name__},
            )
            raise UpstreamError("Failed to fetch access token from Google.", service=SERVICE_NAME)

        external_id = data.get("id")
        email = data.get("email")
        if not external_id or not email:
            raise UpstreamError("Identity provider returned an incomplete profile.", service=SERVICE_NAME)

        return VerifiedIdentity(
            external_id=str(external_id),
            email=email,
            name=data.get("name") or email,
            avatar_url=data.get("picture"),
        )
