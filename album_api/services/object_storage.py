"""
Object Storage integration (OpenStack Swift API, Keystone v2 token auth).

Holds the raw image bytes. Objects are written as
{container}/{folder}/{uuid}.{ext}; the returned locator is a durable URL.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from album_api.config import Settings
from album_api.exceptions import UpstreamError, UpstreamTimeoutError
from album_api.utils.prometheus_metrics import record_external_request

logger = logging.getLogger("album_api.storage")

SERVICE_NAME = "object_storage"

# 토큰 만료 5분 전에 갱신
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful store: object key and public locator."""
    key: str
    url: str


class ObjectStorageService:
    """
    Client for Swift-compatible object storage.

    - Single container, objects grouped by folder
    - Auth token cached and refreshed under an asyncio.Lock
    - Every call has a bounded timeout; failures are raised as UpstreamError
      and never retried here
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._timeout = httpx.Timeout(settings.external_request_timeout_seconds)
        self._transport = transport
        self._token: Optional[str] = None
        self._token_expires: Optional[datetime] = None
        self._lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _token_is_fresh(self) -> bool:
        return (
            self._token is not None
            and self._token_expires is not None
            and datetime.now(timezone.utc) < self._token_expires - TOKEN_REFRESH_MARGIN
        )

    @property
    def _account_url(self) -> str:
        return f"{self.settings.storage_url.rstrip('/')}/AUTH_{self.settings.storage_tenant_id}"

    def object_url(self, key: str) -> str:
        """Public locator for an object key."""
        base = self.settings.storage_public_url.rstrip("/")
        if base:
            return f"{base}/{key}"
        return f"{self._account_url}/{self.settings.storage_container}/{key}"

    async def _get_auth_token(self) -> str:
        """
        Get a Keystone v2 token, reusing the cached one while it is fresh.
        """
        if self._token_is_fresh():
            return self._token

        async with self._lock:
            # Double-check after acquiring lock
            if self._token_is_fresh():
                return self._token

            if not (
                self.settings.storage_username
                and self.settings.storage_password
                and self.settings.storage_tenant_id
            ):
                logger.error("Storage credentials are not configured", extra={"event": "storage"})
                raise UpstreamError("Object storage is not configured.", service=SERVICE_NAME)

            auth_data = {
                "auth": {
                    "tenantId": self.settings.storage_tenant_id,
                    "passwordCredentials": {
                        "username": self.settings.storage_username,
                        "password": self.settings.storage_password,
                    },
                }
            }
            url = f"{self.settings.storage_auth_url.rstrip('/')}/tokens"

            try:
                async with record_external_request(SERVICE_NAME):
                    async with self._client() as client:
                        response = await client.post(url, json=auth_data)
                    response.raise_for_status()
                    token_data = response.json().get("access", {}).get("token", {})
            except httpx.TimeoutException:
                logger.error("Storage authentication timeout", extra={"event": "storage"})
                raise UpstreamTimeoutError("Object storage authentication timed out.", service=SERVICE_NAME)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(
                    "Storage authentication failed",
                    extra={"event": "storage", "error_type": type(e).__name__},
                )
                raise UpstreamError("Object storage authentication failed.", service=SERVICE_NAME)

            token = token_data.get("id")
            if not token:
                logger.error("Storage token missing in response", extra={"event": "storage"})
                raise UpstreamError("Object storage authentication failed.", service=SERVICE_NAME)

            expires_str = token_data.get("expires")
            if expires_str:
                expires = datetime.fromisoformat(expires_str.replace("Z", "+00:00"))
                if expires.tzinfo is None:
                    expires = expires.replace(tzinfo=timezone.utc)
            else:
                expires = datetime.now(timezone.utc) + timedelta(hours=24)

            self._token = token
            self._token_expires = expires
            return token

    async def store(
        self,
        content: bytes,
        folder: str,
        filename: str,
        content_type: str,
    ) -> StoredObject:
        """
        Upload bytes and return their durable locator.

        Args:
            content: File content
            folder: Folder (key prefix) inside the container
            filename: Original filename; only its extension is kept
            content_type: MIME type stored with the object

        Returns:
            StoredObject with the object key and public URL

        Raises:
            UpstreamTimeoutError / UpstreamError on any storage failure
        """
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        unique_name = f"{uuid.uuid4().hex}.{ext}" if ext else uuid.uuid4().hex
        key = f"{folder.strip('/')}/{unique_name}"

        token = await self._get_auth_token()
        url = f"{self._account_url}/{self.settings.storage_container}/{key}"

        try:
            async with record_external_request(SERVICE_NAME):
                async with self._client() as client:
                    response = await client.put(
                        url,
                        content=content,
                        headers={"X-Auth-Token": token, "Content-Type": content_type},
                    )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.error("File upload timeout", extra={"event": "storage", "object": key})
            raise UpstreamTimeoutError("File upload timed out.", service=SERVICE_NAME)
        except httpx.HTTPError as e:
            logger.error(
                "File upload failed",
                extra={"event": "storage", "object": key, "error_type": type(e).__name__},
            )
            raise UpstreamError("File upload failed.", service=SERVICE_NAME)

        return StoredObject(key=key, url=self.object_url(key))

    async def delete(self, key: str) -> None:
        """
        Delete an object. A missing object counts as deleted.

        Raises:
            UpstreamTimeoutError / UpstreamError on any other storage failure
        """
        token = await self._get_auth_token()
        url = f"{self._account_url}/{self.settings.storage_container}/{key}"

        try:
            async with record_external_request(SERVICE_NAME):
                async with self._client() as client:
                    response = await client.delete(url, headers={"X-Auth-Token": token})
                if response.status_code != 404:
                    response.raise_for_status()
        except httpx.TimeoutException:
            logger.error("File delete timeout", extra={"event": "storage", "object": key})
            raise UpstreamTimeoutError("File delete timed out.", service=SERVICE_NAME)
        except httpx.HTTPError as e:
            logger.error(
                "File delete failed",
                extra={"event": "storage", "object": key, "error_type": type(e).__name__},
            )
            raise UpstreamError("File delete failed.", service=SERVICE_NAME)
