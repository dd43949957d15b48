"""Test configuration and fixtures for the Photo Albums API.

Every test runs against a freshly created SQLite database. The identity
provider and object storage are replaced with in-memory fakes through
FastAPI dependency overrides, so no network access is needed.
"""
import asyncio
import os
import tempfile
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Set test environment BEFORE importing app modules
_TEST_DIR = Path(tempfile.mkdtemp(prefix="album-api-tests-"))
os.environ["ENVIRONMENT"] = "DEV"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["LOG_DIR"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["FRONTEND_URL"] = "http://localhost:3000"

import album_api.models  # noqa: E402,F401
from album_api.database import Base, async_session_maker, engine  # noqa: E402
from album_api.dependencies.services import (  # noqa: E402
    get_identity_provider,
    get_storage_service,
)
from album_api.exceptions import UpstreamError  # noqa: E402
from album_api.main import app  # noqa: E402
from album_api.schemas.user import VerifiedIdentity  # noqa: E402
from album_api.services.object_storage import StoredObject  # noqa: E402


class FakeIdentityProvider:
    """Accepts codes of the form "<external_id>|<email>|<name>".

    The code "fail" simulates the provider rejecting the exchange.
    """

    def __init__(self):
        self.exchanged: List[str] = []

    def authorization_url(self, state: Optional[str] = None) -> str:
        return "https://accounts.google.com/o/oauth2/auth?client_id=test"

    async def exchange_code(self, code: str) -> VerifiedIdentity:
        self.exchanged.append(code)
        if code == "fail":
            raise UpstreamError("Failed to fetch access token from Google.", service="google_oauth")
        external_id, email, name = code.split("|")
        return VerifiedIdentity(external_id=external_id, email=email, name=name)


class FakeStorage:
    """In-memory object storage."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.store_calls = 0
        self.deleted: List[str] = []
        self.fail_store = False

    def object_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"

    async def store(self, content: bytes, folder: str, filename: str, content_type: str) -> StoredObject:
        self.store_calls += 1
        if self.fail_store:
            raise UpstreamError("File upload failed.", service="object_storage")
        ext = filename.rsplit(".", 1)[-1].lower()
        key = f"{folder}/{uuid.uuid4().hex}.{ext}"
        self.objects[key] = content
        return StoredObject(key=key, url=self.object_url(key))

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)


def run(coro):
    """Run a coroutine against the test database from synchronous test code."""
    return asyncio.run(coro)


async def _reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _count(model) -> int:
    from sqlalchemy import func, select

    async with async_session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


def count_rows(model) -> int:
    return run(_count(model))


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh schema for every test."""
    run(_reset_database())
    yield


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client(identity_provider, storage):
    """Test client with upstream services replaced by fakes."""
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_storage_service] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client: TestClient, external_id: str, email: str, name: str = "Test User") -> Dict[str, str]:
    """Sign in through the OAuth callback and return a Bearer header.

    The session cookie is cleared afterwards so each request authenticates
    only with the header it is given.
    """
    response = client.get(
        "/auth/google/callback",
        params={"code": f"{external_id}|{email}|{name}"},
        follow_redirects=False,
    )
    assert response.status_code == 302, response.text
    token = response.cookies["access_token"]
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client) -> Dict[str, str]:
    return login(client, "google-alice", "alice@gmail.com", "Alice")


@pytest.fixture
def bob(client) -> Dict[str, str]:
    return login(client, "google-bob", "bob@gmail.com", "Bob")


@pytest.fixture
def carol(client) -> Dict[str, str]:
    return login(client, "google-carol", "carol@gmail.com", "Carol")


def create_album(client: TestClient, headers: Dict[str, str], name: str = "Holiday") -> Dict:
    response = client.post("/albums", json={"name": name, "description": "Summer trip"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def upload(
    client: TestClient,
    headers: Dict[str, str],
    album_id: int,
    filename: str = "cat.jpg",
    content: bytes = b"\xff\xd8\xff\xe0fake-jpeg",
    **fields,
):
    return client.post(
        f"/albums/{album_id}/images",
        files={"file": (filename, content, "application/octet-stream")},
        data=fields,
        headers=headers,
    )
