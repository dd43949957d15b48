"""Unit tests for the authorization rule table.

These never touch the database: albums are built as transient objects.
"""
from datetime import datetime, timedelta, timezone

import pytest

from album_api.exceptions import ForbiddenError, UnauthenticatedError
from album_api.models.album import Album, AlbumShare
from album_api.schemas.user import TokenPayload
from album_api.services.authorization import (
    ALLOW,
    AUTHENTICATION_REQUIRED,
    NOT_AUTHORIZED,
    RULES,
    Operation,
    authorize,
    require,
)


def caller(user_id: int, email: str) -> TokenPayload:
    return TokenPayload(
        id=user_id,
        email=email,
        exp=datetime.now(timezone.utc) + timedelta(hours=1),
    )


OWNER = caller(1, "owner@gmail.com")
FRIEND = caller(2, "friend@gmail.com")
STRANGER = caller(3, "stranger@gmail.com")


@pytest.fixture
def album() -> Album:
    album = Album(id=10, owner_id=OWNER.id, name="Trip")
    album.shares = [AlbumShare(email=FRIEND.email)]
    return album


OWNER_ONLY = [
    Operation.UPDATE_ALBUM,
    Operation.DELETE_ALBUM,
    Operation.SHARE_ALBUM,
    Operation.VIEW_SHARED_USERS,
    Operation.UPLOAD_IMAGE,
    Operation.DELETE_IMAGE,
    Operation.TOGGLE_FAVORITE,
]

OWNER_OR_SHARED = [Operation.ADD_COMMENT, Operation.LIST_IMAGES]


class TestRuleTable:
    """Every operation has exactly one rule."""

    def test_all_operations_have_rules(self):
        assert set(RULES) == set(Operation)

    @pytest.mark.parametrize("operation", OWNER_ONLY)
    def test_owner_only_operations(self, album, operation):
        assert authorize(OWNER, operation, album) == ALLOW
        assert authorize(FRIEND, operation, album).reason == NOT_AUTHORIZED
        assert authorize(STRANGER, operation, album).reason == NOT_AUTHORIZED

    @pytest.mark.parametrize("operation", OWNER_OR_SHARED)
    def test_owner_or_shared_operations(self, album, operation):
        assert authorize(OWNER, operation, album)
        assert authorize(FRIEND, operation, album)
        assert not authorize(STRANGER, operation, album)

    def test_read_album_is_public(self, album):
        assert authorize(None, Operation.READ_ALBUM, album)
        assert authorize(STRANGER, Operation.READ_ALBUM, album)

    def test_create_requires_authentication(self):
        assert authorize(OWNER, Operation.CREATE_ALBUM)
        decision = authorize(None, Operation.CREATE_ALBUM)
        assert not decision
        assert decision.reason == AUTHENTICATION_REQUIRED


class TestOwnership:
    """Ownership is decided by identifier, never by email."""

    def test_same_email_different_id_is_not_owner(self, album):
        impostor = caller(99, OWNER.email)
        assert not authorize(impostor, Operation.UPDATE_ALBUM, album)

    def test_email_change_keeps_ownership(self, album):
        renamed = caller(OWNER.id, "new-address@gmail.com")
        assert authorize(renamed, Operation.DELETE_ALBUM, album)


class TestRequire:
    def test_anonymous_denial_is_unauthenticated(self, album):
        with pytest.raises(UnauthenticatedError):
            require(None, Operation.UPDATE_ALBUM, album)

    def test_known_caller_denial_is_forbidden(self, album):
        with pytest.raises(ForbiddenError) as exc_info:
            require(STRANGER, Operation.UPLOAD_IMAGE, album)
        assert exc_info.value.message == NOT_AUTHORIZED

    def test_allowed_does_not_raise(self, album):
        require(OWNER, Operation.SHARE_ALBUM, album)
