"""
Authorization engine for albums and the images/comments nested in them.

`authorize` is a pure decision over (caller, operation, album). The rule
table below is the only place ownership and sharing rules are written down;
routers and services never compare owner ids themselves.

Resource lookups happen before authorization: callers resolve the album (and
image) first and report "not found" before asking for a decision.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from sqlalchemy import ColumnElement

from album_api.exceptions import ForbiddenError, UnauthenticatedError
from album_api.models.album import Album, AlbumShare
from album_api.schemas.user import TokenPayload
from album_api.utils.prometheus_metrics import authorization_denials_total

logger = logging.getLogger("album_api.authorization")

NOT_AUTHORIZED = "not authorized"
AUTHENTICATION_REQUIRED = "authentication required"


class Operation(str, Enum):
    """Operations subject to authorization."""
    CREATE_ALBUM = "create_album"
    READ_ALBUM = "read_album"
    UPDATE_ALBUM = "update_album"
    DELETE_ALBUM = "delete_album"
    LIST_OWN_ALBUMS = "list_own_albums"
    LIST_SHARED_ALBUMS = "list_shared_albums"
    SHARE_ALBUM = "share_album"
    VIEW_SHARED_USERS = "view_shared_users"
    UPLOAD_IMAGE = "upload_image"
    DELETE_IMAGE = "delete_image"
    TOGGLE_FAVORITE = "toggle_favorite"
    ADD_COMMENT = "add_comment"
    LIST_IMAGES = "list_images"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)

Rule = Callable[[Optional[TokenPayload], Optional[Album]], bool]


def _anyone(caller: Optional[TokenPayload], album: Optional[Album]) -> bool:
    return True


def _authenticated(caller: Optional[TokenPayload], album: Optional[Album]) -> bool:
    return caller is not None


def _owner(caller: Optional[TokenPayload], album: Optional[Album]) -> bool:
    # Identifier equality only; an email change must not affect ownership
    return caller is not None and album is not None and caller.id == album.owner_id


def _owner_or_shared(caller: Optional[TokenPayload], album: Optional[Album]) -> bool:
    if _owner(caller, album):
        return True
    return caller is not None and album is not None and album.is_shared_with(caller.email)


RULES: Dict[Operation, Rule] = {
    Operation.CREATE_ALBUM: _authenticated,
    Operation.READ_ALBUM: _anyone,
    Operation.UPDATE_ALBUM: _owner,
    Operation.DELETE_ALBUM: _owner,
    Operation.LIST_OWN_ALBUMS: _authenticated,
    Operation.LIST_SHARED_ALBUMS: _authenticated,
    Operation.SHARE_ALBUM: _owner,
    Operation.VIEW_SHARED_USERS: _owner,
    Operation.UPLOAD_IMAGE: _owner,
    Operation.DELETE_IMAGE: _owner,
    Operation.TOGGLE_FAVORITE: _owner,
    Operation.ADD_COMMENT: _owner_or_shared,
    Operation.LIST_IMAGES: _owner_or_shared,
}


def authorize(
    caller: Optional[TokenPayload],
    operation: Operation,
    album: Optional[Album] = None,
) -> Decision:
    """
    Decide whether `caller` may perform `operation` on `album`.

    Never touches the database and never mutates anything.

    Args:
        caller: Verified session claims, or None for anonymous requests
        operation: Requested operation
        album: Target album (or the album containing the target image)

    Returns:
        ALLOW, or a denying Decision with a reason
    """
    rule = RULES[operation]
    if rule(caller, album):
        return ALLOW
    if caller is None:
        return Decision(False, AUTHENTICATION_REQUIRED)
    return Decision(False, NOT_AUTHORIZED)


def require(
    caller: Optional[TokenPayload],
    operation: Operation,
    album: Optional[Album] = None,
) -> None:
    """
    Raise unless `authorize` allows the operation.

    Raises:
        UnauthenticatedError: No caller and the rule needs one
        ForbiddenError: Caller is known but not permitted
    """
    decision = authorize(caller, operation, album)
    if decision.allowed:
        return

    authorization_denials_total.labels(operation=operation.value).inc()
    logger.warning(
        "Authorization denied",
        extra={
            "event": "authz",
            "operation": operation.value,
            "user_id": caller.id if caller else None,
            "album_id": album.id if album is not None else None,
            "reason": decision.reason,
        },
    )
    if caller is None:
        raise UnauthenticatedError(decision.reason)
    raise ForbiddenError(decision.reason)


def album_list_filter(caller: TokenPayload, operation: Operation) -> ColumnElement[bool]:
    """
    SQL predicate implementing the visibility of the album list views.

    The two views are disjoint in intent: "my albums" is ownership only,
    "shared albums" is shared-user membership only.
    """
    require(caller, operation)
    if operation == Operation.LIST_OWN_ALBUMS:
        return Album.owner_id == caller.id
    if operation == Operation.LIST_SHARED_ALBUMS:
        return Album.shares.any(AlbumShare.email == caller.email)
    raise ValueError(f"{operation.value} is not a list operation")
