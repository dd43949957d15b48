"""
Album service for managing albums and their shared-user sets.
"""
import re
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.exceptions import NotFoundError, ValidationFailedError
from album_api.models.album import Album, AlbumShare
from album_api.models.user import User
from album_api.schemas.album import AlbumCreate, AlbumResponse, AlbumUpdate
from album_api.schemas.user import TokenPayload
from album_api.services.authorization import (
    Operation,
    album_list_filter,
    authorize,
    require,
)
from album_api.utils.logger import log_info, log_warning
from album_api.utils.prometheus_metrics import album_operations_total, album_share_total

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# on_conflict_do_nothing 지원 dialect
SHARE_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

MAX_PAGE_SIZE = 100


class AlbumService:
    """
    Service for handling album operations.
    Includes album CRUD, the two list views and sharing.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Lookup ==============

    async def _fetch_album(self, album_id: int, refresh: bool = False) -> Optional[Album]:
        query = select(Album).where(Album.id == album_id)
        if refresh:
            # 커밋 후 shares 컬렉션을 다시 읽음
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_album_or_404(self, album_id: int) -> Album:
        """
        Get an album by ID.

        Raises:
            NotFoundError: Album does not exist
        """
        album = await self._fetch_album(album_id)
        if album is None:
            raise NotFoundError("Album not found")
        return album

    def to_response(self, album: Album, caller: Optional[TokenPayload]) -> AlbumResponse:
        """
        Build the album view for `caller`.
        The shared-user emails are only disclosed to callers allowed to see them.
        """
        response = AlbumResponse.model_validate(album)
        if not authorize(caller, Operation.VIEW_SHARED_USERS, album):
            response.shared_users = None
        return response

    # ============== Album CRUD ==============

    async def create_album(self, caller: TokenPayload, album_data: AlbumCreate) -> Album:
        """
        Create a new album owned by the caller.

        Args:
            caller: Authenticated caller; becomes the owner
            album_data: Album creation data

        Returns:
            Created Album model
        """
        require(caller, Operation.CREATE_ALBUM)

        album = Album(
            owner_id=caller.id,
            name=album_data.name,
            description=album_data.description,
        )
        self.db.add(album)
        await self.db.commit()

        album_operations_total.labels(operation="create", result="success").inc()
        log_info("Album created", event="album", album_id=album.id, user_id=caller.id)
        return await self._fetch_album(album.id, refresh=True)

    async def get_album(self, caller: Optional[TokenPayload], album_id: int) -> Album:
        """Read an album. Anonymous callers are allowed."""
        album = await self.get_album_or_404(album_id)
        require(caller, Operation.READ_ALBUM, album)
        return album

    async def update_album(
        self,
        caller: TokenPayload,
        album_id: int,
        update_data: AlbumUpdate,
    ) -> Album:
        """
        Update album name and/or description. Owner only.

        Args:
            caller: Authenticated caller
            album_id: Album to update
            update_data: Fields to change; unset fields are kept

        Returns:
            Updated Album model
        """
        album = await self.get_album_or_404(album_id)
        require(caller, Operation.UPDATE_ALBUM, album)

        if update_data.name is not None:
            album.name = update_data.name
        if update_data.description is not None:
            # 빈 문자열이면 description을 지움
            if not update_data.description.strip():
                album.description = None
            else:
                album.description = update_data.description

        await self.db.commit()
        album_operations_total.labels(operation="update", result="success").inc()
        return await self._fetch_album(album.id, refresh=True)

    async def delete_album(self, caller: TokenPayload, album_id: int) -> None:
        """
        Delete an album. Images, tags, comments and shares go with it.
        """
        album = await self.get_album_or_404(album_id)
        require(caller, Operation.DELETE_ALBUM, album)

        await self.db.delete(album)
        await self.db.commit()

        album_operations_total.labels(operation="delete", result="success").inc()
        log_info("Album deleted", event="album", album_id=album_id, user_id=caller.id)

    async def list_own_albums(
        self,
        caller: TokenPayload,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Album]:
        """Albums owned by the caller, newest first."""
        return await self._list_albums(caller, Operation.LIST_OWN_ALBUMS, skip, limit)

    async def list_shared_albums(
        self,
        caller: TokenPayload,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Album]:
        """Albums whose shared-user set contains the caller's email, newest first."""
        return await self._list_albums(caller, Operation.LIST_SHARED_ALBUMS, skip, limit)

    async def _list_albums(
        self,
        caller: TokenPayload,
        operation: Operation,
        skip: int,
        limit: int,
    ) -> List[Album]:
        predicate = album_list_filter(caller, operation)
        result = await self.db.execute(
            select(Album)
            .where(predicate)
            .order_by(Album.created_at.desc(), Album.id.desc())
            .offset(max(skip, 0))
            .limit(min(max(limit, 1), MAX_PAGE_SIZE))
        )
        return list(result.scalars().all())

    # ============== Sharing ==============

    async def share_album(
        self,
        caller: TokenPayload,
        album_id: int,
        emails: List[str],
    ) -> Album:
        """
        Grant access to an album by email.

        The whole request is rejected when any email is malformed or does not
        belong to a registered user. Otherwise the emails are added to the
        album's shared-user set; emails already present are ignored.

        Args:
            caller: Authenticated caller
            album_id: Album to share
            emails: Non-empty list of email addresses

        Returns:
            The album re-read after the grant

        Raises:
            ValidationFailedError: Malformed emails (all of them listed)
            NotFoundError: Album missing, or unknown emails (all of them listed)
            ForbiddenError: Caller is not the owner
        """
        invalid = [email for email in emails if not EMAIL_PATTERN.fullmatch(email)]
        if invalid:
            album_share_total.labels(result="invalid_email").inc()
            raise ValidationFailedError("Invalid email address", invalid=invalid)

        album = await self.get_album_or_404(album_id)
        require(caller, Operation.SHARE_ALBUM, album)

        # 순서를 유지한 채 중복 제거
        unique_emails = list(dict.fromkeys(emails))

        result = await self.db.execute(
            select(User.email).where(User.email.in_(unique_emails))
        )
        registered = set(result.scalars().all())
        unknown = [email for email in unique_emails if email not in registered]
        if unknown:
            album_share_total.labels(result="unknown_user").inc()
            log_warning(
                "Share rejected: unknown users",
                event="share",
                album_id=album.id,
                user_id=caller.id,
                unknown_count=len(unknown),
            )
            raise NotFoundError("User not found", invalid=unknown)

        await self._add_shares(album.id, unique_emails)
        await self.db.commit()

        album_share_total.labels(result="success").inc()
        log_info(
            "Album shared",
            event="share",
            album_id=album.id,
            user_id=caller.id,
            count=len(unique_emails),
        )
        return await self._fetch_album(album.id, refresh=True)

    async def _add_shares(self, album_id: int, emails: List[str]) -> None:
        """Set-union insert; rows already present are skipped by the database."""
        dialect = self.db.get_bind().dialect.name
        insert = SHARE_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Album sharing is not supported on the {dialect} dialect")

        stmt = (
            insert(AlbumShare)
            .values([{"album_id": album_id, "email": email} for email in emails])
            .on_conflict_do_nothing(index_elements=["album_id", "email"])
        )
        await self.db.execute(stmt)
