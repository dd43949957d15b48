"""
Authentication service: turns a verified external identity into a session.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.config import Settings
from album_api.exceptions import NotFoundError, SignInError
from album_api.models.user import User
from album_api.schemas.user import Token, TokenPayload, VerifiedIdentity
from album_api.utils.prometheus_metrics import users_provisioned_total
from album_api.utils.security import create_access_token

logger = logging.getLogger("album_api.auth")


class AuthService:
    """
    Service for the identity-session lifecycle.
    Provisions users on first login and issues signed session credentials.
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def issue_session(self, identity: VerifiedIdentity) -> Token:
        """
        Issue a session credential for a verified external identity.

        The identity is trusted as-is. The user is looked up by external id
        and created on first login only; a repeated login never writes.

        Args:
            identity: Identity returned by the provider exchange

        Returns:
            Token carrying {id, email, role, exp}, valid for 24 hours

        Raises:
            SignInError: The user record could not be read or persisted
        """
        try:
            user = await self._get_or_create_user(identity)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Sign-in persistence failed",
                exc_info=e,
                extra={"event": "auth", "error_type": type(e).__name__},
            )
            raise SignInError("Failed to complete sign-in.")

        access_token, expires_at = create_access_token(user.id, user.email, self.settings)
        logger.info("Login", extra={"event": "auth", "user_id": user.id})
        return Token(access_token=access_token, expires_at=expires_at)

    async def _get_or_create_user(self, identity: VerifiedIdentity) -> User:
        user = await self.get_user_by_google_id(identity.external_id)
        if user is not None:
            return user

        user = User(
            google_id=identity.external_id,
            email=identity.email,
            name=identity.name,
            profile_picture=identity.avatar_url,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent first login won the unique google_id race
            await self.db.rollback()
            existing = await self.get_user_by_google_id(identity.external_id)
            if existing is None:
                raise
            return existing

        users_provisioned_total.inc()
        logger.info("User provisioned", extra={"event": "auth", "user_id": user.id})
        return user

    async def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        """Get user by external identity key."""
        result = await self.db.execute(
            select(User).where(User.google_id == google_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_profile(self, caller: TokenPayload) -> User:
        """
        Return the caller's user record.

        Raises:
            NotFoundError: The token is valid but the user no longer exists
        """
        user = await self.get_user_by_id(caller.id)
        if user is None:
            raise NotFoundError("User not found.")
        return user
