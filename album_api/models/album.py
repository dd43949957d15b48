"""
Album model and its shared-user set.
"""
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from album_api.database import Base

if TYPE_CHECKING:
    from album_api.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Album(Base):
    """Named collection of images owned by exactly one user."""

    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Set at creation, never reassigned
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    owner: Mapped["User"] = relationship("User", back_populates="albums")
    shares: Mapped[List["AlbumShare"]] = relationship(
        "AlbumShare",
        back_populates="album",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="AlbumShare.id",
    )

    @property
    def shared_users(self) -> List[str]:
        """Emails of users this album is shared with."""
        return [share.email for share in self.shares]

    def is_shared_with(self, email: Optional[str]) -> bool:
        return email is not None and any(share.email == email for share in self.shares)

    def __repr__(self) -> str:
        return f"<Album(id={self.id}, name={self.name})>"


class AlbumShare(Base):
    """
    One member of an album's shared-user set.
    The unique constraint makes the set deduplicated; grants are inserted
    with ON CONFLICT DO NOTHING so concurrent shares never lose an email.
    """

    __tablename__ = "album_shares"
    __table_args__ = (
        UniqueConstraint("album_id", "email", name="uq_album_shares_album_email"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    album: Mapped["Album"] = relationship("Album", back_populates="shares")

    def __repr__(self) -> str:
        return f"<AlbumShare(album_id={self.album_id})>"
