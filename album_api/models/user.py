"""
User model: the local identity anchor for an external (Google) account.
"""
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from album_api.database import Base

if TYPE_CHECKING:
    from album_api.models.album import Album


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """User provisioned on first successful external login."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    google_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    # Unique per external account only; not enforced across accounts
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_picture: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    albums: Mapped[List["Album"]] = relationship(
        "Album", back_populates="owner", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, google_id={self.google_id})>"
