"""
Image model for storing image metadata.
Actual image bytes live in Object Storage; `file_url` is the durable locator.
"""
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from album_api.database import Base

if TYPE_CHECKING:
    from album_api.models.comment import Comment


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Image(Base):
    """Image belonging to exactly one album."""

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Fixed at creation
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    tag_links: Mapped[List["ImageTag"]] = relationship(
        "ImageTag",
        back_populates="image",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="ImageTag.id",
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="image",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Comment.id",
    )

    @property
    def tags(self) -> List[str]:
        return [link.tag for link in self.tag_links]

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, album_id={self.album_id})>"


class ImageTag(Base):
    """Tag attached to an image, indexed for album + tag lookups."""

    __tablename__ = "image_tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    image_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    image: Mapped["Image"] = relationship("Image", back_populates="tag_links")
