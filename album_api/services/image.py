"""
Image service: uploads, listing, favorites and comments.

Uploads write the bytes to Object Storage first and persist the Image row
second. A row therefore never references a blob that was not stored.
"""
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.exceptions import NotFoundError, ValidationFailedError
from album_api.models.album import Album
from album_api.models.comment import Comment
from album_api.models.image import Image, ImageTag
from album_api.schemas.image import ImageUploadMetadata
from album_api.schemas.user import TokenPayload
from album_api.services.album import AlbumService
from album_api.services.authorization import Operation, require
from album_api.services.object_storage import ObjectStorageService
from album_api.utils.prometheus_metrics import (
    image_operations_total,
    image_upload_size_bytes,
    image_upload_total,
)

logger = logging.getLogger("album_api.image")

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_NAME_LENGTH = 255
UPLOAD_FOLDER = "uploads"

# 확장자 -> Content-Type
ALLOWED_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-separated tag string; blanks are dropped."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class ImageService:
    """
    Service for handling image operations.
    Integrates with Object Storage for the bytes; metadata lives in the database.
    """

    def __init__(self, db: AsyncSession, storage: ObjectStorageService):
        self.db = db
        self.storage = storage
        self.albums = AlbumService(db)

    async def _fetch_image(self, image_id: int, refresh: bool = False) -> Optional[Image]:
        query = select(Image).where(Image.id == image_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _get_image_in_album(self, album: Album, image_id: int) -> Image:
        image = await self._fetch_image(image_id)
        # 다른 앨범의 이미지는 존재하지 않는 것으로 취급
        if image is None or image.album_id != album.id:
            raise NotFoundError("Image not found")
        return image

    async def upload_image(
        self,
        caller: TokenPayload,
        album_id: int,
        content: Optional[bytes],
        filename: Optional[str],
        metadata: ImageUploadMetadata,
    ) -> Image:
        """
        Upload an image into an album.

        Gates are checked in order and nothing is stored when one fails:
        album exists, caller owns it, a file was sent, size, extension.

        Args:
            caller: Authenticated caller
            album_id: Target album
            content: File bytes (at most MAX_UPLOAD_BYTES + 1 are read by the router)
            filename: Original file name
            metadata: Name, tags, person and favorite flag from the form

        Returns:
            Created Image model

        Raises:
            NotFoundError / ForbiddenError / ValidationFailedError before storage
            UpstreamError if storage fails; the database error if persisting fails
        """
        album = await self.albums.get_album_or_404(album_id)
        require(caller, Operation.UPLOAD_IMAGE, album)

        if content is None or not filename:
            image_upload_total.labels(result="rejected").inc()
            raise ValidationFailedError("No file uploaded")

        if len(content) > MAX_UPLOAD_BYTES:
            image_upload_total.labels(result="rejected").inc()
            raise ValidationFailedError("File size exceeds the 5MB limit")

        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            image_upload_total.labels(result="rejected").inc()
            raise ValidationFailedError("Unsupported file type", invalid=[ext or filename])

        album_pk = album.id
        name = metadata.name or filename[:MAX_NAME_LENGTH]

        try:
            stored = await self.storage.store(
                content,
                folder=UPLOAD_FOLDER,
                filename=filename,
                content_type=ALLOWED_EXTENSIONS[ext],
            )
        except Exception:
            image_upload_total.labels(result="failure").inc()
            raise

        image = Image(
            album_id=album_pk,
            name=name,
            file_url=stored.url,
            storage_key=stored.key,
            person=metadata.person,
            is_favorite=metadata.is_favorite,
            size=len(content),
        )
        image.tag_links = [ImageTag(tag=tag) for tag in dict.fromkeys(metadata.tags)]

        try:
            self.db.add(image)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            image_upload_total.labels(result="failure").inc()
            logger.error(
                "Image persist failed, removing stored object",
                exc_info=e,
                extra={"event": "image", "album_id": album_pk, "object": stored.key},
            )
            await self._delete_blob_quietly(stored.key)
            raise

        image_upload_total.labels(result="success").inc()
        image_upload_size_bytes.observe(len(content))
        logger.info(
            "Image uploaded",
            extra={"event": "image", "album_id": album_pk, "image_id": image.id, "size": len(content)},
        )
        return await self._fetch_image(image.id, refresh=True)

    async def list_images(
        self,
        caller: TokenPayload,
        album_id: int,
        tags: Optional[List[str]] = None,
    ) -> List[Image]:
        """
        Images of an album, oldest first, with comments and their authors.
        When tags are given only images carrying every one of them are returned.
        """
        album = await self.albums.get_album_or_404(album_id)
        require(caller, Operation.LIST_IMAGES, album)

        query = select(Image).where(Image.album_id == album.id)
        for tag in tags or []:
            query = query.where(Image.tag_links.any(ImageTag.tag == tag))

        result = await self.db.execute(query.order_by(Image.uploaded_at, Image.id))
        return list(result.scalars().all())

    async def toggle_favorite(self, caller: TokenPayload, album_id: int, image_id: int) -> Image:
        """Flip the favorite flag of an image. Owner only."""
        album = await self.albums.get_album_or_404(album_id)
        image = await self._get_image_in_album(album, image_id)
        require(caller, Operation.TOGGLE_FAVORITE, album)

        image.is_favorite = not image.is_favorite
        await self.db.commit()

        image_operations_total.labels(operation="toggle_favorite", result="success").inc()
        return await self._fetch_image(image.id, refresh=True)

    async def add_comment(
        self,
        caller: TokenPayload,
        album_id: int,
        image_id: int,
        text: str,
    ) -> Image:
        """
        Append a comment to an image.

        Returns:
            The image with its comments (authors populated)
        """
        album = await self.albums.get_album_or_404(album_id)
        image = await self._get_image_in_album(album, image_id)
        require(caller, Operation.ADD_COMMENT, album)

        self.db.add(Comment(image_id=image.id, user_id=caller.id, text=text))
        await self.db.commit()

        image_operations_total.labels(operation="add_comment", result="success").inc()
        return await self._fetch_image(image.id, refresh=True)

    async def delete_image(self, caller: TokenPayload, album_id: int, image_id: int) -> None:
        """
        Delete an image row, then its stored object.
        A storage failure at that point is logged and not raised.
        """
        album = await self.albums.get_album_or_404(album_id)
        image = await self._get_image_in_album(album, image_id)
        require(caller, Operation.DELETE_IMAGE, album)

        storage_key = image.storage_key
        await self.db.delete(image)
        await self.db.commit()

        image_operations_total.labels(operation="delete", result="success").inc()
        logger.info(
            "Image deleted",
            extra={"event": "image", "album_id": album.id, "image_id": image_id},
        )
        await self._delete_blob_quietly(storage_key)

    async def _delete_blob_quietly(self, key: str) -> None:
        try:
            await self.storage.delete(key)
        except Exception as e:
            logger.warning(
                "Stored object cleanup failed",
                extra={"event": "image", "object": key, "error_type": type(e).__name__},
            )
