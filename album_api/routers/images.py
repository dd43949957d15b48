"""
Images router: upload, listing, favorites and comments inside an album.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError

from album_api.dependencies.auth import get_current_caller
from album_api.dependencies.services import get_image_service
from album_api.exceptions import ValidationFailedError
from album_api.schemas.image import CommentCreate, ImageResponse, ImageUploadMetadata
from album_api.schemas.user import TokenPayload
from album_api.services.image import MAX_UPLOAD_BYTES, ImageService, parse_tags

router = APIRouter(prefix="/albums/{album_id}/images", tags=["Images"])


@router.post(
    "",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an image",
)
async def upload_image(
    album_id: int,
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    person: Optional[str] = Form(None),
    is_favorite: bool = Form(False),
    caller: TokenPayload = Depends(get_current_caller),
    image_service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    """
    Upload an image into an album. Owner only.

    - **file**: jpg, jpeg, png or gif, at most 5MB
    - **name**: Display name (defaults to the file name)
    - **tags**: Comma-separated tags
    - **person**: Person in the picture (optional)
    - **is_favorite**: Initial favorite flag
    """
    content = None
    filename = None
    if file is not None:
        # 한도 + 1 바이트까지만 읽어서 초과 여부 판정
        content = await file.read(MAX_UPLOAD_BYTES + 1)
        filename = file.filename
        await file.close()

    try:
        metadata = ImageUploadMetadata(
            name=name or None,
            tags=parse_tags(tags),
            person=person or None,
            is_favorite=is_favorite,
        )
    except ValidationError as e:
        fields = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
        raise ValidationFailedError("Invalid image metadata", invalid=fields)

    image = await image_service.upload_image(caller, album_id, content, filename, metadata)
    return ImageResponse.model_validate(image)


@router.get(
    "",
    response_model=List[ImageResponse],
    summary="List album images",
)
async def list_images(
    album_id: int,
    tags: Optional[str] = Query(None, description="Comma-separated; images must carry all of them"),
    caller: TokenPayload = Depends(get_current_caller),
    image_service: ImageService = Depends(get_image_service),
) -> List[ImageResponse]:
    """Images of an album with their comments. Owner or shared users."""
    images = await image_service.list_images(caller, album_id, parse_tags(tags))
    return [ImageResponse.model_validate(image) for image in images]


@router.put(
    "/{image_id}/favorite",
    response_model=ImageResponse,
    summary="Toggle favorite",
)
async def toggle_favorite(
    album_id: int,
    image_id: int,
    caller: TokenPayload = Depends(get_current_caller),
    image_service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    """Flip the favorite flag. Owner only."""
    image = await image_service.toggle_favorite(caller, album_id, image_id)
    return ImageResponse.model_validate(image)


@router.put(
    "/{image_id}/comments",
    response_model=ImageResponse,
    summary="Add a comment",
)
async def add_comment(
    album_id: int,
    image_id: int,
    comment_data: CommentCreate,
    caller: TokenPayload = Depends(get_current_caller),
    image_service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    """
    Add a comment to an image. Owner or shared users.

    Returns the image with all its comments.
    """
    image = await image_service.add_comment(caller, album_id, image_id, comment_data.comment)
    return ImageResponse.model_validate(image)


@router.delete(
    "/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an image",
)
async def delete_image(
    album_id: int,
    image_id: int,
    caller: TokenPayload = Depends(get_current_caller),
    image_service: ImageService = Depends(get_image_service),
) -> None:
    """Delete an image and its stored file. Owner only."""
    await image_service.delete_image(caller, album_id, image_id)
