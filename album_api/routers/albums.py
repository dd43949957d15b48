"""
Albums router for album management and sharing.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from album_api.dependencies.auth import get_current_caller, get_optional_caller
from album_api.dependencies.services import get_album_service
from album_api.schemas.album import AlbumCreate, AlbumResponse, AlbumUpdate, ShareRequest
from album_api.schemas.user import TokenPayload
from album_api.services.album import MAX_PAGE_SIZE, AlbumService

router = APIRouter(prefix="/albums", tags=["Albums"])


@router.post(
    "",
    response_model=AlbumResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new album",
)
async def create_album(
    album_data: AlbumCreate,
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumResponse:
    """
    Create a new album owned by the caller.

    - **name**: Album name (required)
    - **description**: Optional album description
    """
    album = await album_service.create_album(caller, album_data)
    return album_service.to_response(album, caller)


@router.get(
    "",
    response_model=List[AlbumResponse],
    summary="Get my albums",
)
async def get_my_albums(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1),
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> List[AlbumResponse]:
    """
    Albums owned by the caller. Albums shared with the caller are not included.

    - **skip**: Number of albums to skip (pagination)
    - **limit**: Maximum number of albums to return (max 100)
    """
    albums = await album_service.list_own_albums(caller, skip, min(limit, MAX_PAGE_SIZE))
    return [album_service.to_response(album, caller) for album in albums]


@router.get(
    "/shared",
    response_model=List[AlbumResponse],
    summary="Get albums shared with me",
)
async def get_shared_albums(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1),
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> List[AlbumResponse]:
    """Albums whose shared-user list contains the caller's email."""
    albums = await album_service.list_shared_albums(caller, skip, min(limit, MAX_PAGE_SIZE))
    return [album_service.to_response(album, caller) for album in albums]


@router.get(
    "/{album_id}",
    response_model=AlbumResponse,
    summary="Get album",
)
async def get_album(
    album_id: int,
    caller: Optional[TokenPayload] = Depends(get_optional_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumResponse:
    """
    Get a specific album. No authentication required.

    `shared_users` is only returned to the album owner.
    """
    album = await album_service.get_album(caller, album_id)
    return album_service.to_response(album, caller)


@router.put(
    "/{album_id}",
    response_model=AlbumResponse,
    summary="Update album",
)
async def update_album(
    album_id: int,
    update_data: AlbumUpdate,
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumResponse:
    """
    Update an album's metadata. Owner only.

    - **name**: New album name (optional)
    - **description**: New description (optional, empty string clears it)
    """
    album = await album_service.update_album(caller, album_id, update_data)
    return album_service.to_response(album, caller)


@router.delete(
    "/{album_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete album",
)
async def delete_album(
    album_id: int,
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> None:
    """
    Delete an album together with its images, comments and shares.
    Owner only.
    """
    await album_service.delete_album(caller, album_id)


@router.post(
    "/{album_id}/share",
    response_model=AlbumResponse,
    summary="Share album with users",
)
async def share_album(
    album_id: int,
    share_data: ShareRequest,
    caller: TokenPayload = Depends(get_current_caller),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumResponse:
    """
    Grant access to an album by email. Owner only.

    - **emails**: Non-empty list of registered users' emails

    Malformed emails → 400, unregistered emails → 404; both list the
    offending addresses in `invalid` and leave the album unchanged.
    """
    album = await album_service.share_album(caller, album_id, share_data.emails)
    return album_service.to_response(album, caller)
