"""
Image and comment Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from album_api.schemas.user import UserSummary


class ImageUploadMetadata(BaseModel):
    """Form fields sent alongside an uploaded file."""

    name: Optional[str] = Field(None, max_length=255)
    tags: List[str] = []
    person: Optional[str] = Field(None, max_length=255)
    is_favorite: bool = False


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: int
    text: str
    user: UserSummary
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImageResponse(BaseModel):
    """Schema for image response including tags and comments."""

    id: int
    album_id: int
    name: str
    file_url: str
    tags: List[str] = []
    person: Optional[str] = None
    is_favorite: bool
    size: int
    comments: List[CommentResponse] = []
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)
