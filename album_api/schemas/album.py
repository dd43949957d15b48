"""
Album-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AlbumBase(BaseModel):
    """Base schema with common album attributes."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class AlbumCreate(AlbumBase):
    """Schema for album creation."""

    pass


class AlbumUpdate(BaseModel):
    """Schema for updating album. Owner and sharing are not updatable here."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class AlbumResponse(AlbumBase):
    """
    Schema for album response.
    `shared_users` is only populated for the album owner.
    """

    id: int
    owner_id: int
    shared_users: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ShareRequest(BaseModel):
    """Emails to grant access to. Syntax is checked by the sharing service."""

    emails: List[str] = Field(..., min_length=1)
