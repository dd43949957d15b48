"""
User and session-related Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr


class VerifiedIdentity(BaseModel):
    """Identity returned by the external provider after a code exchange."""

    external_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None


class UserResponse(BaseModel):
    """Schema for user response."""

    id: int
    email: EmailStr
    name: str
    profile_picture: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Author information embedded in comments."""

    id: int
    name: str
    profile_picture: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(BaseModel):
    message: str = "User information fetched successfully."
    user: UserResponse


class Token(BaseModel):
    """Schema for an issued session credential."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenPayload(BaseModel):
    """
    Verified session claims: the caller identity seen by every protected
    operation.
    """

    id: int
    email: str
    role: str = "user"
    exp: datetime
