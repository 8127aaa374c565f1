"""Profile and settings schemas.

Settings responses report ``devto_configured`` and never the key itself.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    linkedin_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    github_handle: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    linkedin_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    github_handle: Optional[str] = None

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    devto_api_key: Optional[str] = None  # "" clears the stored key
    default_word_count: Optional[int] = Field(None, ge=500, le=5000)
    article_template: Optional[str] = None


class SettingsResponse(BaseModel):
    devto_configured: bool
    default_word_count: int
    article_template: Optional[str] = None


class AvatarUploadRequest(BaseModel):
    """Avatar image as a ``data:image/...;base64,`` URL, or raw base64 with ``content_type``."""
    image_data: str = Field(..., min_length=1)
    content_type: Optional[str] = None


class AvatarResponse(BaseModel):
    avatar_url: Optional[str] = None
