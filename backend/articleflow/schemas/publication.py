"""Publishing schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class PublishResponse(BaseModel):
    published_url: str
    article_id: str
    message: str


class TestDevToRequest(BaseModel):
    api_key: str = Field(..., min_length=1)


class TestDevToResponse(BaseModel):
    valid: bool
    username: Optional[str] = None
