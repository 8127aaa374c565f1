"""Article schemas."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Platform = Literal["medium", "devto", "dzone", "all"]
ArticleStatus = Literal["draft", "generated", "published", "failed"]


class ArticleCreate(BaseModel):
    """Schema for creating a draft article."""
    title: str = Field(..., min_length=1, max_length=500)
    content: str = ""
    description: Optional[str] = None
    tags: List[str] = []
    platform: Platform = "all"
    article_type: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Designing Idempotent Webhooks",
                    "content": "# Designing Idempotent Webhooks\n\nRetries happen...",
                    "tags": ["api", "webhooks"],
                    "platform": "devto",
                }
            ]
        }
    }


class ArticleUpdate(BaseModel):
    """Partial update. ``content`` wins over ``rich_text_content`` when both are sent."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = None
    rich_text_content: Optional[str] = None  # HTML from the rich-text editor
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    platform: Optional[Platform] = None
    status: Optional[ArticleStatus] = None


class ArticleResponse(BaseModel):
    """Full article."""
    id: str
    user_id: str
    title: str
    content: str
    rich_text_content: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    word_count: int = 0
    platform: str
    article_type: Optional[str] = None
    status: str
    ai_provider: Optional[str] = None
    file_id: Optional[str] = None
    markdown_url: Optional[str] = None
    generation_metadata: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    generated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags(cls, v):
        return v or []

    class Config:
        from_attributes = True


class ArticleListItem(BaseModel):
    """Article summary for listings (no bodies)."""
    id: str
    title: str
    description: Optional[str] = None
    tags: List[str] = []
    word_count: int = 0
    platform: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags(cls, v):
        return v or []

    class Config:
        from_attributes = True


class GenerateRequest(BaseModel):
    """Parameters for AI article generation."""
    topic: str = Field(..., min_length=1, max_length=500)
    prompt: str = ""
    word_count: int = Field(2000, ge=500, le=5000)
    platform: Platform = "all"


class ProcessDiagramsResponse(BaseModel):
    """Result of embedding an article's diagrams."""
    content: str
    diagrams: Dict[str, str] = {}
    rendered: int = 0
    cached: int = 0
    failed: int = 0


class GenerationLogResponse(BaseModel):
    id: int
    article_id: Optional[str] = None
    action: str
    status: str
    ai_provider: Optional[str] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="log_metadata")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkdownUploadRequest(BaseModel):
    article_id: str = Field(..., min_length=1)


class MarkdownUploadResponse(BaseModel):
    url: str
    uploaded: bool  # False when the article already had a stored copy


class TrialGenerateRequest(BaseModel):
    prompt: str = Field(..., max_length=2000)


class TrialArticle(BaseModel):
    title: str
    content: str


class TrialSaveRequest(BaseModel):
    title: str = ""
    content: str = ""
    article_type: Optional[str] = Field(None, max_length=50)
