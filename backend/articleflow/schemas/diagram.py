"""Diagram endpoint schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ValidateRequest(BaseModel):
    content: str


class DiagramValidationResponse(BaseModel):
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []


class BlockValidationResponse(BaseModel):
    index: int
    line_number: int
    diagram: str
    validation: DiagramValidationResponse


class ValidateResponse(BaseModel):
    all_valid: bool
    results: List[BlockValidationResponse]


class RenderRequest(BaseModel):
    code: str = Field(..., min_length=1)


class UploadRequest(BaseModel):
    """A client-rendered PNG. ``image_data`` is raw base64 or a data URL."""
    image_data: Optional[str] = None
    article_id: str
    diagram_id: Optional[str] = None


class UploadResponse(BaseModel):
    url: str
    key: str
