"""Custom exception hierarchy for ArticleFlow."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Article errors
    ARTICLE_NOT_FOUND = "ARTICLE_NOT_FOUND"
    ALREADY_PUBLISHED = "ALREADY_PUBLISHED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth & rate limiting
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # External collaborators
    STORAGE_NOT_CONFIGURED = "STORAGE_NOT_CONFIGURED"
    STORAGE_ERROR = "STORAGE_ERROR"
    DIAGRAM_RENDER_FAILED = "DIAGRAM_RENDER_FAILED"
    GENERATION_NOT_CONFIGURED = "GENERATION_NOT_CONFIGURED"
    GENERATION_FAILED = "GENERATION_FAILED"
    PUBLISH_FAILED = "PUBLISH_FAILED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ArticleFlowException(Exception):
    """
    Base exception for all ArticleFlow errors.

    Carries a human-readable message, a machine-readable error code,
    the HTTP status to answer with, and optional details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON error body."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class ArticleNotFoundError(ArticleFlowException):
    """Article not found (or not visible to the caller)."""

    def __init__(self, article_id: str):
        super().__init__(
            f"Article not found: {article_id}",
            ErrorCode.ARTICLE_NOT_FOUND,
            status_code=404,
            details={"article_id": article_id}
        )


class AlreadyPublishedError(ArticleFlowException):
    """Article already has a publication on the target platform."""

    def __init__(self, article_id: str, platform: str, published_url: Optional[str]):
        super().__init__(
            f"Article already published to {platform}",
            ErrorCode.ALREADY_PUBLISHED,
            status_code=409,
            details={"article_id": article_id, "platform": platform, "published_url": published_url}
        )


class ValidationError(ArticleFlowException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(ArticleFlowException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(message, ErrorCode.UNAUTHORIZED, status_code=401)


class ForbiddenError(ArticleFlowException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, ErrorCode.FORBIDDEN, status_code=403)


class StorageNotConfiguredError(ArticleFlowException):
    """R2 credentials are missing."""

    def __init__(self):
        super().__init__(
            "Object storage is not configured. Set R2_ACCOUNT_ID, R2_ACCESS_KEY_ID "
            "and R2_SECRET_ACCESS_KEY.",
            ErrorCode.STORAGE_NOT_CONFIGURED,
            status_code=503,
        )


class StorageError(ArticleFlowException):
    """Upload to object storage failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        details = {"key": key} if key else {}
        super().__init__(message, ErrorCode.STORAGE_ERROR, status_code=502, details=details)


class DiagramRenderError(ArticleFlowException):
    """A diagram definition could not be rendered."""

    def __init__(self, message: str, render_id: Optional[str] = None):
        details = {"render_id": render_id} if render_id else {}
        super().__init__(message, ErrorCode.DIAGRAM_RENDER_FAILED, status_code=422, details=details)


class GenerationNotConfiguredError(ArticleFlowException):
    """No LLM model is configured for article generation."""

    def __init__(self):
        super().__init__(
            "Article generation is not configured. Set LLM_MODEL and LLM_API_KEY.",
            ErrorCode.GENERATION_NOT_CONFIGURED,
            status_code=503,
        )


class ArticleGenerationError(ArticleFlowException):
    """The LLM call failed or returned something unusable."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.GENERATION_FAILED, status_code=502)


class PublishError(ArticleFlowException):
    """The publishing platform rejected the request."""

    def __init__(self, message: str, platform: str, status: Optional[int] = None):
        details: Dict[str, Any] = {"platform": platform}
        if status is not None:
            details["upstream_status"] = status
        super().__init__(message, ErrorCode.PUBLISH_FAILED, status_code=502, details=details)
