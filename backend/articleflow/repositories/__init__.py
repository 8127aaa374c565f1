"""Repository layer for database operations."""

from .article_repository import ArticleRepository
from .profile_repository import ProfileRepository

__all__ = ["ArticleRepository", "ProfileRepository"]
