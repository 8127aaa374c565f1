"""Database models."""

from .article import Article
from .generation_log import GenerationLog
from .publication import ArticlePublication
from .profile import Profile, UserSettings

__all__ = [
    "Article", "GenerationLog", "ArticlePublication",
    "Profile", "UserSettings",
]
