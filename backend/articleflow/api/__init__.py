"""API routes."""

from .articles import router as articles_router
from .diagrams import router as diagrams_router
from .publishing import router as publishing_router, article_publish_router
from .profile import router as profile_router
from .storage import router as storage_router
from .trial import router as trial_router

__all__ = [
    "articles_router",
    "diagrams_router",
    "publishing_router",
    "article_publish_router",
    "profile_router",
    "storage_router",
    "trial_router",
]
