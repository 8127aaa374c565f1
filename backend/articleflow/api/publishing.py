"""Publishing endpoints."""

from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.publication import PublishResponse, TestDevToRequest, TestDevToResponse
from ..services import ArticleService
from ..services.devto_publisher import DevToClient, get_devto_client_factory

router = APIRouter(prefix="/api/publishing", tags=["publishing"])
article_publish_router = APIRouter(prefix="/api/articles", tags=["publishing"])


@article_publish_router.post("/{article_id}/publish/devto", response_model=PublishResponse)
def publish_to_devto(
    article_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    client_factory: Callable[[str], DevToClient] = Depends(get_devto_client_factory),
):
    """Publish the article to Dev.to as a draft."""
    _article, result = ArticleService(db, auth.user_id).publish_to_devto(article_id, client_factory)
    return PublishResponse(
        published_url=result.url,
        article_id=article_id,
        message="Article published to Dev.to as draft",
    )


@router.post("/test-devto", response_model=TestDevToResponse)
def test_devto_connection(
    request: TestDevToRequest,
    auth: AuthContext = Depends(require_auth),
    client_factory: Callable[[str], DevToClient] = Depends(get_devto_client_factory),
):
    """Check a Dev.to API key before saving it."""
    valid, username = client_factory(request.api_key).validate_api_key()
    return TestDevToResponse(valid=valid, username=username)
