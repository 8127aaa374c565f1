"""Object storage endpoints for article files."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.article import MarkdownUploadRequest, MarkdownUploadResponse
from ..services import ArticleService
from ..services.object_storage import R2Storage, get_storage

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.post("/upload", response_model=MarkdownUploadResponse)
def upload_markdown(
    request: MarkdownUploadRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: R2Storage = Depends(get_storage),
):
    """Publish the article's Markdown to object storage. Repeat calls return the first URL."""
    article, uploaded = ArticleService(db, auth.user_id).store_markdown(request.article_id, storage)
    return MarkdownUploadResponse(url=article.markdown_url, uploaded=uploaded)
