"""Article API endpoints.

Endpoints are thin: ArticleService owns the lifecycle and scopes every
operation to the authenticated user.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.config import settings
from ..database import get_db
from ..schemas.article import (
    ArticleCreate,
    ArticleListItem,
    ArticleResponse,
    ArticleUpdate,
    GenerateRequest,
    GenerationLogResponse,
    ProcessDiagramsResponse,
)
from ..services import ArticleService
from ..services.article_generator import ArticleGenerator, get_generator
from ..services.diagram_embedder import DiagramEmbedder
from ..services.diagram_renderer import DiagramRenderer, get_renderer
from ..services.object_storage import LazyDiagramUploader

router = APIRouter(prefix="/api/articles", tags=["articles"])


def get_embedder(renderer: DiagramRenderer = Depends(get_renderer)) -> DiagramEmbedder:
    """Storage is resolved only once a block needs uploading."""
    return DiagramEmbedder(
        renderer,
        LazyDiagramUploader(),
        concurrency=settings.diagram_render_concurrency,
    )


@router.get("", response_model=List[ArticleListItem])
def list_articles(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """List the caller's articles, newest first."""
    return ArticleService(db, auth.user_id).list_articles(skip=skip, limit=limit, status=status)


@router.post("", response_model=ArticleResponse, status_code=201)
def create_article(
    article: ArticleCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Create a draft article."""
    return ArticleService(db, auth.user_id).create_article(article)


@router.post("/generate", response_model=ArticleResponse, status_code=201)
def generate_article(
    request: GenerateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    generator: ArticleGenerator = Depends(get_generator),
):
    """Generate an article with the configured LLM."""
    return ArticleService(db, auth.user_id).generate_article(request, generator)


@router.get("/logs", response_model=List[GenerationLogResponse])
def get_user_logs(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """The caller's activity across all articles, newest first. Includes deletions."""
    return ArticleService(db, auth.user_id).get_user_logs(limit=limit)


@router.get("/{article_id}", response_model=ArticleResponse)
def get_article(
    article_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArticleService(db, auth.user_id).get_article(article_id)


@router.put("/{article_id}", response_model=ArticleResponse)
def update_article(
    article_id: str,
    update: ArticleUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Partial update; content changes keep the Markdown and HTML in sync."""
    return ArticleService(db, auth.user_id).update_article(article_id, update)


@router.delete("/{article_id}", status_code=204)
def delete_article(
    article_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    ArticleService(db, auth.user_id).delete_article(article_id)
    return Response(status_code=204)


@router.get("/{article_id}/download")
def download_article(
    article_id: str,
    format: str = Query("md"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Download the article as Markdown or HTML."""
    filename, body, media_type = ArticleService(db, auth.user_id).export_article(article_id, format)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{article_id}/process-diagrams", response_model=ProcessDiagramsResponse)
async def process_diagrams(
    article_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    embedder: DiagramEmbedder = Depends(get_embedder),
):
    """Render the article's mermaid blocks and return content with image references."""
    result = await ArticleService(db, auth.user_id).process_diagrams(article_id, embedder)
    return ProcessDiagramsResponse(
        content=result.content,
        diagrams=result.diagrams,
        rendered=result.rendered,
        cached=result.cached,
        failed=result.failed,
    )


@router.get("/{article_id}/logs", response_model=List[GenerationLogResponse])
def get_article_logs(
    article_id: str,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArticleService(db, auth.user_id).get_logs(article_id, limit=limit)
