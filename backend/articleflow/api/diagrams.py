"""Diagram endpoints: static validation, server-side rendering and PNG upload."""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.diagram import (
    BlockValidationResponse,
    DiagramValidationResponse,
    RenderRequest,
    UploadRequest,
    UploadResponse,
    ValidateRequest,
    ValidateResponse,
)
from ..services import ArticleService
from ..services.diagram_renderer import DiagramRenderer, get_renderer, new_render_id
from ..services.diagram_validator import validate_markdown
from ..services.image_data import decode_image_data
from ..services.object_storage import R2Storage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diagrams", tags=["diagrams"])


@router.post("/validate", response_model=ValidateResponse)
def validate_diagrams(
    request: ValidateRequest,
    auth: AuthContext = Depends(require_auth),
):
    """Static checks for every mermaid block in a Markdown document."""
    results = [
        BlockValidationResponse(
            index=block.index,
            line_number=block.line_number,
            diagram=block.source,
            validation=DiagramValidationResponse(
                is_valid=block.validation.is_valid,
                errors=block.validation.errors,
                warnings=block.validation.warnings,
            ),
        )
        for block in validate_markdown(request.content)
    ]
    return ValidateResponse(all_valid=all(r.validation.is_valid for r in results), results=results)


@router.post("/render")
async def render_diagram(
    request: RenderRequest,
    auth: AuthContext = Depends(require_auth),
    renderer: DiagramRenderer = Depends(get_renderer),
):
    """Render one mermaid definition to SVG. Invalid definitions yield 422."""
    svg = await renderer.render(request.code, new_render_id())
    return Response(content=svg, media_type="image/svg+xml", headers={"Cache-Control": "no-cache"})


@router.post("/upload", response_model=UploadResponse)
def upload_diagram(
    request: UploadRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: R2Storage = Depends(get_storage),
):
    """Store a client-rendered PNG under the article's diagram folder."""
    if not request.image_data:
        raise ValidationError("Image data is required", field="image_data")

    ArticleService(db, auth.user_id).get_article(request.article_id)
    data, _ = decode_image_data(request.image_data)

    diagram_id = request.diagram_id or str(int(time.time() * 1000))
    stored = storage.upload(
        data,
        "image/png",
        folder=f"articles/{request.article_id}/diagrams",
        file_name=f"diagram-{diagram_id}.png",
    )
    logger.info("Uploaded diagram image", extra={"article_id": request.article_id, "key": stored.key})
    return UploadResponse(url=stored.url, key=stored.key)
