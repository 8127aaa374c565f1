"""Trial endpoints: generate one article before signing up, then keep it.

``/generate`` is open to anonymous callers and draws from the costly rate
budget; ``/save`` stores the result for the now signed-in user.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.config import settings
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.article import ArticleResponse, TrialArticle, TrialGenerateRequest, TrialSaveRequest
from ..services import ArticleService
from ..services.article_generator import TRIAL_TEMPLATE, ArticleGenerator, get_trial_generator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trial", tags=["trial"])


@router.post("/generate", response_model=TrialArticle)
def generate_trial_article(
    request: TrialGenerateRequest,
    generator: ArticleGenerator = Depends(get_trial_generator),
):
    """Generate a short article. Nothing is stored."""
    prompt = request.prompt.strip()
    if not prompt:
        raise ValidationError("Prompt is required", field="prompt")

    generated = generator.generate(
        topic=prompt,
        prompt=prompt,
        word_count=settings.trial_word_count,
        platform="all",
        template=TRIAL_TEMPLATE,
    )
    logger.info("Generated trial article", extra={"word_count": generated.word_count})
    return TrialArticle(title=generated.title, content=generated.content)


@router.post("/save", response_model=ArticleResponse, status_code=201)
def save_trial_article(
    request: TrialSaveRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ArticleService(db, auth.user_id).save_trial_article(
        request.title, request.content, request.article_type, email=auth.email,
    )
