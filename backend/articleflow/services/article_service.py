"""Article service: deep module for the article lifecycle.

Owns CRUD, the Markdown/HTML pair kept on every article, AI generation,
diagram embedding and publishing. Every operation is scoped to one user;
routes construct the service with the caller's id and never touch
repositories directly.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..exceptions import (
    AlreadyPublishedError,
    ArticleFlowException,
    ForbiddenError,
    GenerationNotConfiguredError,
    ValidationError,
)
from ..models import Article, GenerationLog
from ..repositories import ArticleRepository, ProfileRepository
from ..schemas.article import ArticleCreate, ArticleUpdate, GenerateRequest
from . import generation_log
from .article_generator import ArticleGenerator
from .devto_publisher import DevToClient, PublishResult, build_author_signature
from .diagram_embedder import DiagramEmbedder, EmbedResult
from .markdown_utils import count_words, to_html, to_markdown
from .object_storage import R2Storage

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "md": "text/markdown; charset=utf-8",
    "html": "text/html; charset=utf-8",
}


class ArticleService:
    """Article operations for a single user."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id
        self.repo = ArticleRepository(db, user_id=user_id)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def list_articles(self, skip: int = 0, limit: int = 50, status: Optional[str] = None) -> List[Article]:
        return self.repo.list(skip=skip, limit=limit, status=status)

    def get_article(self, article_id: str) -> Article:
        """Raises ArticleNotFoundError for missing articles and other users' articles."""
        return self.repo.get_by_id(article_id)

    def create_article(self, data: ArticleCreate) -> Article:
        article = self.repo.create(
            user_id=self.user_id,
            title=data.title,
            content=data.content,
            rich_text_content=to_html(data.content),
            description=data.description,
            tags=data.tags,
            word_count=count_words(data.content),
            platform=data.platform,
            article_type=data.article_type,
            status="draft",
        )
        self.db.commit()
        self.db.refresh(article)
        return article

    def update_article(self, article_id: str, data: ArticleUpdate) -> Article:
        """Partial update.

        Markdown is the source of truth: new ``content`` regenerates the HTML;
        HTML alone (from the rich-text editor) is converted back to Markdown.
        """
        article = self.repo.get_by_id(article_id)
        fields = data.model_dump(exclude_unset=True)

        if fields.get("content") is not None:
            self._set_content(article, fields["content"])
        elif fields.get("rich_text_content") is not None:
            html = fields["rich_text_content"]
            article.content = to_markdown(html)
            article.rich_text_content = html
            article.word_count = count_words(article.content)

        for name in ("title", "description", "tags", "platform", "status"):
            if name in fields and fields[name] is not None:
                setattr(article, name, fields[name])

        self.db.commit()
        self.db.refresh(article)
        return article

    def delete_article(self, article_id: str) -> None:
        """404 when missing, 403 when another user owns it."""
        article = ArticleRepository(self.db).get_by_id(article_id)
        if article.user_id != self.user_id:
            raise ForbiddenError("You can only delete your own articles")

        title = article.title
        self.repo.delete(article)
        self.db.commit()
        generation_log.log(
            self.db, self.user_id, action="delete", status="success",
            article_id=article_id, metadata={"title": title},
        )
        logger.info("Deleted article", extra={"article_id": article_id})

    def export_article(self, article_id: str, fmt: str) -> tuple[str, str, str]:
        """Return ``(filename, body, media_type)`` for a download."""
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(
                f"Unsupported format '{fmt}'. Use one of: {', '.join(EXPORT_FORMATS)}",
                field="format",
            )
        article = self.repo.get_by_id(article_id)
        if fmt == "md":
            body = article.content or ""
        else:
            body = article.rich_text_content or to_html(article.content or "")
        filename = f"{article.file_id or article.id}.{fmt}"
        return filename, body, EXPORT_FORMATS[fmt]

    def store_markdown(self, article_id: str, storage: R2Storage) -> tuple[Article, bool]:
        """Copy the article's Markdown to object storage once.

        Returns the article and whether this call uploaded it; an article that
        already has a ``markdown_url`` is returned untouched.
        """
        article = self.repo.get_by_id(article_id)
        if article.markdown_url:
            return article, False

        generation_log.log(
            self.db, self.user_id, action="upload_markdown", status="started", article_id=article_id,
        )
        try:
            stored = storage.upload(
                (article.content or "").encode("utf-8"),
                "text/markdown",
                folder=f"users/{self.user_id}",
                file_name=f"{article.file_id or article.id}.md",
            )
        except ArticleFlowException as e:
            generation_log.log(
                self.db, self.user_id, action="upload_markdown", status="failed",
                article_id=article_id, error_message=e.message,
            )
            raise

        article.markdown_url = stored.url
        self.db.commit()
        self.db.refresh(article)
        generation_log.log(
            self.db, self.user_id, action="upload_markdown", status="success",
            article_id=article_id, metadata={"markdown_url": stored.url, "key": stored.key},
        )
        return article, True

    def get_logs(self, article_id: str, limit: int = 100) -> List[GenerationLog]:
        self.repo.get_by_id(article_id)
        return generation_log.get_for_article(self.db, article_id, limit=limit)

    def get_user_logs(self, limit: int = 100) -> List[GenerationLog]:
        return generation_log.get_by_user(self.db, self.user_id, limit=limit)

    # ------------------------------------------------------------------
    # Diagrams
    # ------------------------------------------------------------------

    async def process_diagrams(self, article_id: str, embedder: DiagramEmbedder) -> EmbedResult:
        """Embed the article's diagrams, reusing and refreshing its image cache.

        The stored Markdown is left as is; the caller decides what to do with
        the processed content.
        """
        article = self.repo.get_by_id(article_id)
        cache = dict(article.diagram_images or {})

        result = await embedder.embed(article.content or "", cache=cache)

        if cache != (article.diagram_images or {}):
            article.diagram_images = cache
            self.db.commit()

        generation_log.log(
            self.db, self.user_id, action="process_diagrams",
            status="failed" if result.failed else "success",
            article_id=article_id,
            metadata={"rendered": result.rendered, "cached": result.cached, "failed": result.failed},
        )
        return result

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_article(self, request: GenerateRequest, generator: ArticleGenerator) -> Article:
        """Create a draft, fill it from the LLM, and log each step.

        On failure the draft is kept with status ``failed`` and the error is
        re-raised to the caller.
        """
        if not generator.is_configured():
            raise GenerationNotConfiguredError()

        template = None
        user_settings = ProfileRepository(self.db).get_settings(self.user_id)
        if user_settings and user_settings.article_template:
            template = user_settings.article_template

        article = self.repo.create(
            user_id=self.user_id,
            title=request.topic,
            content="",
            platform=request.platform,
            article_type="technical",
            status="draft",
            ai_provider=generator.provider or None,
        )
        self.db.commit()
        generation_log.log(
            self.db, self.user_id, action="generate", status="started",
            article_id=article.id, ai_provider=generator.provider or None,
            metadata={"topic": request.topic, "word_count": request.word_count, "platform": request.platform},
        )

        started = time.monotonic()
        try:
            generated = generator.generate(
                topic=request.topic,
                prompt=request.prompt,
                word_count=request.word_count,
                platform=request.platform,
                template=template,
            )
        except ArticleFlowException as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            article.status = "failed"
            article.error_message = e.message
            self.db.commit()
            generation_log.log(
                self.db, self.user_id, action="generate", status="failed",
                article_id=article.id, ai_provider=generator.provider or None,
                duration_ms=duration_ms, error_message=e.message,
            )
            raise

        article.title = generated.title
        article.description = generated.description
        article.tags = generated.tags
        article.generation_metadata = generated.metadata
        article.generated_at = datetime.now(timezone.utc)
        article.status = "generated"
        article.error_message = None
        self._set_content(article, generated.content)
        self.db.commit()
        self.db.refresh(article)

        generation_log.log(
            self.db, self.user_id, action="generate", status="success",
            article_id=article.id, ai_provider=generator.provider or None,
            duration_ms=generated.metadata.get("generation_time_ms"),
            metadata={"word_count": article.word_count, "model": generated.metadata.get("model")},
        )
        return article

    def save_trial_article(
        self,
        title: str,
        content: str,
        article_type: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Article:
        """Keep an article generated before sign-up, as a ``generated`` article."""
        title, content = (title or "").strip(), content or ""
        if not title or not content.strip():
            raise ValidationError("Title and content are required", field="content" if title else "title")

        profiles = ProfileRepository(self.db)
        profiles.get_or_create_profile(self.user_id, email)
        profiles.get_or_create_settings(self.user_id)

        article = self.repo.create(
            user_id=self.user_id,
            title=title,
            content="",
            platform="all",
            article_type=article_type or "tutorial",
            status="generated",
            generated_at=datetime.now(timezone.utc),
        )
        self._set_content(article, content)
        self.db.commit()
        self.db.refresh(article)

        generation_log.log(
            self.db, self.user_id, action="save_trial", status="success",
            article_id=article.id, metadata={"word_count": article.word_count},
        )
        return article

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish_to_devto(
        self,
        article_id: str,
        client_factory: Callable[[str], DevToClient],
    ) -> tuple[Article, PublishResult]:
        """Publish as a Dev.to draft and record the publication.

        Raises:
            ArticleNotFoundError: Missing or not owned.
            AlreadyPublishedError: A devto publication already exists (409).
            ValidationError: The user has no Dev.to API key.
            PublishError: Dev.to rejected the request.
        """
        article = self.repo.get_by_id(article_id)

        existing = self.repo.get_publication(article_id, "devto")
        if existing is not None:
            raise AlreadyPublishedError(article_id, "devto", existing.published_url)

        profiles = ProfileRepository(self.db)
        user_settings = profiles.get_settings(self.user_id)
        if user_settings is None or not user_settings.devto_api_key:
            raise ValidationError(
                "Dev.to API key not configured. Add it in your settings.",
                field="devto_api_key",
            )

        signature = build_author_signature(profiles.get_profile(self.user_id))
        client = client_factory(user_settings.devto_api_key)
        result = client.publish(article, signature=signature, published=False)

        self.repo.add_publication(
            article_id,
            "devto",
            platform_article_id=result.platform_article_id,
            published_url=result.url,
            status="published" if result.published else "draft",
        )
        article.status = "published"
        self.db.commit()
        self.db.refresh(article)

        generation_log.log(
            self.db, self.user_id, action="publish", status="success",
            article_id=article_id, metadata={"platform": "devto", "url": result.url},
        )
        return article, result

    # ------------------------------------------------------------------

    @staticmethod
    def _set_content(article: Article, content: str) -> None:
        article.content = content
        article.rich_text_content = to_html(content)
        article.word_count = count_words(content)
