"""Article generation through LiteLLM.

The prompt is a template with ``{{topic}}``, ``{{prompt}}``, ``{{wordCount}}``
and ``{{platform}}`` placeholders (the user's own template when they saved
one). The model is asked to answer with a JSON object; the first ``{...}``
span of the reply is parsed into a GeneratedArticle.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.config import settings
from ..exceptions import ArticleGenerationError, GenerationNotConfiguredError
from .markdown_utils import count_words

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = """You are a technical content writer creating high-quality articles for publication on {{platform}}.

Topic: {{topic}}

User Instructions: {{prompt}}

Requirements:
- Target word count: {{wordCount}} words
- Write in a clear, engaging, and professional tone
- Include practical examples and code snippets where relevant
- Structure the article with clear headings and subheadings
- Use ```mermaid fenced blocks for architecture and flow diagrams
- Ensure technical accuracy

Generate a complete article in Markdown format with:
1. A compelling title
2. A brief description (150-200 characters for SEO)
3. 3-5 relevant tags
4. The full article content in Markdown

Format your response as JSON:
{
  "title": "Article Title Here",
  "description": "Brief description for SEO",
  "tags": ["tag1", "tag2", "tag3"],
  "content": "Full article content in Markdown format..."
}
"""

TRIAL_TEMPLATE = """You are a technical content writer. Write a concise, high-quality article for {{platform}}.

Request: {{prompt}}

Requirements:
- Target word count: {{wordCount}} words
- Clear headings, practical examples and code snippets where relevant
- Markdown formatting

Format your response as JSON:
{
  "title": "Article Title Here",
  "content": "Full article content in Markdown format..."
}
"""

PLATFORM_NAMES = {
    "medium": "Medium",
    "devto": "Dev.to",
    "dzone": "DZone",
    "all": "multiple platforms (Medium, Dev.to, and DZone)",
}

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class GeneratedArticle:
    title: str
    content: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    word_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


def fill_template(template: str, topic: str, prompt: str, word_count: int, platform: str) -> str:
    """Substitute every placeholder occurrence."""
    values = {
        "{{topic}}": topic,
        "{{prompt}}": prompt,
        "{{wordCount}}": str(word_count),
        "{{platform}}": PLATFORM_NAMES.get(platform, platform),
    }
    for placeholder, value in values.items():
        template = template.replace(placeholder, value)
    return template


def parse_article_response(text: str) -> GeneratedArticle:
    """Extract the article JSON from a model reply.

    Raises:
        ArticleGenerationError: No JSON object, invalid JSON, or missing title/content.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ArticleGenerationError("Failed to parse article response: no JSON found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ArticleGenerationError(f"Failed to parse article response: {e}") from e

    if not isinstance(parsed, dict) or not parsed.get("title") or not parsed.get("content"):
        raise ArticleGenerationError(
            "Failed to parse article response: missing required fields title and content"
        )

    tags = parsed.get("tags")
    content = str(parsed["content"])
    return GeneratedArticle(
        title=str(parsed["title"]).strip(),
        content=content,
        description=str(parsed.get("description") or ""),
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        word_count=count_words(content),
    )


class ArticleGenerator:
    """Generates articles with the configured LiteLLM model."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
    ):
        self.model = model if model is not None else settings.llm_model
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.api_base = api_base if api_base is not None else settings.llm_api_base

    def is_configured(self) -> bool:
        return bool(self.model)

    @property
    def provider(self) -> str:
        """Provider prefix of a LiteLLM model string, e.g. ``anthropic``."""
        return self.model.split("/", 1)[0] if "/" in self.model else self.model

    def generate(
        self,
        topic: str,
        prompt: str = "",
        word_count: int = 2000,
        platform: str = "all",
        template: Optional[str] = None,
    ) -> GeneratedArticle:
        """Generate one article.

        Raises:
            GenerationNotConfiguredError: No model configured.
            ArticleGenerationError: Provider failure or unusable reply.
        """
        if not self.is_configured():
            raise GenerationNotConfiguredError()

        import litellm

        filled = fill_template(template or DEFAULT_TEMPLATE, topic, prompt, word_count, platform)
        kwargs: dict = {
            "model": self.model,
            "messages": [{"role": "user", "content": filled}],
            "max_tokens": settings.llm_max_tokens,
            "timeout": settings.llm_timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        started = time.monotonic()
        try:
            response = litellm.completion(**kwargs)
            text = response.choices[0].message.content or ""
        except Exception as e:
            logger.exception("Article generation call failed")
            raise ArticleGenerationError(f"Failed to generate article: {e}") from e
        elapsed_ms = int((time.monotonic() - started) * 1000)

        article = parse_article_response(text)

        usage = getattr(response, "usage", None)
        article.metadata = {
            "provider": self.provider,
            "model": getattr(response, "model", None) or self.model,
            "tokens_used": getattr(usage, "total_tokens", None),
            "generation_time_ms": elapsed_ms,
        }
        logger.info(
            "Generated article",
            extra={"model": self.model, "word_count": article.word_count, "duration_ms": elapsed_ms},
        )
        return article


def get_generator() -> ArticleGenerator:
    """FastAPI dependency."""
    return ArticleGenerator()


def get_trial_generator() -> ArticleGenerator:
    """FastAPI dependency for anonymous trial generation, billed to the trial key."""
    return ArticleGenerator(
        model=settings.trial_llm_model or settings.llm_model,
        api_key=settings.trial_llm_api_key or settings.llm_api_key,
    )
