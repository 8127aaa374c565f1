"""Dev.to publishing through the Forem REST API."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from ..core.config import settings
from ..exceptions import PublishError

logger = logging.getLogger(__name__)

DEVTO_SITE_URL = "https://dev.to"
MAX_TAGS = 4

_MARKDOWN_IMAGE_RE = re.compile(r"!\[.*?\]\((https?://[^)\s]+)\)")
_HTML_IMAGE_RE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']")
_TAG_STRIP_RE = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class PublishResult:
    url: str
    platform_article_id: Optional[str]
    published: bool


def format_tags(tags: Optional[list[str]]) -> list[str]:
    """First four tags, lowercased, reduced to ``[a-z0-9]``, empties dropped."""
    cleaned = (_TAG_STRIP_RE.sub("", tag.lower()) for tag in (tags or [])[:MAX_TAGS])
    return [tag for tag in cleaned if tag]


def extract_cover_image(content: str) -> Optional[str]:
    """First Markdown image URL, else first ``<img src>``."""
    match = _MARKDOWN_IMAGE_RE.search(content or "") or _HTML_IMAGE_RE.search(content or "")
    return match.group(1) if match else None


def append_signature(content: str, signature: str) -> str:
    if not signature:
        return content
    return f"{content}\n\n---\n\n{signature}"


def build_author_signature(profile: Any) -> str:
    """Markdown "About the Author" section, empty when there is no profile."""
    if profile is None:
        return ""

    parts = ["## About the Author\n\n"]
    if profile.full_name:
        parts.append(f"Written by **{profile.full_name}**\n\n")
    if profile.bio:
        parts.append(f"{profile.bio}\n\n")

    links = []
    if profile.linkedin_handle:
        links.append(f"[LinkedIn](https://linkedin.com/in/{profile.linkedin_handle.lstrip('@')})")
    if profile.twitter_handle:
        links.append(f"[Twitter/X](https://twitter.com/{profile.twitter_handle.lstrip('@')})")
    if profile.github_handle:
        links.append(f"[GitHub](https://github.com/{profile.github_handle.lstrip('@')})")
    if profile.website:
        links.append(f"[Website]({profile.website})")
    if links:
        parts.append("Connect with me: " + " | ".join(links))

    return "".join(parts).rstrip()


class DevToClient:
    """Minimal Dev.to API client authenticated with a user's API key."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.devto_api_url).rstrip("/")
        self._transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={"api-key": self.api_key, "Accept": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def publish(self, article: Any, signature: str = "", published: bool = False) -> PublishResult:
        """Create the article on Dev.to. Drafts get the dashboard edit URL.

        Raises:
            PublishError: Transport failure or non-2xx response.
        """
        payload: dict[str, Any] = {
            "title": article.title,
            "published": published,
            "body_markdown": append_signature(article.content or "", signature),
            "tags": format_tags(article.tags),
        }
        if article.description:
            payload["description"] = article.description
        cover = extract_cover_image(article.content or "")
        if cover:
            payload["main_image"] = cover

        try:
            with self._client() as client:
                response = client.post("/articles", json={"article": payload})
        except httpx.HTTPError as e:
            raise PublishError(f"Dev.to is unreachable: {e}", platform="devto") from e

        if not response.is_success:
            raise PublishError(
                _error_message(response), platform="devto", status=response.status_code
            )

        data = response.json()
        remote_id = data.get("id")
        url = data.get("url") or ""
        if not published and remote_id:
            # Draft public URLs 404 until publication.
            url = f"{DEVTO_SITE_URL}/dashboard/posts/{remote_id}/edit"

        logger.info("Published article to Dev.to", extra={"devto_id": remote_id, "draft": not published})
        return PublishResult(
            url=url,
            platform_article_id=str(remote_id) if remote_id is not None else None,
            published=published,
        )

    def validate_api_key(self) -> tuple[bool, Optional[str]]:
        """``(True, username)`` when the key works, ``(False, None)`` otherwise."""
        try:
            with self._client() as client:
                response = client.get("/users/me")
        except httpx.HTTPError as e:
            logger.warning("Dev.to key check failed: %s", e)
            return False, None

        if not response.is_success:
            return False, None
        return True, response.json().get("username")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and (body.get("error") or body.get("message")):
        return str(body.get("error") or body.get("message"))
    return f"Dev.to API error: {response.status_code} {response.reason_phrase}"


def get_devto_client_factory() -> Callable[[str], DevToClient]:
    """FastAPI dependency: builds a client for a given API key."""
    return DevToClient
