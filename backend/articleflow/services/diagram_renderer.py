"""Mermaid rendering through a mermaid.ink compatible HTTP service.

The renderer is configured once per process (``get_renderer``) with the
article theme. It runs mermaid with ``securityLevel: loose``, which lets
diagram definitions carry click handlers and raw HTML labels: only feed it
diagrams that come from the article author or the generator, never from
anonymous visitors.
"""

from __future__ import annotations

import base64
import json
import logging
import re
import uuid
from functools import lru_cache
from typing import Any, Optional, Protocol

import httpx

from ..core.config import settings
from ..exceptions import DiagramRenderError

logger = logging.getLogger(__name__)

_SVG_ROOT_ID_RE = re.compile(r"<svg\b[^>]*?\bid=\"([^\"]+)\"")


class DiagramRenderer(Protocol):
    """Turns a diagram definition into an SVG document."""

    async def render(self, source: str, render_id: str) -> str:
        ...


def build_mermaid_config() -> dict[str, Any]:
    """Theme shared by every rendered article diagram."""
    return {
        "startOnLoad": False,
        "theme": "default",
        "themeVariables": {
            "primaryColor": "#f0f9ff",
            "primaryTextColor": "#1e293b",
            "primaryBorderColor": "#3b82f6",
            "lineColor": "#64748b",
            "secondaryColor": "#e0f2fe",
            "tertiaryColor": "#f8fafc",
            "background": "#ffffff",
            "mainBkg": "#ffffff",
            "secondBkg": "#f8fafc",
        },
        "securityLevel": "loose",
        "fontFamily": "system-ui, sans-serif",
        "sequence": {"wrap": True, "width": 150},
    }


def new_render_id() -> str:
    """Collision-free id for one render, used as the SVG root element id."""
    return f"mermaid-{uuid.uuid4().hex}"


def encode_state(source: str, config: dict[str, Any]) -> str:
    """Encode a diagram the way mermaid.live shares state: base64url JSON."""
    state = {"code": source, "mermaid": json.dumps(config)}
    raw = json.dumps(state).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def scope_svg_ids(svg: str, render_id: str) -> str:
    """Rename the SVG root id (and the CSS selectors keyed on it) to *render_id*.

    mermaid scopes its embedded stylesheet with ``#<root id>``; two diagrams
    inlined on one page with the same root id would restyle each other.
    """
    match = _SVG_ROOT_ID_RE.search(svg)
    if not match:
        return svg.replace("<svg", f'<svg id="{render_id}"', 1)
    original = match.group(1)
    svg = svg.replace(f'id="{original}"', f'id="{render_id}"')
    return svg.replace(f"#{original}", f"#{render_id}")


class MermaidInkRenderer:
    """Renders mermaid definitions to SVG via ``GET {base}/svg/<state>``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.mermaid_renderer_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.mermaid_render_timeout
        self.config = config or build_mermaid_config()
        self._transport = transport
        logger.info(
            "Mermaid renderer initialized",
            extra={"renderer_url": self.base_url, "theme": self.config.get("theme")},
        )

    async def render(self, source: str, render_id: str) -> str:
        """Render *source* to SVG. Raises DiagramRenderError on any failure."""
        source = source.strip()
        if not source:
            raise DiagramRenderError("Diagram definition is empty", render_id)

        url = f"{self.base_url}/svg/{encode_state(source, self.config)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise DiagramRenderError(f"Renderer unreachable: {e}", render_id) from e

        if response.status_code != 200:
            # mermaid.ink answers 400 with the parser message for invalid syntax.
            detail = response.text.strip()[:300]
            raise DiagramRenderError(
                f"Renderer returned {response.status_code}: {detail}", render_id
            )

        svg = response.text
        if "<svg" not in svg:
            raise DiagramRenderError("Renderer response is not an SVG document", render_id)

        logger.debug("Rendered diagram %s (%d bytes)", render_id, len(svg))
        return scope_svg_ids(svg, render_id)


@lru_cache(maxsize=1)
def get_renderer() -> MermaidInkRenderer:
    """Process-wide renderer; safe to call from concurrent requests."""
    return MermaidInkRenderer()
