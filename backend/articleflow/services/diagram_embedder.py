"""Replace fenced mermaid blocks in Markdown with uploaded image references.

For each ```mermaid block the embedder renders the definition to SVG,
uploads the bytes, and splices ``![Diagram](<url>)`` over the block's exact
source span. A block whose render or upload fails is logged and left
verbatim; the remaining blocks are still processed. Text outside diagram
blocks is never touched.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, MutableMapping, Optional

from .diagram_renderer import DiagramRenderer, new_render_id
from .diagram_validator import MERMAID_BLOCK_RE

logger = logging.getLogger(__name__)

SVG_CONTENT_TYPE = "image/svg+xml"

Uploader = Callable[[bytes, str], Awaitable[str]]


def diagram_cache_key(source: str) -> str:
    """Cache key for a diagram definition: ``mermaid-<first 8 hex of md5>``."""
    digest = hashlib.md5(source.strip().encode("utf-8")).hexdigest()[:8]
    return f"mermaid-{digest}"


def image_reference(url: str) -> str:
    return f"![Diagram]({url})"


@dataclass(frozen=True)
class DiagramBlock:
    """One fenced block: its payload and where it sits in the document."""
    index: int
    source: str
    start: int
    end: int

    @property
    def cache_key(self) -> str:
        return diagram_cache_key(self.source)


@dataclass
class EmbedResult:
    """Outcome of one embedding pass."""
    content: str
    diagrams: dict[str, str] = field(default_factory=dict)
    rendered: int = 0
    cached: int = 0
    failed: int = 0


def find_diagram_blocks(markdown: str) -> list[DiagramBlock]:
    """All mermaid blocks in source order, found in a single pass."""
    return [
        DiagramBlock(index=i, source=m.group(1), start=m.start(), end=m.end())
        for i, m in enumerate(MERMAID_BLOCK_RE.finditer(markdown))
    ]


class DiagramEmbedder:
    """Renders, uploads and splices diagrams for one document at a time.

    Args:
        renderer: Anything with ``async render(source, render_id) -> svg``.
        uploader: ``async (data, content_type) -> url``. An uploader with a
            ``prepare()`` method has it called once, before the first render,
            and only when some block actually needs rendering.
        concurrency: Blocks in flight at once. 1 keeps strict source order.
    """

    def __init__(self, renderer: DiagramRenderer, uploader: Uploader, concurrency: int = 1):
        self.renderer = renderer
        self.uploader = uploader
        self.concurrency = max(1, concurrency)

    async def embed_diagrams(
        self,
        markdown: str,
        cache: Optional[MutableMapping[str, str]] = None,
    ) -> str:
        """Return *markdown* with every convertible diagram replaced by an image reference."""
        result = await self.embed(markdown, cache)
        return result.content

    async def embed(
        self,
        markdown: str,
        cache: Optional[MutableMapping[str, str]] = None,
    ) -> EmbedResult:
        """Embed diagrams and report what happened.

        When *cache* is given, blocks whose definition is already in it are
        substituted without rendering, and every new upload is written back.
        """
        blocks = find_diagram_blocks(markdown)
        if not blocks:
            return EmbedResult(content=markdown)

        result = EmbedResult(content=markdown)
        urls: dict[int, str] = {}
        pending: list[DiagramBlock] = []

        for block in blocks:
            cached_url = cache.get(block.cache_key) if cache is not None else None
            if cached_url:
                urls[block.index] = cached_url
                result.cached += 1
            else:
                pending.append(block)

        if pending:
            self._prepare_uploader()

        if self.concurrency == 1:
            for block in pending:
                url = await self._convert(block)
                if url:
                    urls[block.index] = url
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(block: DiagramBlock) -> Optional[str]:
                async with semaphore:
                    return await self._convert(block)

            converted = await asyncio.gather(*(_bounded(b) for b in pending))
            for block, url in zip(pending, converted):
                if url:
                    urls[block.index] = url

        for block in pending:
            if block.index in urls:
                result.rendered += 1
                if cache is not None:
                    cache[block.cache_key] = urls[block.index]
            else:
                result.failed += 1

        for block in blocks:
            if block.index in urls:
                result.diagrams[block.cache_key] = urls[block.index]

        result.content = _splice(markdown, blocks, urls)
        logger.info(
            "Embedded diagrams",
            extra={
                "blocks": len(blocks),
                "rendered": result.rendered,
                "cached": result.cached,
                "failed": result.failed,
            },
        )
        return result

    def _prepare_uploader(self) -> None:
        prepare = getattr(self.uploader, "prepare", None)
        if prepare is not None:
            prepare()

    async def _convert(self, block: DiagramBlock) -> Optional[str]:
        """Render and upload one block. Returns None (after logging) on failure."""
        render_id = new_render_id()
        try:
            svg = await self.renderer.render(block.source, render_id)
            return await self.uploader(svg.encode("utf-8"), SVG_CONTENT_TYPE)
        except Exception as e:
            logger.error(
                "Diagram %d left unconverted: %s", block.index, e,
                extra={"render_id": render_id, "diagram_index": block.index},
            )
            return None


def _splice(markdown: str, blocks: list[DiagramBlock], urls: dict[int, str]) -> str:
    """Rebuild the text, swapping converted blocks for image references."""
    parts: list[str] = []
    cursor = 0
    for block in blocks:
        url = urls.get(block.index)
        if url is None:
            continue
        parts.append(markdown[cursor:block.start])
        parts.append(image_reference(url))
        cursor = block.end
    parts.append(markdown[cursor:])
    return "".join(parts)
