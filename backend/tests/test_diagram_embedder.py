"""Tests for the diagram embedder with in-memory renderer and uploader fakes."""

import asyncio

import pytest

from articleflow.exceptions import DiagramRenderError, StorageError, StorageNotConfiguredError
from articleflow.services.diagram_embedder import (
    DiagramEmbedder,
    diagram_cache_key,
    find_diagram_blocks,
)

GOOD = "```mermaid\ngraph TD\n    A --> B\n```"
BAD = "```mermaid\nnot a diagram\n```"


class FakeRenderer:
    """Renders anything except sources containing 'not a diagram'."""

    def __init__(self, delay: float = 0.0):
        self.calls: list[tuple[str, str]] = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def render(self, source: str, render_id: str) -> str:
        self.calls.append((source, render_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if "not a diagram" in source:
                raise DiagramRenderError("Parse error on line 1", render_id)
            return f'<svg id="{render_id}"><text>{source.strip()}</text></svg>'
        finally:
            self.in_flight -= 1


class FakeUploader:

    def __init__(self, fail: bool = False):
        self.uploads: list[tuple[bytes, str]] = []
        self.fail = fail

    async def __call__(self, data: bytes, content_type: str) -> str:
        if self.fail:
            raise StorageError("bucket unavailable")
        self.uploads.append((data, content_type))
        return f"https://cdn.example.com/diagrams/{len(self.uploads)}.svg"


def _embed(embedder, markdown, cache=None):
    return asyncio.run(embedder.embed(markdown, cache=cache))


class TestFindDiagramBlocks:

    def test_finds_blocks_in_order_with_spans(self):
        text = f"intro\n\n{GOOD}\n\nmiddle\n\n{BAD}\n"
        blocks = find_diagram_blocks(text)
        assert [b.index for b in blocks] == [0, 1]
        assert text[blocks[0].start:blocks[0].end] == GOOD
        assert text[blocks[1].start:blocks[1].end] == BAD

    def test_ignores_other_fences(self):
        assert find_diagram_blocks("```python\nprint(1)\n```") == []

    def test_closing_fence_on_last_statement_line(self):
        block = "```mermaid\ngraph TD\n    A-->B```"
        text = f"{block}\n\nprose stays prose\n\n```\nplain\n```\n"

        blocks = find_diagram_blocks(text)

        assert len(blocks) == 1
        assert text[blocks[0].start:blocks[0].end] == block
        assert blocks[0].source == "graph TD\n    A-->B"


class TestEmbedDiagrams:

    def test_no_diagrams_returns_input_unchanged(self):
        renderer = FakeRenderer()
        text = "# Title\n\n```python\nx = 1\n```\n"
        out = asyncio.run(DiagramEmbedder(renderer, FakeUploader()).embed_diagrams(text))
        assert out == text
        assert renderer.calls == []

    def test_single_block_is_replaced(self):
        uploader = FakeUploader()
        text = f"Before\n\n{GOOD}\n\nAfter"
        out = asyncio.run(DiagramEmbedder(FakeRenderer(), uploader).embed_diagrams(text))

        assert out.count("![Diagram](") == 1
        assert "```" not in out
        assert out == "Before\n\n![Diagram](https://cdn.example.com/diagrams/1.svg)\n\nAfter"
        data, content_type = uploader.uploads[0]
        assert content_type == "image/svg+xml"
        assert data.startswith(b"<svg")

    def test_failed_block_stays_verbatim_in_place(self):
        text = f"A\n\n{GOOD}\n\nB\n\n{BAD}\n\nC"
        result = _embed(DiagramEmbedder(FakeRenderer(), FakeUploader()), text)

        assert result.content.count("![Diagram](") == 1
        assert BAD in result.content
        assert result.content.index("![Diagram](") < result.content.index(BAD)
        assert result.content.startswith("A\n\n") and result.content.endswith("\n\nC")
        assert (result.rendered, result.failed, result.cached) == (1, 1, 0)

    def test_upload_failure_keeps_block(self):
        text = f"x\n{GOOD}\ny"
        out = asyncio.run(DiagramEmbedder(FakeRenderer(), FakeUploader(fail=True)).embed_diagrams(text))
        assert out == text

    def test_each_render_gets_unique_id(self):
        renderer = FakeRenderer()
        _embed(DiagramEmbedder(renderer, FakeUploader()), f"{GOOD}\n\n{GOOD}\n")
        ids = [render_id for _, render_id in renderer.calls]
        assert len(set(ids)) == 2
        assert all(i.startswith("mermaid-") for i in ids)

    def test_non_diagram_text_is_preserved(self):
        text = f"one\n{GOOD}\ntwo\n{GOOD}\nthree"
        result = _embed(DiagramEmbedder(FakeRenderer(), FakeUploader()), text)
        pieces = [p for p in result.content.split("\n") if not p.startswith("![Diagram]")]
        assert pieces == ["one", "two", "three"]


class TestCache:

    def test_cached_block_skips_rendering(self):
        renderer = FakeRenderer()
        source = "graph TD\n    A --> B\n"
        cache = {diagram_cache_key(source): "https://cdn.example.com/cached.svg"}

        result = _embed(DiagramEmbedder(renderer, FakeUploader()), GOOD, cache=cache)

        assert renderer.calls == []
        assert result.content == "![Diagram](https://cdn.example.com/cached.svg)"
        assert result.cached == 1

    def test_uploads_are_written_to_cache(self):
        cache: dict = {}
        result = _embed(DiagramEmbedder(FakeRenderer(), FakeUploader()), GOOD, cache=cache)
        key = diagram_cache_key("graph TD\n    A --> B\n")
        assert cache == {key: "https://cdn.example.com/diagrams/1.svg"}
        assert result.diagrams == cache

    def test_cache_key_format(self):
        key = diagram_cache_key("graph TD\nA-->B")
        assert key.startswith("mermaid-")
        assert len(key) == len("mermaid-") + 8


class TestConcurrency:

    def test_sequential_by_default(self):
        renderer = FakeRenderer(delay=0.01)
        text = "\n\n".join([GOOD.replace("B", f"B{i}") for i in range(3)])
        _embed(DiagramEmbedder(renderer, FakeUploader()), text)
        assert renderer.max_in_flight == 1

    def test_bounded_concurrency_keeps_positions(self):
        renderer = FakeRenderer(delay=0.01)
        sources = [GOOD.replace("B", f"B{i}") for i in range(4)]
        text = "\n\n".join(sources + [BAD])

        result = _embed(DiagramEmbedder(renderer, FakeUploader(), concurrency=2), text)

        assert renderer.max_in_flight == 2
        assert result.content.count("![Diagram](") == 4
        assert result.content.endswith(BAD)
        assert result.failed == 1


class PreparingUploader(FakeUploader):

    def __init__(self, fail_prepare: bool = False):
        super().__init__()
        self.prepared = 0
        self.fail_prepare = fail_prepare

    def prepare(self):
        self.prepared += 1
        if self.fail_prepare:
            raise StorageNotConfiguredError()


class TestUploaderPreparation:

    def test_prepared_once_when_blocks_need_rendering(self):
        uploader = PreparingUploader()
        _embed(DiagramEmbedder(FakeRenderer(), uploader), f"{GOOD}\n\n{GOOD.replace('B', 'C')}")
        assert uploader.prepared == 1

    def test_not_prepared_without_blocks(self):
        uploader = PreparingUploader(fail_prepare=True)
        result = _embed(DiagramEmbedder(FakeRenderer(), uploader), "no diagrams here")
        assert uploader.prepared == 0
        assert result.content == "no diagrams here"

    def test_not_prepared_when_everything_is_cached(self):
        uploader = PreparingUploader(fail_prepare=True)
        cache = {diagram_cache_key("graph TD\n    A --> B\n"): "https://cdn.example.com/cached.svg"}
        result = _embed(DiagramEmbedder(FakeRenderer(), uploader), GOOD, cache=cache)
        assert uploader.prepared == 0
        assert result.cached == 1

    def test_prepare_failure_aborts_before_rendering(self):
        renderer = FakeRenderer()
        with pytest.raises(StorageNotConfiguredError):
            _embed(DiagramEmbedder(renderer, PreparingUploader(fail_prepare=True)), GOOD)
        assert renderer.calls == []
