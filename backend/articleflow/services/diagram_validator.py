"""Static checks for mermaid blocks before they are rendered.

These are cheap structural checks (diagram type, bracket balance, graphs
without edges), not a parse. A block that passes can still be rejected by
the renderer; a block that fails here would certainly be rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# The closing fence is the first ``` that ends a line, whether it stands alone
# or trails the last statement (`A-->B```).
MERMAID_BLOCK_RE = re.compile(
    r"^```mermaid[ \t]*\n(.*?)```[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

_FLOW_TYPE_RE = re.compile(r"^(graph|flowchart)\s+(td|tb|lr|bt|rl)\b")

_DIAGRAM_TYPES = (
    "sequencediagram",
    "classdiagram",
    "statediagram",
    "erdiagram",
    "gantt",
    "pie",
    "journey",
    "gitgraph",
)

_EDGE_TOKENS = ("-->", "->", "---", "-.->", "==>", "~~~")

_PAIRS = (("[", "]", "brackets"), ("(", ")", "parentheses"), ("{", "}", "braces"))


@dataclass
class DiagramValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BlockValidation:
    """Validation outcome for one block of a Markdown document."""

    index: int          # 0-based among the document's mermaid blocks
    line_number: int    # 1-based line of the opening fence
    source: str
    validation: DiagramValidation


def extract_mermaid_blocks(content: str) -> list[tuple[int, str]]:
    """Extract all mermaid blocks from markdown content.

    Returns:
        List of (line_number, source) tuples. line_number is 1-based,
        source is the content between the ``` fences.
    """
    results: list[tuple[int, str]] = []
    for match in MERMAID_BLOCK_RE.finditer(content):
        line_number = content[:match.start()].count("\n") + 1
        results.append((line_number, match.group(1)))
    return results


def _has_known_type(first_line: str) -> bool:
    lowered = first_line.lower()
    if _FLOW_TYPE_RE.match(lowered):
        return True
    return lowered.startswith(_DIAGRAM_TYPES)


def validate_diagram(source: str) -> DiagramValidation:
    """Structural checks on a single diagram definition."""
    errors: list[str] = []
    warnings: list[str] = []

    lines = [line.strip() for line in (source or "").split("\n") if line.strip()]
    if not lines:
        return DiagramValidation(is_valid=False, errors=["Diagram is empty"])

    first_line = lines[0]
    if not _has_known_type(first_line):
        errors.append(f'Invalid or missing diagram type. First line: "{first_line}"')
        warnings.append(
            'Diagram should start with a valid type like "graph TD", '
            '"flowchart LR" or "sequenceDiagram"'
        )

    for opening, closing, name in _PAIRS:
        opened, closed = source.count(opening), source.count(closing)
        if opened != closed:
            errors.append(f"Unbalanced {name}: {opened} open, {closed} close")

    if first_line.lower().startswith(("graph", "flowchart")) and len(lines) > 1:
        if not any(token in source for token in _EDGE_TOKENS):
            warnings.append("Graph/flowchart diagram has no arrows/connections")

    return DiagramValidation(is_valid=not errors, errors=errors, warnings=warnings)


def validate_markdown(content: str) -> list[BlockValidation]:
    """Validate every mermaid block in a Markdown document, in source order."""
    return [
        BlockValidation(
            index=i,
            line_number=line_number,
            source=source,
            validation=validate_diagram(source),
        )
        for i, (line_number, source) in enumerate(extract_mermaid_blocks(content))
    ]
