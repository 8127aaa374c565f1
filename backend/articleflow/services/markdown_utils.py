"""Markdown <-> HTML conversion for rich-text storage and editing.

``to_html`` is a markdown2 parse. ``to_markdown`` goes back through
markdownify, tuned to produce the Markdown dialect ``to_html`` reads:
ATX headings, ``-`` bullets, ``*`` emphasis and fenced code that keeps its
language tag. The inverse is best-effort; elements without a Markdown form
are reduced to their text.
"""

import re
from typing import Optional

import markdown2
from markdownify import MarkdownConverter

# tables + fenced code for article bodies, hard line breaks to match the
# editor, heading ids for anchors. highlightjs-lang keeps Pygments out and
# tags fenced code as class="<lang> language-<lang>". markdown2 obfuscates
# autolinked email addresses with character entities on its own.
_MARKDOWN_EXTRAS = {
    "tables": None,
    "fenced-code-blocks": None,
    "highlightjs-lang": None,
    "break-on-newline": None,
    "header-ids": None,
    "strike": None,
}

_LANGUAGE_CLASS_PREFIX = "language-"
_WHITESPACE_AFTER_BR = re.compile(r"(<br\s*/?>)\s+")


def to_html(markdown: str) -> str:
    """Render Markdown to HTML. Never raises on malformed input."""
    if not markdown:
        return ""
    return markdown2.markdown(markdown, extras=_MARKDOWN_EXTRAS)


def fence_language(pre) -> str:
    """Language of a ``<pre>`` block from a ``language-*`` class on it or its ``<code>``."""
    code = pre.find("code")
    for element in (code, pre):
        if element is None:
            continue
        for cls in element.get("class") or []:
            if cls.startswith(_LANGUAGE_CLASS_PREFIX):
                return cls[len(_LANGUAGE_CLASS_PREFIX):]
    return ""


class ArticleMarkdownConverter(MarkdownConverter):
    """markdownify converter for editor HTML.

    ``<br>`` becomes a bare newline (``to_html`` treats newlines as hard
    breaks) and fenced code bodies lose the trailing newline markdown2 adds.
    """

    def convert_br(self, el, text, *args, **kwargs):
        return "\n"

    def convert_pre(self, el, text, *args, **kwargs):
        return super().convert_pre(el, (text or "").strip("\n"), *args, **kwargs)


def to_markdown(html_text: Optional[str]) -> str:
    """Markdown for an HTML fragment. Never raises on unsupported markup."""
    if not html_text:
        return ""

    converter = ArticleMarkdownConverter(
        heading_style="ATX",
        bullets="-",
        code_language_callback=fence_language,
        escape_asterisks=False,
        escape_underscores=False,
        escape_misc=False,
        strip=["script", "style"],
    )
    markdown = converter.convert(_WHITESPACE_AFTER_BR.sub(r"\1", html_text))
    return markdown.strip()


def count_words(markdown: str) -> int:
    """Whitespace-delimited word count, as shown in article listings."""
    return len(markdown.split())
