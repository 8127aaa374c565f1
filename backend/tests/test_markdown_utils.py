"""Tests for Markdown <-> HTML normalization."""

from articleflow.services.diagram_embedder import find_diagram_blocks
from articleflow.services.markdown_utils import count_words, to_html, to_markdown


class TestToHtml:

    def test_heading_and_bold(self):
        html = to_html("# Title\n\nSome **bold** text.")
        assert "<h1 id=" in html
        assert "<strong>bold</strong>" in html

    def test_empty_input(self):
        assert to_html("") == ""

    def test_newlines_are_hard_breaks(self):
        html = to_html("line one\nline two")
        assert "<br" in html

    def test_tables(self):
        html = to_html("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<td>1</td>" in html

    def test_malformed_markdown_does_not_raise(self):
        html = to_html("**unclosed and [broken](link")
        assert "unclosed" in html


class TestToMarkdown:

    def test_heading_and_bold(self):
        md = to_markdown("<h1>Title</h1><p>Some <strong>bold</strong> text.</p>")
        assert any(line.startswith("# Title") for line in md.splitlines())
        assert "**bold**" in md

    def test_heading_with_attributes(self):
        assert to_markdown('<h2 id="setup">Setup</h2>') == "## Setup"

    def test_italic_and_link(self):
        md = to_markdown('<p><em>see</em> <a href="https://example.com">docs</a></p>')
        assert md == "*see* [docs](https://example.com)"

    def test_list_items(self):
        assert to_markdown("<ul><li>one</li><li>two</li></ul>") == "- one\n- two"

    def test_code_block_with_language(self):
        md = to_markdown('<pre><code class="language-python">print(1)\n</code></pre>')
        assert md == "```python\nprint(1)\n```"

    def test_inline_code(self):
        assert to_markdown("<p>run <code>make</code></p>") == "run `make`"

    def test_blockquote(self):
        assert to_markdown("<blockquote><p>Quoted</p></blockquote>") == "> Quoted"

    def test_entities_decoded(self):
        assert to_markdown("<p>a &amp; b &lt;c&gt;</p>") == "a & b <c>"

    def test_unsupported_markup_reduced_to_text(self):
        assert to_markdown("<div><span>cell</span></div>") == "cell"

    def test_editor_code_block_keeps_language(self):
        md = to_markdown('<pre><code class="language-mermaid">graph TD\n    A --&gt; B</code></pre>')
        assert md == "```mermaid\ngraph TD\n    A --> B\n```"

    def test_underscores_not_escaped(self):
        assert to_markdown("<p>call snake_case_name</p>") == "call snake_case_name"

    def test_empty_input(self):
        assert to_markdown("") == ""


class TestRoundTrip:

    def test_heading_and_paragraph(self):
        source = "# Title\n\nSome **bold** text."
        assert to_markdown(to_html(source)) == source

    def test_italic_paragraph(self):
        source = "An *important* note."
        assert to_markdown(to_html(source)) == source


def test_count_words():
    assert count_words("# Title\n\nthree more words") == 5
    assert count_words("") == 0


class TestCodeFenceRoundTrip:

    def test_fenced_code_tagged_with_language(self):
        html = to_html("```python\nprint(1)\n```")
        assert 'class="python language-python"' in html
        assert "codehilite" not in html

    def test_mermaid_block_survives(self):
        source = "Intro\n\n```mermaid\ngraph TD\n    A --> B\n```\n\nOutro"
        md = to_markdown(to_html(source))
        assert md == source
        assert len(find_diagram_blocks(md)) == 1

    def test_python_block_survives(self):
        source = "```python\nprint(1)\n```"
        assert to_markdown(to_html(source)) == source

    def test_untagged_block_survives(self):
        source = "```\nplain text\n```"
        assert to_markdown(to_html(source)) == source
