"""Tests for blog markup helpers."""

from website.content.markup import (
    UNTITLED,
    extract_title,
    extract_topics,
    render_blog,
    strip_topic_block,
)

BLOG = """<!-- topics -->
- python
---
- Web Dev
<!-- /topics -->

# Hello *World*

Some [link](https://example.com).
"""


class TestExtractTitle:
    """Test cases for extract_title."""

    def test_should_use_markdown_heading(self):
        """Heading markers and inline markup are stripped."""
        assert extract_title("# Hello\n\nBody") == "Hello"
        assert extract_title("## Closed heading ##\n") == "Closed heading"

    def test_should_skip_topic_block_and_comments(self):
        """The topic block never becomes the title."""
        assert extract_title(BLOG) == "Hello World"
        assert extract_title("<!-- draft -->\n\n# Real\n") == "Real"

    def test_should_use_html_heading(self):
        """HTML blogs may start with an h1."""
        assert extract_title('<h1 class="x">Hi &amp; bye</h1>\n<p>x</p>') == "Hi & bye"

    def test_should_fall_back_to_first_line(self):
        """Without a heading the first meaningful line is used."""
        assert extract_title("\n\nJust **text** here\nmore") == "Just text here"

    def test_should_fall_back_to_untitled(self):
        """Empty content gets the placeholder title."""
        assert extract_title("") == UNTITLED
        assert extract_title("<!-- only a comment -->\n") == UNTITLED


class TestExtractTopics:
    """Test cases for extract_topics."""

    def test_should_read_topics_ignoring_dividers(self):
        """Tags keep their order; divider lines are skipped."""
        scan = extract_topics(BLOG)

        assert scan.topics == ("python", "Web Dev")
        assert scan.warnings == []

    def test_should_drop_duplicate_topics(self):
        """Duplicates are compared case-insensitively."""
        text = "<!-- topics -->\n- Python\n- python\n<!-- /topics -->\n"
        assert extract_topics(text).topics == ("Python",)

    def test_should_warn_when_block_is_missing(self):
        """A blog without topics is still valid."""
        scan = extract_topics("# Title\n\nBody\n")

        assert scan.topics == ()
        assert scan.warnings == ["no topic block found"]

    def test_should_warn_on_truncated_content(self):
        """Fewer than two lines cannot hold a topic block."""
        scan = extract_topics("# Title only")

        assert scan.topics == ()
        assert len(scan.warnings) == 1

    def test_should_warn_on_garbled_lines(self):
        """Unrecognized lines are skipped with a warning."""
        text = "<!-- topics -->\n- ok\n* \nnot a tag!\n"
        scan = extract_topics(text)

        assert scan.topics == ("ok",)
        assert any("unrecognized" in w for w in scan.warnings)
        assert "topic block is not terminated" in scan.warnings


class TestRenderBlog:
    """Test cases for render_blog."""

    def test_should_render_markdown_with_attributes(self):
        """Titles get the page-title class and links open in a new tab."""
        html = render_blog(BLOG)

        assert '<h1 class="page-title">' in html
        assert 'target="_blank"' in html
        assert "topics" not in html

    def test_should_render_fenced_code_and_tables(self):
        """The common extensions are enabled."""
        html = render_blog("```python\nprint(1)\n```\n\n| a | b |\n|---|---|\n| 1 | 2 |\n")

        assert "code-container" in html
        assert "<table>" in html

    def test_should_wrap_fenced_code_in_container(self):
        """Fenced code gets a language header, a copy button and a bare pre."""
        html = render_blog("# T\n\n```python\nif a < b:\n    pass\n```\n")

        assert (
            '<div class="code-container"><div class="code-header">'
            '<span class="code-language">python</span>'
            '<button class="copy-button" onclick="copyCode(this)">Copy</button></div>'
            "<pre>if a &lt; b:\n    pass\n</pre></div>"
        ) in html
        assert "<code" not in html

    def test_should_label_code_without_language(self):
        """A fence without an info string is labelled Code."""
        html = render_blog("```\nls -la\n```\n")

        assert '<span class="code-language">Code</span>' in html
        assert "<pre>ls -la\n</pre>" in html

    def test_should_pass_html_through(self):
        """HTML blogs are served as written, minus the topic block."""
        text = "<!-- topics -->\n- a\n<!-- /topics -->\n<h1>Hi</h1>"
        assert render_blog(text, ".html").strip() == "<h1>Hi</h1>"

    def test_should_leave_unterminated_block(self):
        """Only a complete block is stripped."""
        assert strip_topic_block("<!-- topics -->\n- a\n") == "<!-- topics -->\n- a\n"
