"""Blog markup helpers: title and topic extraction, body rendering.

A blog file may carry a topic block anywhere in its body::

    <!-- topics -->
    - python
    ---
    - web
    <!-- /topics -->

Each ``- name`` line tags the blog; divider lines are ignored.
"""

import html
import re
from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

import markdown
from markdown.extensions import Extension
from markdown.extensions.fenced_code import FencedBlockPreprocessor
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor

UNTITLED = "Untitled"
TOPICS_START = "<!-- topics -->"
TOPICS_END = "<!-- /topics -->"

DEFAULT_MD_EXTENSIONS = ("fenced_code", "tables", "sane_lists")

_MD_HEADING_RE = re.compile(r"^#{1,6}\s+(.+?)(?:\s+#+)?$")
_HTML_HEADING_RE = re.compile(r"^<h[1-6][^>]*>(.*?)</h[1-6]>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_EMPHASIS_RE = re.compile(r"[*_`]+")
_TOPIC_RE = re.compile(r"^[-*+]\s+([A-Za-z0-9][A-Za-z0-9 _.+#-]{0,63})$")
_DIVIDER_RE = re.compile(r"^(?:-{3,}|\*{3,}|_{3,}|={3,})$")


def _clean_inline(text: str) -> str:
    text = _TAG_RE.sub("", text)
    text = _EMPHASIS_RE.sub("", text)
    return " ".join(html.unescape(text).split())


def extract_title(text: str) -> str:
    """Extract a blog title with a single line scan.

    The first meaningful line wins: blank lines, HTML comments and the topic
    block are skipped. Heading markers and inline markup are stripped.

    Args:
        text: Full blog source

    Returns:
        The title, or ``Untitled`` if nothing usable was found
    """
    in_topics = False
    for line in text.splitlines():
        stripped = line.strip()
        if in_topics:
            in_topics = stripped != TOPICS_END
            continue
        if not stripped:
            continue
        if stripped == TOPICS_START:
            in_topics = True
            continue
        if stripped.startswith("<!--"):
            continue

        match = _MD_HEADING_RE.match(stripped) or _HTML_HEADING_RE.match(stripped)
        title = _clean_inline(match.group(1) if match else stripped)
        if title:
            return title
    return UNTITLED


@dataclass
class TopicScan:
    """Outcome of scanning a blog for its topic block."""

    topics: tuple[str, ...] = ()
    warnings: list[str] = field(default_factory=list)


def extract_topics(text: str) -> TopicScan:
    """Extract topic tags from the delimited topic block.

    Missing or malformed blocks are reported as warnings; they never fail the
    blog. Tags keep their first spelling and order, duplicates are dropped
    case-insensitively.
    """
    lines = text.splitlines()
    scan = TopicScan()

    if len(lines) < 2:
        scan.warnings.append("content too short for a topic block")
        return scan

    found: list[str] = []
    seen: set[str] = set()
    state = "before"

    for number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if state == "before":
            if stripped == TOPICS_START:
                state = "inside"
            continue

        if stripped == TOPICS_END:
            state = "after"
            break
        if not stripped or _DIVIDER_RE.match(stripped):
            continue

        match = _TOPIC_RE.match(stripped)
        if match is None:
            scan.warnings.append(f"unrecognized topic line {number}: {stripped!r}")
            continue

        name = " ".join(match.group(1).split())
        if name.lower() not in seen:
            seen.add(name.lower())
            found.append(name)

    if state == "before":
        scan.warnings.append("no topic block found")
    elif state == "inside":
        scan.warnings.append("topic block is not terminated")

    scan.topics = tuple(found)
    return scan


def strip_topic_block(text: str) -> str:
    """Remove the topic block so it does not leak into the rendered page."""
    start = text.find(TOPICS_START)
    if start == -1:
        return text
    end = text.find(TOPICS_END, start)
    if end == -1:
        return text
    return text[:start] + text[end + len(TOPICS_END) :]


class BlogAttributesTreeprocessor(Treeprocessor):
    """Marks the page title and opens links in a new tab."""

    def run(self, root: Element) -> None:
        for heading in root.iter("h1"):
            heading.set("class", "page-title")
        for link in root.iter("a"):
            link.set("target", "_blank")
            link.set("rel", "noopener")


CODE_LABEL = "Code"


def code_container(code: str, language: str | None = None) -> str:
    """HTML for one code block: a header with its language and a copy button."""
    label = html.escape(language.strip()) if language and language.strip() else CODE_LABEL
    return (
        '<div class="code-container">'
        '<div class="code-header">'
        f'<span class="code-language">{label}</span>'
        '<button class="copy-button" onclick="copyCode(this)">Copy</button>'
        "</div>"
        f"<pre>{html.escape(code, quote=False)}</pre>"
        "</div>"
    )


class CodeContainerPreprocessor(Preprocessor):
    """Stashes fenced code blocks as :func:`code_container` markup.

    Runs before ``fenced_code`` so every fence is consumed here; the stashed
    HTML is restored verbatim after rendering.
    """

    FENCED_BLOCK_RE = FencedBlockPreprocessor.FENCED_BLOCK_RE

    def run(self, lines: list[str]) -> list[str]:
        text = "\n".join(lines)
        while True:
            match = self.FENCED_BLOCK_RE.search(text)
            if match is None:
                break
            container = code_container(match.group("code"), match.group("lang"))
            placeholder = self.md.htmlStash.store(container)
            text = f"{text[: match.start()]}\n{placeholder}\n{text[match.end() :]}"
        return text.split("\n")


class BlogAttributesExtension(Extension):
    """Registers the blog tree and code block processors."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802
        md.preprocessors.register(CodeContainerPreprocessor(md), "code_container", 26)
        md.treeprocessors.register(BlogAttributesTreeprocessor(md), "blog_attributes", 5)


def render_blog(text: str, suffix: str = ".md") -> str:
    """Render a blog body to HTML.

    Markdown instances keep per-document state, so each call builds its own.

    Args:
        text: Blog source
        suffix: File extension; ``.html`` sources are served as written

    Returns:
        HTML fragment
    """
    body = strip_topic_block(text)
    if suffix.lower() == ".html":
        return body
    md = markdown.Markdown(
        extensions=[*DEFAULT_MD_EXTENSIONS, BlogAttributesExtension()],
        output_format="html",
    )
    return md.convert(body)
