"""Per-kind ingestion strategies.

Each content kind owns its directory, its file naming rule and whatever fields
ingestion derives from the file besides its hash. The ingestor and the
reconcilers dispatch through these objects instead of branching on the kind.
"""

import re
from dataclasses import replace
from pathlib import Path

from website.core.logging import get_logger
from website.content.markup import extract_title, extract_topics, render_blog
from website.content.models import ContentKind, ContentRecord

logger = get_logger(__name__)

MAX_NAME_LENGTH = 80

BLOG_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+\.(md|html)$")
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "ico", "svg", "webp")
STYLESHEET_EXTENSIONS = ("css",)


class KindStrategy:
    """Default strategy: accept names by pattern, no extra ingestion work."""

    kind: ContentKind
    name_pattern: re.Pattern[str]

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def accepts(self, name: str) -> bool:
        """Check whether a file name belongs to this kind."""
        return len(name) <= MAX_NAME_LENGTH and bool(self.name_pattern.match(name))

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def prepare(self, record: ContentRecord, data: bytes) -> ContentRecord:
        """Derive kind-specific fields from the file bytes before persisting."""
        return record

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, {str(self.directory)!r})"


class BlogStrategy(KindStrategy):
    """Blogs: markdown or HTML files with a title and optional topic tags."""

    kind = ContentKind.BLOG
    name_pattern = BLOG_NAME_RE

    def prepare(self, record: ContentRecord, data: bytes) -> ContentRecord:
        text = data.decode("utf-8", errors="replace")
        scan = extract_topics(text)
        for warning in scan.warnings:
            logger.warning("blog_topics_skipped", name=record.name, reason=warning)
        return replace(record, title=extract_title(text), topics=scan.topics)

    def render(self, name: str) -> str:
        """Read a blog file and render its body.

        Raises:
            OSError: If the file cannot be read
        """
        path = self.path_for(name)
        text = path.read_text(encoding="utf-8", errors="replace")
        return render_blog(text, path.suffix)


class StaticStrategy(KindStrategy):
    """Images and stylesheets, accepted by extension allowlist."""

    def __init__(self, kind: ContentKind, directory: Path, extensions: tuple[str, ...]):
        super().__init__(directory)
        self.kind = kind
        self.extensions = extensions
        self.name_pattern = re.compile(
            r"^[A-Za-z0-9][A-Za-z0-9_.-]*\.(" + "|".join(extensions) + r")$",
            re.IGNORECASE,
        )


def build_strategies(
    blogs_directory: Path,
    images_directory: Path,
    css_directory: Path,
) -> dict[ContentKind, KindStrategy]:
    """Build the strategy for every content kind."""
    return {
        ContentKind.BLOG: BlogStrategy(blogs_directory),
        ContentKind.IMAGE: StaticStrategy(ContentKind.IMAGE, images_directory, IMAGE_EXTENSIONS),
        ContentKind.STYLESHEET: StaticStrategy(
            ContentKind.STYLESHEET, css_directory, STYLESHEET_EXTENSIONS
        ),
    }
