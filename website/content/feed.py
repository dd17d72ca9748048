"""Recency feed: the newest blogs as an RSS 2.0 document."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional
from xml.etree import ElementTree as ET

from website.core.hashing import Hasher
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.conditional import (
    CacheControlToken,
    SharedValidator,
    format_http_date,
)
from website.content.models import ContentRecord

logger = get_logger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DEFAULT_LAST_BUILD_DATE = "Thu, 01 Jan 1970 00:00:00 GMT"

ET.register_namespace("atom", ATOM_NS)


@dataclass(frozen=True)
class FeedItem:
    title: str
    link: str
    guid: str
    pub_date: str
    description: str


@dataclass(frozen=True)
class FeedSnapshot:
    """One complete build of the feed."""

    items: tuple[FeedItem, ...]
    last_build_date: str


class RecencyFeed:
    """Aggregate view over the ``size`` most recently created blogs.

    Rebuilt by the blog reconciler; each rebuild swaps in a complete snapshot
    and rotates the feed's own validator afterwards.
    """

    def __init__(
        self,
        cache: ContentCache,
        hasher: Hasher,
        site_url: str,
        title: str,
        description: str,
        size: int = 8,
        language: str = "en",
        describe: Optional[Callable[[ContentRecord], str]] = None,
    ):
        self.cache = cache
        self.site_url = site_url if site_url.endswith("/") else site_url + "/"
        self.title = title
        self.description = description
        self.size = size
        self.language = language
        self.describe = describe
        self.validator = SharedValidator(hasher, name="feed")
        self._snapshot = FeedSnapshot(items=(), last_build_date=DEFAULT_LAST_BUILD_DATE)

    @property
    def snapshot(self) -> FeedSnapshot:
        return self._snapshot

    def token(self) -> CacheControlToken:
        return self.validator.current()

    def link_for(self, record: ContentRecord) -> str:
        return f"{self.site_url}blog/{record.id}"

    def _item(self, record: ContentRecord) -> FeedItem:
        link = self.link_for(record)
        return FeedItem(
            title=record.title or record.name,
            link=link,
            guid=link,
            pub_date=format_http_date(record.created_at) if record.created_at else "",
            description=self.describe(record) if self.describe else "",
        )

    def rebuild(self) -> FeedSnapshot:
        """Rebuild from the cache's recent set, then rotate the feed token."""
        recent = self.cache.recent_top(self.size)
        items = tuple(self._item(record) for record in recent)
        last_build = items[0].pub_date if items and items[0].pub_date else DEFAULT_LAST_BUILD_DATE

        self._snapshot = FeedSnapshot(items=items, last_build_date=last_build)
        self.validator.rotate()
        logger.info("feed_rebuilt", items=len(items), last_build_date=last_build)
        return self._snapshot

    def to_xml(self) -> str:
        """Serialize the current snapshot as RSS 2.0."""
        snapshot = self._snapshot

        rss = ET.Element("rss", {"version": "2.0"})
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = self.title
        ET.SubElement(channel, "link").text = self.site_url
        ET.SubElement(channel, "description").text = self.description
        ET.SubElement(channel, "language").text = self.language
        ET.SubElement(channel, "lastBuildDate").text = snapshot.last_build_date
        ET.SubElement(
            channel,
            f"{{{ATOM_NS}}}link",
            {"href": f"{self.site_url}rss", "rel": "self", "type": "application/rss+xml"},
        )

        for item in snapshot.items:
            node = ET.SubElement(channel, "item")
            ET.SubElement(node, "title").text = item.title
            ET.SubElement(node, "link").text = item.link
            ET.SubElement(node, "guid").text = item.guid
            ET.SubElement(node, "pubDate").text = item.pub_date
            ET.SubElement(node, "description").text = item.description

        return ET.tostring(rss, encoding="unicode", xml_declaration=True)
