"""Data models for tracked content."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class ContentKind(str, Enum):
    """The kinds of content the engine keeps in sync."""

    BLOG = "blog"
    IMAGE = "image"
    STYLESHEET = "stylesheet"


@dataclass(frozen=True)
class ContentRecord:
    """One tracked file.

    Records are immutable: every change produces a new value that replaces the
    previous one in the cache, so a reader only ever sees complete records.
    """

    kind: ContentKind
    name: str
    content_hash: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cached_payload: Optional[str] = field(default=None, compare=False)
    last_accessed: Optional[datetime] = field(default=None, compare=False)
    # Blog only
    title: Optional[str] = None
    topics: tuple[str, ...] = ()

    @property
    def last_modified(self) -> Optional[datetime]:
        """Modification time used for conditional requests."""
        return self.updated_at or self.created_at

    def with_payload(self, payload: str) -> "ContentRecord":
        return replace(self, cached_payload=payload)

    def without_payload(self) -> "ContentRecord":
        return replace(self, cached_payload=None)

    def touched(self, when: datetime) -> "ContentRecord":
        return replace(self, last_accessed=when)

    def carry_runtime_state(self, previous: "ContentRecord | None") -> "ContentRecord":
        """Keep the access time of the record this one replaces.

        The payload is not carried over: a new hash means the rendered body
        is stale.
        """
        if previous is None or previous.last_accessed is None:
            return self
        if previous.content_hash == self.content_hash:
            return replace(
                self,
                last_accessed=previous.last_accessed,
                cached_payload=self.cached_payload or previous.cached_payload,
            )
        return replace(self, last_accessed=previous.last_accessed)


@dataclass(frozen=True)
class Topic:
    """A name-unique tag."""

    id: int
    name: str

