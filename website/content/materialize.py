"""On-demand blog body rendering with one render per blog at a time."""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from website.core.clock import utcnow
from website.core.exceptions import MaterializationError
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.kinds import BlogStrategy
from website.content.metrics import PAYLOAD_RENDERS
from website.content.models import ContentKind, ContentRecord

logger = get_logger(__name__)


class _NameLock:
    """A render lock plus the number of readers holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class PayloadMaterializer:
    """Fills ``cached_payload`` of blog records on first read.

    Concurrent first readers of the same blog wait on a per-name lock and
    re-check the cache once they hold it, so exactly one of them reads and
    renders the file. A name's lock is dropped when its last reader leaves.
    """

    def __init__(
        self,
        cache: ContentCache,
        strategy: BlogStrategy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.strategy = strategy
        self.clock = clock
        self._locks: dict[str, _NameLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, name: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.setdefault(name, _NameLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[name]

    def materialize(self, name: str) -> Optional[ContentRecord]:
        """Return the cached blog with its payload present.

        Args:
            name: Blog file name

        Returns:
            The record, or None if no such blog is cached

        Raises:
            MaterializationError: If the file cannot be read or rendered
        """
        record = self.cache.get(ContentKind.BLOG, name)
        if record is None or record.cached_payload is not None:
            return record

        with self._locked(name):
            record = self.cache.get(ContentKind.BLOG, name)
            if record is None or record.cached_payload is not None:
                return record

            try:
                payload = self.strategy.render(name)
            except OSError as e:
                raise MaterializationError(f"Cannot render blog '{name}': {e}") from e
            PAYLOAD_RENDERS.inc()
            logger.debug("payload_rendered", name=name, size=len(payload))

            rendered_hash = record.content_hash

            def attach(current: ContentRecord) -> ContentRecord:
                # A newer ingestion replaced the record meanwhile
                if current.content_hash != rendered_hash:
                    return current
                return current.with_payload(payload)

            updated = self.cache.update(ContentKind.BLOG, name, attach)
            if updated is None or updated.cached_payload is None:
                return (updated or record).with_payload(payload)
            return updated

    def touch(self, name: str) -> Optional[ContentRecord]:
        """Mark a blog as served now."""
        now = self.clock()
        return self.cache.update(ContentKind.BLOG, name, lambda r: r.touched(now))
