"""Periodic reclamation of rendered blog payloads."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Optional

from website.core.clock import utcnow
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.metrics import PAYLOAD_EVICTIONS
from website.content.models import ContentKind, ContentRecord

logger = get_logger(__name__)


class CacheEvictor:
    """Clears the payload of blogs nobody has read for a while.

    Only ``cached_payload`` is cleared; the record stays cached and is
    re-rendered on its next read. Blogs in the recent set and blogs that were
    never served are left alone.
    """

    def __init__(
        self,
        cache: ContentCache,
        staleness_threshold: timedelta,
        recent_count: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.staleness_threshold = staleness_threshold
        self.recent_count = recent_count
        self.clock = clock

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Run one sweep.

        Args:
            now: Reference time, defaults to the clock

        Returns:
            Names of the blogs whose payload was cleared
        """
        cutoff = (now or self.clock()) - self.staleness_threshold
        pinned = {record.name for record in self.cache.recent_top(self.recent_count)}

        def is_cold(record: ContentRecord) -> bool:
            return (
                record.name not in pinned
                and record.cached_payload is not None
                and record.last_accessed is not None
                and record.last_accessed < cutoff
            )

        evicted: list[str] = []
        for record in self.cache.values_snapshot(ContentKind.BLOG):
            if not is_cold(record):
                continue

            # Re-checked under the cache lock: a read may have touched it since
            def clear(current: ContentRecord) -> ContentRecord:
                if not is_cold(current):
                    return current
                evicted.append(current.name)
                return current.without_payload()

            self.cache.update(ContentKind.BLOG, record.name, clear)

        if evicted:
            PAYLOAD_EVICTIONS.inc(len(evicted))
            logger.info("payload_evicted", count=len(evicted), names=evicted)
        return evicted
