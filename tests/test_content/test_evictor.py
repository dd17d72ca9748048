"""Tests for the cache evictor."""

from datetime import datetime, timedelta

import pytest

from website.content.cache import ContentCache
from website.content.evictor import CacheEvictor
from website.content.models import ContentKind, ContentRecord

NOW = datetime(2026, 6, 1, 12, 0, 0)


def cached_blog(name, created_hours_ago, accessed_hours_ago=None, payload="<p>x</p>"):
    record = ContentRecord(
        kind=ContentKind.BLOG,
        name=name,
        content_hash=f"h-{name}",
        created_at=NOW - timedelta(hours=created_hours_ago),
        cached_payload=payload,
    )
    if accessed_hours_ago is not None:
        record = record.touched(NOW - timedelta(hours=accessed_hours_ago))
    return record


@pytest.fixture
def cache():
    cache = ContentCache()
    # recent set with recent_count=2: new1, new2
    cache.put(ContentKind.BLOG, "new1.md", cached_blog("new1.md", 1, accessed_hours_ago=10))
    cache.put(ContentKind.BLOG, "new2.md", cached_blog("new2.md", 2, accessed_hours_ago=10))
    cache.put(ContentKind.BLOG, "old.md", cached_blog("old.md", 100, accessed_hours_ago=5))
    cache.put(ContentKind.BLOG, "warm.md", cached_blog("warm.md", 200, accessed_hours_ago=1))
    cache.put(ContentKind.BLOG, "unread.md", cached_blog("unread.md", 300))
    return cache


@pytest.fixture
def evictor(cache):
    return CacheEvictor(cache, timedelta(hours=4), recent_count=2, clock=lambda: NOW)


class TestCacheEvictor:
    """Test cases for CacheEvictor."""

    def test_should_clear_only_cold_payloads(self, evictor, cache):
        """Stale, non-recent, previously served blogs lose their payload."""
        evicted = evictor.sweep()

        assert evicted == ["old.md"]
        assert cache.get(ContentKind.BLOG, "old.md").cached_payload is None
        assert cache.get(ContentKind.BLOG, "warm.md").cached_payload == "<p>x</p>"

    def test_should_never_evict_recent_set(self, evictor, cache):
        """The newest blogs keep their payload however cold they are."""
        evictor.sweep(now=NOW + timedelta(days=30))

        assert cache.get(ContentKind.BLOG, "new1.md").cached_payload is not None
        assert cache.get(ContentKind.BLOG, "new2.md").cached_payload is not None
        assert cache.get(ContentKind.BLOG, "warm.md").cached_payload is None

    def test_should_ignore_never_accessed_records(self, evictor, cache):
        """Payloads that were never served are left alone."""
        evictor.sweep(now=NOW + timedelta(days=30))

        assert cache.get(ContentKind.BLOG, "unread.md").cached_payload == "<p>x</p>"

    def test_should_keep_record_fields(self, evictor, cache):
        """Eviction is reclamation, not deletion."""
        before = cache.get(ContentKind.BLOG, "old.md")

        evictor.sweep()
        after = cache.get(ContentKind.BLOG, "old.md")

        assert after == before  # payload is not part of equality
        assert after.last_accessed == before.last_accessed

    def test_should_skip_records_touched_during_sweep(self, evictor, cache, mocker):
        """A read between snapshot and clear keeps the payload."""
        snapshot = cache.values_snapshot(ContentKind.BLOG)
        cache.update(ContentKind.BLOG, "old.md", lambda r: r.touched(NOW))
        mocker.patch.object(cache, "values_snapshot", return_value=snapshot)

        assert evictor.sweep() == []
        assert cache.get(ContentKind.BLOG, "old.md").cached_payload is not None

    def test_should_be_idempotent(self, evictor):
        """A second sweep has nothing left to clear."""
        evictor.sweep()
        assert evictor.sweep() == []
