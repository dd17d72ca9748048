"""Tests for blog payload materialization."""

import threading
import time

import pytest

from website.content.models import ContentKind
from website.core.exceptions import MaterializationError

HELLO = "# Hello\n\nBody with a [link](https://example.com).\n"


@pytest.fixture
def blog(sync_engine, content_dirs, write_file):
    write_file(content_dirs["blogs"] / "hello.md", HELLO)
    sync_engine.reconcile_all()
    return sync_engine.get_by_name(ContentKind.BLOG, "hello.md")


class TestPayloadMaterializer:
    """Test cases for PayloadMaterializer."""

    def test_should_render_payload_on_first_read(self, sync_engine, blog):
        """The rendered body is cached on the record."""
        record = sync_engine.materializer.materialize("hello.md")

        assert '<h1 class="page-title">Hello</h1>' in record.cached_payload
        assert sync_engine.get_by_name(ContentKind.BLOG, "hello.md").cached_payload == record.cached_payload

    def test_should_render_once_for_concurrent_readers(self, sync_engine, blog, mocker):
        """N concurrent first reads trigger exactly one file read."""
        strategy = sync_engine.materializer.strategy
        real_render = strategy.render
        calls = []

        def slow_render(name):
            calls.append(name)
            time.sleep(0.05)
            return real_render(name)

        mocker.patch.object(strategy, "render", side_effect=slow_render)
        barrier = threading.Barrier(8)
        results = []

        def read():
            barrier.wait()
            results.append(sync_engine.materializer.materialize("hello.md"))

        threads = [threading.Thread(target=read) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert calls == ["hello.md"]
        assert len({r.cached_payload for r in results}) == 1
        assert sync_engine.materializer._locks == {}

    def test_should_return_none_for_unknown_blog(self, sync_engine):
        """Unknown names are not an error."""
        assert sync_engine.materializer.materialize("nope.md") is None

    def test_should_recompute_after_eviction(self, sync_engine, blog):
        """A cleared payload is rebuilt transparently with the same hash."""
        first = sync_engine.materializer.materialize("hello.md")
        sync_engine.cache.update(ContentKind.BLOG, "hello.md", lambda r: r.without_payload())

        again = sync_engine.materializer.materialize("hello.md")

        assert again.cached_payload == first.cached_payload
        assert again.content_hash == blog.content_hash

    def test_should_raise_when_file_is_gone(self, sync_engine, blog, content_dirs):
        """A vanished file cannot be rendered."""
        (content_dirs["blogs"] / "hello.md").unlink()

        with pytest.raises(MaterializationError):
            sync_engine.materializer.materialize("hello.md")

        assert sync_engine.materializer._locks == {}

    def test_should_drop_render_locks_after_use(self, sync_engine, content_dirs, write_file):
        """Render locks do not outlive the reads of a blog."""
        for i in range(5):
            write_file(content_dirs["blogs"] / f"post-{i}.md", f"# Post {i}\n")
        sync_engine.reconcile_all()

        for i in range(5):
            sync_engine.materializer.materialize(f"post-{i}.md")

        assert sync_engine.materializer._locks == {}

    def test_should_touch_last_accessed(self, sync_engine, blog):
        """Touching records the serve time."""
        assert blog.last_accessed is None

        touched = sync_engine.materializer.touch("hello.md")

        assert touched.last_accessed is not None
        assert sync_engine.materializer.touch("nope.md") is None
