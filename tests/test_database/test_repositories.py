"""Tests for the content store repositories."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from website.content.models import ContentKind, ContentRecord
from website.core.exceptions import StoreError
from website.database.base import Base
from website.database.repositories import (
    BlogRepository,
    BlogTopicRepository,
    StaticFileRepository,
    TopicRepository,
)
from website.database.retry import is_lock_error, with_db_retry


def blog(name, content_hash="h1", title="Title"):
    return ContentRecord(kind=ContentKind.BLOG, name=name, content_hash=content_hash, title=title)


def image(name, content_hash="i1"):
    return ContentRecord(kind=ContentKind.IMAGE, name=name, content_hash=content_hash)


class TestBlogRepository:
    """Test cases for BlogRepository."""

    @pytest.fixture
    def repo(self, session_factory):
        return BlogRepository(session_factory)

    def test_should_assign_identity_and_creation_time(self, repo):
        """Created blogs get an id and created_at but no updated_at."""
        repo.create(blog("hello.md"))

        stored = repo.find_by_name("hello.md")

        assert stored.id is not None
        assert stored.created_at is not None
        assert stored.updated_at is None
        assert stored.title == "Title"
        assert stored.content_hash == "h1"

    def test_should_return_none_when_not_found(self, repo):
        """Not found is None, not an error."""
        assert repo.find_by_name("missing.md") is None

    def test_should_set_updated_at_on_update(self, repo):
        """Updates persist the new hash and title."""
        repo.create(blog("hello.md"))
        stored = repo.find_by_name("hello.md")

        updated = repo.update(blog("hello.md", content_hash="h2", title="New"))

        assert updated.id == stored.id
        assert updated.content_hash == "h2"
        assert updated.title == "New"
        assert updated.updated_at is not None

    def test_should_fail_update_of_unknown_blog(self, repo):
        """Updating a blog that is not stored is a store error."""
        with pytest.raises(StoreError):
            repo.update(blog("ghost.md"))

    def test_should_delete_blog(self, repo):
        """Delete reports whether a row was removed."""
        repo.create(blog("hello.md"))

        assert repo.delete(blog("hello.md")) is True
        assert repo.delete(blog("hello.md")) is False
        assert repo.find_by_name("hello.md") is None

    def test_should_find_records_missing_from_names(self, repo):
        """Only records whose names are absent are returned."""
        for name in ("a.md", "b.md", "c.md"):
            repo.create(blog(name))

        missing = repo.find_missing_from_names({"a.md", "c.md"})

        assert [r.name for r in missing] == ["b.md"]
        assert len(repo.find_missing_from_names(set())) == 3
        assert len(repo.list_all()) == 3
        assert repo.count() == 3

    def test_should_raise_store_error_when_query_fails(self, repo, db_engine):
        """A failing query is distinguishable from not found."""
        Base.metadata.drop_all(db_engine)

        with pytest.raises(StoreError) as exc_info:
            repo.find_by_name("hello.md")

        assert "blog" in str(exc_info.value)


class TestStaticFileRepository:
    """Test cases for StaticFileRepository."""

    def test_should_scope_records_by_kind(self, session_factory):
        """Images and stylesheets share a table but not their names."""
        images = StaticFileRepository(session_factory, ContentKind.IMAGE)
        styles = StaticFileRepository(session_factory, ContentKind.STYLESHEET)

        images.create(image("logo.png"))
        styles.create(ContentRecord(kind=ContentKind.STYLESHEET, name="logo.png", content_hash="s1"))

        assert images.find_by_name("logo.png").content_hash == "i1"
        assert styles.find_by_name("logo.png").content_hash == "s1"
        assert images.count() == 1
        assert images.delete(image("logo.png")) is True
        assert styles.find_by_name("logo.png") is not None

    def test_should_reject_blog_kind(self, session_factory):
        """Static repositories only serve static kinds."""
        with pytest.raises(ValueError):
            StaticFileRepository(session_factory, ContentKind.BLOG)

    def test_should_update_hash(self, session_factory):
        """Updates set the new hash and updated_at."""
        images = StaticFileRepository(session_factory, ContentKind.IMAGE)
        images.create(image("logo.png"))

        updated = images.update(image("logo.png", content_hash="i2"))

        assert updated.content_hash == "i2"
        assert updated.updated_at is not None


class TestTopicRepositories:
    """Test cases for topics and blog/topic associations."""

    def test_should_create_and_find_topics(self, session_factory):
        """Topics are unique by name."""
        topics = TopicRepository(session_factory)

        created = topics.create("python")

        assert topics.find_by_name("python") == created
        assert topics.find_by_name("rust") is None
        with pytest.raises(StoreError):
            topics.create("python")

    def test_should_match_topic_names_case_insensitively(self, session_factory):
        """A topic keeps its first spelling and is found under any case."""
        topics = TopicRepository(session_factory)

        created = topics.create("Python")

        assert topics.find_by_name("python") == created
        assert topics.find_by_name("PYTHON").name == "Python"
        with pytest.raises(StoreError):
            topics.create("PYTHON")
        assert topics.count() == 1

    def test_should_share_topic_across_spellings(self, session_factory):
        """Blogs tagged with different spellings of a topic share one row."""
        blogs = BlogRepository(session_factory)
        blogs.create(
            ContentRecord(kind=ContentKind.BLOG, name="a.md", content_hash="h1", topics=("Python",))
        )
        blogs.create(
            ContentRecord(
                kind=ContentKind.BLOG, name="b.md", content_hash="h2", topics=("python", "PYTHON")
            )
        )

        assert blogs.topics.count() == 1
        assert blogs.blog_topics.count() == 2
        assert blogs.find_by_name("b.md").topics == ("Python",)

    def test_should_roll_back_blog_when_topic_link_fails(self, session_factory, mocker):
        """A failing association write leaves no blog row behind."""
        blogs = BlogRepository(session_factory)
        mocker.patch.object(
            blogs.blog_topics, "link_in", side_effect=StoreError("join table is unavailable")
        )

        with pytest.raises(StoreError):
            blogs.create(
                ContentRecord(kind=ContentKind.BLOG, name="a.md", content_hash="h1", topics=("web",))
            )

        assert blogs.find_by_name("a.md") is None
        assert blogs.topics.count() == 0

    def test_should_sync_associations(self, session_factory):
        """Associations can be created, listed and pruned."""
        blogs = BlogRepository(session_factory)
        topics = TopicRepository(session_factory)
        joins = BlogTopicRepository(session_factory)
        blogs.create(blog("hello.md"))
        blog_id = blogs.find_by_name("hello.md").id
        python, web = topics.create("python"), topics.create("web")

        joins.create(blog_id, python.id)
        joins.create(blog_id, web.id)

        assert joins.exists(blog_id, python.id)
        assert joins.topics_for(blog_id) == ["python", "web"]
        assert blogs.find_by_name("hello.md").topics == ("python", "web")

        assert joins.delete_missing(blog_id, [web.id]) == 1
        assert joins.topics_for(blog_id) == ["web"]

    def test_should_remove_associations_with_blog(self, session_factory):
        """Deleting a blog removes its join rows but keeps the topics."""
        blogs = BlogRepository(session_factory)
        topics = TopicRepository(session_factory)
        joins = BlogTopicRepository(session_factory)
        blogs.create(blog("hello.md"))
        blog_id = blogs.find_by_name("hello.md").id
        joins.create(blog_id, topics.create("python").id)

        blogs.delete(blog("hello.md"))

        assert joins.count() == 0
        assert topics.find_by_name("python") is not None


class TestRetry:
    """Test cases for lock retries."""

    @staticmethod
    def locked():
        return OperationalError("UPDATE blog", {}, Exception("database is locked"))

    def test_should_detect_lock_errors(self):
        """Lock errors are recognized directly and as a cause."""
        wrapped = StoreError("failed")
        wrapped.__cause__ = self.locked()

        assert is_lock_error(self.locked())
        assert is_lock_error(wrapped)
        assert not is_lock_error(OperationalError("SELECT", {}, Exception("no such table")))
        assert not is_lock_error(ValueError("x"))

    @patch("website.database.retry.time.sleep")
    def test_should_retry_lock_errors(self, mock_sleep):
        """Locked calls are retried with backoff until they succeed."""
        calls = []

        @with_db_retry(max_retries=3, base_delay=0.1)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise self.locked()
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2]

    @patch("website.database.retry.time.sleep")
    def test_should_not_retry_other_errors(self, mock_sleep):
        """Non-lock failures propagate at once."""

        @with_db_retry()
        def broken():
            raise StoreError("no such table")

        with pytest.raises(StoreError):
            broken()
        mock_sleep.assert_not_called()
