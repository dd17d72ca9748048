"""Repository pattern for content store operations.

Every call runs in its own short session. ``None`` means "not found"; a failed
query raises :class:`StoreError`.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Generic, Optional, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from website.core.clock import utcnow
from website.core.exceptions import StoreError
from website.core.logging import get_logger
from website.content.models import ContentKind, ContentRecord, Topic

from .models import BlogModel, BlogTopicModel, StaticFileModel, TopicModel
from .retry import with_db_retry

logger = get_logger(__name__)

ModelType = TypeVar("ModelType")


class BaseRepository(ABC, Generic[ModelType]):
    """Base repository for common database operations."""

    def __init__(self, session_factory: sessionmaker[Session], model: type[ModelType]):
        self.session_factory = session_factory
        self.model = model

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Open a session, commit on success and translate store failures."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            table = getattr(self.model, "__tablename__", self.model.__name__)
            raise StoreError(f"Query on '{table}' failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @with_db_retry()
    def count(self) -> int:
        """Count stored entities."""
        with self.session_scope() as session:
            return session.scalar(select(func.count()).select_from(self.model)) or 0


class ContentRepository(BaseRepository[ModelType]):
    """Store adapter contract for one content kind."""

    kind: ContentKind

    @abstractmethod
    def create(self, record: ContentRecord) -> None:
        """Insert a new record. Identity and timestamps are assigned by the store."""

    @abstractmethod
    def update(self, record: ContentRecord) -> ContentRecord:
        """Persist a changed record and return the stored version."""

    @abstractmethod
    def delete(self, record: ContentRecord) -> bool:
        """Delete a record, returning whether a row was removed."""

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[ContentRecord]:
        """Look up a record by file name."""

    @abstractmethod
    def find_missing_from_names(self, names: Iterable[str]) -> list[ContentRecord]:
        """List records whose file name is not among ``names``."""

    @abstractmethod
    def list_all(self) -> list[ContentRecord]:
        """List every record of this kind."""


class BlogRepository(ContentRepository[BlogModel]):
    """Repository for blog records.

    A blog row and its topic associations are written in one transaction, so
    a failed write leaves the previous hash, title and topics in place.
    """

    kind = ContentKind.BLOG

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        topics: Optional["TopicRepository"] = None,
        blog_topics: Optional["BlogTopicRepository"] = None,
    ):
        super().__init__(session_factory, BlogModel)
        self.topics = topics or TopicRepository(session_factory)
        self.blog_topics = blog_topics or BlogTopicRepository(session_factory)

    def _query(self):  # type: ignore[no-untyped-def]
        return select(BlogModel).options(
            selectinload(BlogModel.blog_topics).selectinload(BlogTopicModel.topic)
        )

    @staticmethod
    def _to_record(model: BlogModel) -> ContentRecord:
        return ContentRecord(
            kind=ContentKind.BLOG,
            name=model.file_name,
            content_hash=model.hash,
            id=model.id,
            created_at=model.created_at,
            updated_at=model.updated_at,
            title=model.title,
            topics=tuple(bt.topic.name for bt in model.blog_topics),
        )

    def _sync_topics(
        self, session: Session, model: BlogModel, names: Iterable[str]
    ) -> tuple[list[str], int]:
        created: list[str] = []
        topic_ids: list[int] = []
        for name in names:
            topic, is_new = self.topics.get_or_create_in(session, name)
            if is_new:
                created.append(topic.name)
            if topic.id not in topic_ids:
                topic_ids.append(topic.id)
        removed = self.blog_topics.link_in(session, model.id, topic_ids)
        session.expire(model, ["blog_topics"])
        return created, removed

    @staticmethod
    def _log_topic_changes(name: str, created: list[str], removed: int) -> None:
        for topic in created:
            logger.info("topic_created", topic=topic, blog=name)
        if removed:
            logger.info("blog_topics_removed", name=name, count=removed)

    @with_db_retry()
    def create(self, record: ContentRecord) -> None:
        with self.session_scope() as session:
            model = BlogModel(
                title=record.title or record.name,
                file_name=record.name,
                hash=record.content_hash,
            )
            session.add(model)
            session.flush()
            created, removed = self._sync_topics(session, model, record.topics)
        self._log_topic_changes(record.name, created, removed)

    @with_db_retry()
    def update(self, record: ContentRecord) -> ContentRecord:
        with self.session_scope() as session:
            model = session.scalars(
                self._query().filter(BlogModel.file_name == record.name)
            ).one_or_none()
            if model is None:
                raise StoreError(f"Blog '{record.name}' vanished before update")
            model.hash = record.content_hash
            model.title = record.title or record.name
            model.updated_at = utcnow()
            session.flush()
            created, removed = self._sync_topics(session, model, record.topics)
            stored = self._to_record(model)
        self._log_topic_changes(record.name, created, removed)
        return stored

    @with_db_retry()
    def delete(self, record: ContentRecord) -> bool:
        with self.session_scope() as session:
            model = session.scalars(
                select(BlogModel).filter(BlogModel.file_name == record.name)
            ).one_or_none()
            if model is None:
                return False
            session.delete(model)
            return True

    @with_db_retry()
    def find_by_name(self, name: str) -> Optional[ContentRecord]:
        with self.session_scope() as session:
            model = session.scalars(
                self._query().filter(BlogModel.file_name == name)
            ).one_or_none()
            return self._to_record(model) if model else None

    @with_db_retry()
    def find_missing_from_names(self, names: Iterable[str]) -> list[ContentRecord]:
        with self.session_scope() as session:
            query = self._query().filter(BlogModel.file_name.not_in(list(names)))
            return [self._to_record(m) for m in session.scalars(query)]

    @with_db_retry()
    def list_all(self) -> list[ContentRecord]:
        with self.session_scope() as session:
            return [self._to_record(m) for m in session.scalars(self._query())]


class StaticFileRepository(ContentRepository[StaticFileModel]):
    """Repository for images and stylesheets, scoped to one kind."""

    _TYPES = {
        ContentKind.IMAGE: "IMAGE",
        ContentKind.STYLESHEET: "STYLESHEET",
    }

    def __init__(self, session_factory: sessionmaker[Session], kind: ContentKind):
        if kind not in self._TYPES:
            raise ValueError(f"Not a static file kind: {kind}")
        super().__init__(session_factory, StaticFileModel)
        self.kind = kind
        self.file_type = self._TYPES[kind]

    def _to_record(self, model: StaticFileModel) -> ContentRecord:
        return ContentRecord(
            kind=self.kind,
            name=model.name,
            content_hash=model.hash,
            id=model.id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _query(self):  # type: ignore[no-untyped-def]
        return select(StaticFileModel).filter(StaticFileModel.type == self.file_type)

    @with_db_retry()
    def count(self) -> int:
        with self.session_scope() as session:
            query = (
                select(func.count())
                .select_from(StaticFileModel)
                .filter(StaticFileModel.type == self.file_type)
            )
            return session.scalar(query) or 0

    @with_db_retry()
    def create(self, record: ContentRecord) -> None:
        with self.session_scope() as session:
            session.add(
                StaticFileModel(
                    name=record.name, hash=record.content_hash, type=self.file_type
                )
            )

    @with_db_retry()
    def update(self, record: ContentRecord) -> ContentRecord:
        with self.session_scope() as session:
            model = session.scalars(
                self._query().filter(StaticFileModel.name == record.name)
            ).one_or_none()
            if model is None:
                raise StoreError(f"{self.kind.value} '{record.name}' vanished before update")
            model.hash = record.content_hash
            model.updated_at = utcnow()
            session.flush()
            return self._to_record(model)

    @with_db_retry()
    def delete(self, record: ContentRecord) -> bool:
        with self.session_scope() as session:
            result = session.execute(
                delete(StaticFileModel).where(
                    StaticFileModel.type == self.file_type,
                    StaticFileModel.name == record.name,
                )
            )
            return result.rowcount == 1

    @with_db_retry()
    def find_by_name(self, name: str) -> Optional[ContentRecord]:
        with self.session_scope() as session:
            model = session.scalars(
                self._query().filter(StaticFileModel.name == name)
            ).one_or_none()
            return self._to_record(model) if model else None

    @with_db_retry()
    def find_missing_from_names(self, names: Iterable[str]) -> list[ContentRecord]:
        with self.session_scope() as session:
            query = self._query().filter(StaticFileModel.name.not_in(list(names)))
            return [self._to_record(m) for m in session.scalars(query)]

    @with_db_retry()
    def list_all(self) -> list[ContentRecord]:
        with self.session_scope() as session:
            return [self._to_record(m) for m in session.scalars(self._query())]


class TopicRepository(BaseRepository[TopicModel]):
    """Repository for topics.

    Topic names are unique regardless of case; the first spelling stored is
    the one every blog shares.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        super().__init__(session_factory, TopicModel)

    @staticmethod
    def _lookup(session: Session, name: str) -> Optional[TopicModel]:
        return session.scalars(
            select(TopicModel).filter(func.lower(TopicModel.name) == name.lower())
        ).first()

    def get_or_create_in(self, session: Session, name: str) -> tuple[TopicModel, bool]:
        """Find or insert a topic inside an open session.

        Returns:
            The topic and whether it was created
        """
        model = self._lookup(session, name)
        if model is not None:
            return model, False
        model = TopicModel(name=name)
        session.add(model)
        session.flush()
        return model, True

    @with_db_retry()
    def find_by_name(self, name: str) -> Optional[Topic]:
        with self.session_scope() as session:
            model = self._lookup(session, name)
            return Topic(id=model.id, name=model.name) if model else None

    @with_db_retry()
    def create(self, name: str) -> Topic:
        with self.session_scope() as session:
            model, created = self.get_or_create_in(session, name)
            if not created:
                raise StoreError(f"Topic '{name}' already exists as '{model.name}'")
            return Topic(id=model.id, name=model.name)


class BlogTopicRepository(BaseRepository[BlogTopicModel]):
    """Repository for blog/topic join rows."""

    def __init__(self, session_factory: sessionmaker[Session]):
        super().__init__(session_factory, BlogTopicModel)

    @staticmethod
    def _exists(session: Session, blog_id: int, topic_id: int) -> bool:
        query = select(BlogTopicModel.id).filter(
            BlogTopicModel.blog_id == blog_id,
            BlogTopicModel.topic_id == topic_id,
        )
        return session.scalars(query).first() is not None

    @staticmethod
    def _delete_missing(session: Session, blog_id: int, keep_topic_ids: Iterable[int]) -> int:
        result = session.execute(
            delete(BlogTopicModel).where(
                BlogTopicModel.blog_id == blog_id,
                BlogTopicModel.topic_id.not_in(list(keep_topic_ids)),
            )
        )
        return result.rowcount or 0

    def link_in(self, session: Session, blog_id: int, topic_ids: list[int]) -> int:
        """Inside an open session, associate a blog with exactly ``topic_ids``.

        Returns:
            Number of associations removed
        """
        for topic_id in topic_ids:
            if not self._exists(session, blog_id, topic_id):
                session.add(BlogTopicModel(blog_id=blog_id, topic_id=topic_id))
        session.flush()
        return self._delete_missing(session, blog_id, topic_ids)

    @with_db_retry()
    def exists(self, blog_id: int, topic_id: int) -> bool:
        with self.session_scope() as session:
            return self._exists(session, blog_id, topic_id)

    @with_db_retry()
    def create(self, blog_id: int, topic_id: int) -> None:
        with self.session_scope() as session:
            session.add(BlogTopicModel(blog_id=blog_id, topic_id=topic_id))

    @with_db_retry()
    def delete_missing(self, blog_id: int, keep_topic_ids: Iterable[int]) -> int:
        """Remove associations of a blog to topics not in ``keep_topic_ids``."""
        with self.session_scope() as session:
            return self._delete_missing(session, blog_id, keep_topic_ids)

    @with_db_retry()
    def topics_for(self, blog_id: int) -> list[str]:
        with self.session_scope() as session:
            query = (
                select(TopicModel.name)
                .join(BlogTopicModel, BlogTopicModel.topic_id == TopicModel.id)
                .filter(BlogTopicModel.blog_id == blog_id)
                .order_by(BlogTopicModel.id)
            )
            return list(session.scalars(query))
