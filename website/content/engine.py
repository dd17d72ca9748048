"""Content sync engine: the one owner of all shared content state."""

from datetime import timedelta
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from watchdog.observers import Observer

from website.core.config import Settings
from website.core.exceptions import ExitCode, FatalStartupError
from website.core.hashing import Hasher
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.conditional import (
    CacheControlToken,
    SharedValidator,
    is_not_modified,
)
from website.content.evictor import CacheEvictor
from website.content.feed import RecencyFeed
from website.content.ingestor import ContentIngestor
from website.content.kinds import BlogStrategy, KindStrategy, build_strategies
from website.content.materialize import PayloadMaterializer
from website.content.models import ContentKind, ContentRecord
from website.content.reconciler import CycleReport, Reconciler
from website.content.scheduler import PeriodicScheduler
from website.content.watcher import DirectoryWatcher
from website.database.repositories import (
    BlogRepository,
    BlogTopicRepository,
    ContentRepository,
    StaticFileRepository,
    TopicRepository,
)
from website.database.session import (
    create_db_engine,
    create_session_factory,
    init_schema,
)

logger = get_logger(__name__)


class SyncEngine:
    """Wires the cache, validators, feed, reconcilers and background jobs.

    Construct one per process and hand it to whatever reads content. The
    lifecycle is ``start()`` once, then ``stop()`` once.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        hasher: Optional[Hasher] = None,
        observer_factory: Callable[[], Any] = Observer,
    ):
        """Build the engine without touching the filesystem.

        Raises:
            AlgorithmUnavailableError: If the configured digest is missing
        """
        self.settings = settings
        self.hasher = hasher or Hasher(settings.HASH_ALGORITHM)
        self.cache = ContentCache()
        self.validator = SharedValidator(self.hasher)

        self.topics = TopicRepository(session_factory)
        self.blog_topics = BlogTopicRepository(session_factory)
        self.stores: dict[ContentKind, ContentRepository] = {
            ContentKind.BLOG: BlogRepository(session_factory, self.topics, self.blog_topics),
            ContentKind.IMAGE: StaticFileRepository(session_factory, ContentKind.IMAGE),
            ContentKind.STYLESHEET: StaticFileRepository(
                session_factory, ContentKind.STYLESHEET
            ),
        }
        self.strategies: dict[ContentKind, KindStrategy] = build_strategies(
            settings.BLOGS_DIRECTORY,
            settings.IMAGES_DIRECTORY,
            settings.CSS_DIRECTORY,
        )
        self.ingestor = ContentIngestor(self.hasher, self.cache, self.stores, self.strategies)
        self.feed = RecencyFeed(
            self.cache,
            self.hasher,
            site_url=settings.SITE_URL,
            title=settings.FEED_TITLE,
            description=settings.FEED_DESCRIPTION,
            size=settings.RECENT_COUNT,
            describe=self._describe,
        )
        self.reconcilers: dict[ContentKind, Reconciler] = {
            kind: Reconciler(
                strategy,
                DirectoryWatcher(
                    strategy.directory, settings.WATCH_CHANNEL_SIZE, observer_factory
                ),
                self.ingestor,
                self.stores[kind],
                self.cache,
                self.validator,
                self.feed if kind is ContentKind.BLOG else None,
            )
            for kind, strategy in self.strategies.items()
        }
        self.materializer = PayloadMaterializer(self.cache, self.blog_strategy)
        self.evictor = CacheEvictor(
            self.cache,
            timedelta(seconds=settings.STALENESS_THRESHOLD_SECONDS),
            settings.RECENT_COUNT,
        )
        self.scheduler: Optional[PeriodicScheduler] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncEngine":
        """Create the database engine and schema, then the sync engine.

        Raises:
            FatalStartupError: If the store cannot be reached
        """
        db_engine = create_db_engine(settings.DATABASE_URL, settings.DB_ECHO)
        try:
            init_schema(db_engine)
        except SQLAlchemyError as e:
            raise FatalStartupError(
                f"Cannot initialize the content store: {e}",
                exit_code=ExitCode.STORE_UNAVAILABLE,
            ) from e
        return cls(settings, create_session_factory(db_engine))

    @property
    def blog_strategy(self) -> BlogStrategy:
        strategy = self.strategies[ContentKind.BLOG]
        assert isinstance(strategy, BlogStrategy)
        return strategy

    @property
    def started(self) -> bool:
        return self.scheduler is not None

    # Lifecycle

    def prepare_directories(self) -> None:
        """Create missing content directories.

        Raises:
            FatalStartupError: If a directory cannot be created
        """
        for strategy in self.strategies.values():
            try:
                strategy.directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FatalStartupError(
                    f"Cannot create directory '{strategy.directory}': {e}",
                    exit_code=ExitCode.DIRECTORY_SETUP_FAILED,
                ) from e

    def start(self) -> None:
        """Reconcile every kind, then schedule the background jobs.

        Raises:
            FatalStartupError: If a watch cannot be opened or the store is
                unavailable; already started watches are closed first
        """
        if self.started:
            return

        self.prepare_directories()
        started: list[Reconciler] = []
        try:
            for reconciler in self.reconcilers.values():
                reconciler.start()
                started.append(reconciler)
        except FatalStartupError:
            for reconciler in started:
                reconciler.stop()
            raise

        settings = self.settings
        scheduler = PeriodicScheduler(
            max_workers=max(settings.SYNC_WORKERS, len(self.reconcilers) + 1)
        )
        for kind, reconciler in self.reconcilers.items():
            scheduler.schedule(
                f"reconcile-{kind.value}",
                reconciler.run_cycle,
                settings.SYNC_INTERVAL_SECONDS,
                settings.SYNC_START_DELAY_SECONDS,
            )
        scheduler.schedule(
            "evict",
            self.evictor.sweep,
            settings.EVICTION_INTERVAL_SECONDS,
            settings.EVICTION_START_DELAY_SECONDS,
        )
        self.scheduler = scheduler
        logger.info("engine_started", cached=len(self.cache))

    def stop(self) -> None:
        """Stop background jobs and close every watch."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
        for reconciler in self.reconcilers.values():
            reconciler.stop()
        logger.info("engine_stopped")

    def reconcile_all(self) -> dict[ContentKind, CycleReport]:
        """Run one full reconciliation of every kind without watching.

        Raises:
            FatalStartupError: If a directory cannot be created
            StoreError: If the store cannot be queried
        """
        self.prepare_directories()
        return {kind: r.full_reconcile() for kind, r in self.reconcilers.items()}

    def status(self) -> dict[str, dict[str, Any]]:
        """Stored and cached record counts plus watch state per kind."""
        return {
            kind.value: {
                "stored": self.stores[kind].count(),
                "cached": len(self.cache.names(kind)),
                "state": self.reconcilers[kind].state.value,
            }
            for kind in ContentKind
        }

    # Read API

    def get_by_name(self, kind: ContentKind, name: str) -> Optional[ContentRecord]:
        return self.cache.get(kind, name)

    def snapshot_sorted(self, kind: ContentKind) -> list[ContentRecord]:
        return self.cache.snapshot_sorted(kind)

    def recent_top(self, n: Optional[int] = None) -> list[ContentRecord]:
        return self.cache.recent_top(self.settings.RECENT_COUNT if n is None else n)

    def aggregate_token(self) -> CacheControlToken:
        return self.validator.current()

    def feed_token(self) -> CacheControlToken:
        return self.feed.token()

    def read_blog(self, blog_id: int) -> Optional[ContentRecord]:
        """Blog with its rendered payload, marked as served.

        Raises:
            MaterializationError: If the blog file cannot be rendered
        """
        record = self.cache.find_by_id(ContentKind.BLOG, blog_id)
        if record is None:
            return None
        record = self.materializer.materialize(record.name)
        if record is not None:
            self.materializer.touch(record.name)
        return record

    @staticmethod
    def is_not_modified(
        token: CacheControlToken,
        if_none_match: Optional[str] = None,
        if_modified_since: Optional[str] = None,
    ) -> bool:
        return is_not_modified(token, if_none_match, if_modified_since)

    def _describe(self, record: ContentRecord) -> str:
        path = self.blog_strategy.path_for(record.name)
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("feed_description_unavailable", name=record.name, error=str(e))
            return ""
