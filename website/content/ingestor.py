"""Single-file ingestion: hash, persist on change, refresh the cache."""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from website.core.exceptions import IngestionError, StoreError
from website.core.hashing import Hasher
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.kinds import KindStrategy
from website.content.metrics import CONTENT_INGESTIONS
from website.content.models import ContentKind, ContentRecord
from website.database.repositories import ContentRepository

logger = get_logger(__name__)


class IngestOutcome(str, Enum):
    """What an ingestion did to the store."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestResult:
    """Result of ingesting one file."""

    kind: ContentKind
    name: str
    outcome: IngestOutcome
    record: Optional[ContentRecord] = None
    error: Optional[str] = None

    @property
    def mutated(self) -> bool:
        return self.outcome in (IngestOutcome.CREATED, IngestOutcome.UPDATED)

    @property
    def ok(self) -> bool:
        return self.outcome is not IngestOutcome.FAILED


class ContentIngestor:
    """Turns one file into a persisted, cached record.

    A failure is reported as a ``FAILED`` result and never raised, so the
    batch calling :meth:`ingest` carries on with its next file.
    """

    def __init__(
        self,
        hasher: Hasher,
        cache: ContentCache,
        stores: dict[ContentKind, ContentRepository],
        strategies: dict[ContentKind, KindStrategy],
    ):
        self.hasher = hasher
        self.cache = cache
        self.stores = stores
        self.strategies = strategies

    def ingest(self, kind: ContentKind, path: Path) -> IngestResult:
        """Ingest one file of the given kind.

        Args:
            kind: Content kind the file belongs to
            path: Path of the file

        Returns:
            The ingestion result
        """
        name = path.name
        try:
            result = self._ingest(kind, path)
        except (IngestionError, StoreError, OSError) as e:
            logger.error("ingestion_failed", kind=kind.value, name=name, error=str(e))
            result = IngestResult(kind, name, IngestOutcome.FAILED, error=str(e))

        CONTENT_INGESTIONS.labels(kind=kind.value, outcome=result.outcome.value).inc()
        return result

    def _ingest(self, kind: ContentKind, path: Path) -> IngestResult:
        strategy = self.strategies[kind]
        store = self.stores[kind]
        name = path.name

        if not strategy.accepts(name):
            raise IngestionError(f"'{name}' does not match the {kind.value} naming rule")

        existing = store.find_by_name(name)

        try:
            data = path.read_bytes()
        except OSError as e:
            raise IngestionError(f"Cannot read '{path}': {e}") from e
        content_hash = self.hasher.digest(data)

        if existing is not None and existing.content_hash == content_hash:
            # Readers rely on an entry existing even when nothing changed
            if self.cache.get(kind, name) is None:
                self.cache.put(kind, name, existing)
            return IngestResult(kind, name, IngestOutcome.UNCHANGED, record=existing)

        draft = strategy.prepare(
            ContentRecord(kind=kind, name=name, content_hash=content_hash), data
        )

        if existing is None:
            store.create(draft)
            stored = store.find_by_name(name)
            if stored is None:
                raise StoreError(f"{kind.value} '{name}' missing right after create")
            outcome = IngestOutcome.CREATED
        else:
            stored = store.update(
                replace(
                    existing,
                    content_hash=content_hash,
                    title=draft.title,
                    topics=draft.topics,
                )
            )
            outcome = IngestOutcome.UPDATED

        record = self.cache.merge(kind, name, stored)

        logger.info(
            f"{kind.value}_{outcome.value}",
            name=name,
            id=record.id,
            hash=content_hash,
        )
        return IngestResult(kind, name, outcome, record=record)
