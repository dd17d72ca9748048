"""Keeps one content directory in sync with the store and the cache."""

import threading
from dataclasses import dataclass
from typing import Optional

from website.core.exceptions import ExitCode, FatalStartupError, StoreError
from website.core.logging import get_logger
from website.content.cache import ContentCache
from website.content.conditional import SharedValidator
from website.content.feed import RecencyFeed
from website.content.ingestor import ContentIngestor, IngestOutcome, IngestResult
from website.content.kinds import KindStrategy
from website.content.metrics import (
    CACHED_RECORDS,
    CONTENT_DELETIONS,
    RECONCILE_CYCLES,
    WATCH_OVERFLOWS,
    WATCH_STATE,
)
from website.content.models import ContentKind, ContentRecord
from website.content.watcher import (
    DirectoryWatcher,
    WatchEvent,
    WatchEventKind,
    WatchState,
)
from website.database.repositories import ContentRepository

logger = get_logger(__name__)


@dataclass
class CycleReport:
    """Counts of what one reconciliation pass did."""

    kind: ContentKind
    events: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    failed: int = 0
    overflowed: bool = False
    rescanned: bool = False
    state: WatchState = WatchState.WATCHING

    @property
    def mutated(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


class Reconciler:
    """Watch state machine for one content kind.

    ``start`` opens the watch and runs a full reconciliation. Afterwards each
    ``run_cycle`` drains the pending watch events and applies them in order.
    Shared tokens are rotated only after a batch's mutations are in the
    cache. If the watch becomes invalid the reconciler moves to ``STOPPED``
    and ignores further cycles.
    """

    def __init__(
        self,
        strategy: KindStrategy,
        watcher: DirectoryWatcher,
        ingestor: ContentIngestor,
        store: ContentRepository,
        cache: ContentCache,
        validator: SharedValidator,
        feed: Optional[RecencyFeed] = None,
    ):
        self.kind = strategy.kind
        self.strategy = strategy
        self.watcher = watcher
        self.ingestor = ingestor
        self.store = store
        self.cache = cache
        self.validator = validator
        self.feed = feed
        self.state = WatchState.UNINITIALIZED
        # One pass at a time per kind
        self._lock = threading.Lock()

    def _set_state(self, state: WatchState) -> None:
        self.state = state
        for candidate in WatchState:
            WATCH_STATE.labels(kind=self.kind.value, state=candidate.value).set(
                1 if candidate is state else 0
            )

    def start(self) -> CycleReport:
        """Open the watch and reconcile the whole directory.

        Raises:
            WatchInitError: If the directory cannot be watched
            FatalStartupError: If the store cannot be queried
        """
        if self.state is not WatchState.UNINITIALIZED:
            raise RuntimeError(f"{self.kind.value} reconciler already started")

        self.watcher.start()
        self._set_state(WatchState.WATCHING)
        try:
            return self.full_reconcile()
        except StoreError as e:
            self.stop()
            raise FatalStartupError(
                f"Initial {self.kind.value} reconciliation failed: {e}",
                exit_code=ExitCode.STORE_UNAVAILABLE,
            ) from e

    def full_reconcile(self) -> CycleReport:
        """Ingest every file in the directory and delete orphaned records.

        Raises:
            StoreError: If orphans cannot be listed
        """
        with self._lock:
            report = CycleReport(self.kind, state=self.state)
            self._rescan(report)
            self._publish(report, force=True)
            RECONCILE_CYCLES.labels(kind=self.kind.value, mode="full").inc()
            logger.info("full_reconcile_finished", **self._summary(report))
            return report

    def run_cycle(self) -> CycleReport:
        """Apply the watch events pending right now."""
        with self._lock:
            report = CycleReport(self.kind, state=self.state)
            if self.state is not WatchState.WATCHING:
                return report

            self._set_state(WatchState.PROCESSING)
            try:
                for event in self.watcher.drain():
                    self._apply(event, report)

                if report.overflowed:
                    try:
                        self._rescan(report)
                    except StoreError as e:
                        logger.error("rescan_failed", kind=self.kind.value, error=str(e))

                self._publish(report)
            finally:
                self._revalidate()

            report.state = self.state
            RECONCILE_CYCLES.labels(kind=self.kind.value, mode="incremental").inc()
            if report.events:
                logger.info("reconcile_cycle_finished", **self._summary(report))
            return report

    def stop(self) -> None:
        """Close the watch. The reconciler cannot be restarted."""
        with self._lock:
            self._set_state(WatchState.STOPPED)
            self.watcher.close()

    def _revalidate(self) -> None:
        if self.watcher.is_valid():
            self._set_state(WatchState.WATCHING)
            return
        self._set_state(WatchState.STOPPED)
        self.watcher.close()
        logger.error(
            "watch_stopped",
            kind=self.kind.value,
            directory=str(self.strategy.directory),
        )

    def _rescan(self, report: CycleReport) -> None:
        seen: set[str] = set()
        directory = self.strategy.directory
        if directory.is_dir():
            for path in sorted(directory.iterdir()):
                if not path.is_file() or not self.strategy.accepts(path.name):
                    continue
                seen.add(path.name)
                self._record(report, self.ingestor.ingest(self.kind, path))

        for orphan in self.store.find_missing_from_names(seen):
            self._delete(orphan, report, event="orphan_deleted")

        # Entries the store no longer knows about
        for name in self.cache.names(self.kind) - seen:
            self.cache.remove(self.kind, name)

        report.rescanned = True

    def _apply(self, event: WatchEvent, report: CycleReport) -> None:
        report.events += 1

        if event.kind is WatchEventKind.OVERFLOW:
            WATCH_OVERFLOWS.labels(kind=self.kind.value).inc()
            logger.warning("watch_overflow", kind=self.kind.value)
            report.overflowed = True
            return

        name = event.name or ""
        if not self.strategy.accepts(name):
            logger.debug("watch_event_ignored", kind=self.kind.value, name=name)
            return

        path = self.strategy.path_for(name)
        if event.kind is WatchEventKind.DELETE and not path.exists():
            self._delete_by_name(name, report)
        elif path.is_file():
            self._record(report, self.ingestor.ingest(self.kind, path))

    def _delete_by_name(self, name: str, report: CycleReport) -> None:
        try:
            record = self.store.find_by_name(name)
        except StoreError as e:
            logger.error("delete_failed", kind=self.kind.value, name=name, error=str(e))
            report.failed += 1
            return

        if record is None:
            self.cache.remove(self.kind, name)
            return
        self._delete(record, report, event=f"{self.kind.value}_deleted")

    def _delete(self, record: ContentRecord, report: CycleReport, event: str) -> None:
        try:
            self.store.delete(record)
        except StoreError as e:
            logger.error("delete_failed", kind=self.kind.value, name=record.name, error=str(e))
            report.failed += 1
            return

        self.cache.remove(self.kind, record.name)
        report.deleted += 1
        CONTENT_DELETIONS.labels(kind=self.kind.value).inc()
        logger.info(event, kind=self.kind.value, name=record.name, id=record.id)

    @staticmethod
    def _record(report: CycleReport, result: IngestResult) -> None:
        if result.outcome is IngestOutcome.CREATED:
            report.created += 1
        elif result.outcome is IngestOutcome.UPDATED:
            report.updated += 1
        elif result.outcome is IngestOutcome.UNCHANGED:
            report.unchanged += 1
        else:
            report.failed += 1

    def _publish(self, report: CycleReport, force: bool = False) -> None:
        CACHED_RECORDS.labels(kind=self.kind.value).set(len(self.cache.names(self.kind)))
        if not (report.mutated or force):
            return
        # Feed first: its token and the shared one both follow the cache
        if self.feed is not None and self.kind is ContentKind.BLOG:
            self.feed.rebuild()
        self.validator.rotate()

    def _summary(self, report: CycleReport) -> dict:
        return {
            "kind": self.kind.value,
            "events": report.events,
            "created": report.created,
            "updated": report.updated,
            "unchanged": report.unchanged,
            "deleted": report.deleted,
            "failed": report.failed,
            "overflowed": report.overflowed,
            "state": self.state.value,
        }
