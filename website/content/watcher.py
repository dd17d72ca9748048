"""Filesystem watch feeding a bounded event channel."""

import os
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

from website.core.exceptions import ExitCode, WatchInitError
from website.core.logging import get_logger

logger = get_logger(__name__)


class WatchState(str, Enum):
    """Lifecycle of one kind's watch. ``STOPPED`` is terminal."""

    UNINITIALIZED = "uninitialized"
    WATCHING = "watching"
    PROCESSING = "processing"
    STOPPED = "stopped"


class WatchEventKind(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class WatchEvent:
    """One pending change. ``name`` is None for ``OVERFLOW``."""

    kind: WatchEventKind
    name: Optional[str] = None


class _ChannelHandler(FileSystemEventHandler):
    """Translates watchdog callbacks into channel events."""

    def __init__(self, watcher: "DirectoryWatcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.offer(WatchEventKind.CREATE, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.offer(WatchEventKind.MODIFY, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.offer(WatchEventKind.DELETE, event.src_path)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        if event.is_directory:
            return
        self.watcher.offer(WatchEventKind.DELETE, event.src_path)
        if self.watcher.contains(event.dest_path):
            self.watcher.offer(WatchEventKind.CREATE, event.dest_path)


class DirectoryWatcher:
    """Watches the direct children of one directory.

    Events go into a bounded queue that the reconciler drains without
    blocking. When the queue is full the event is dropped and a single
    ``OVERFLOW`` is reported at the start of the next drain.
    """

    def __init__(
        self,
        directory: Path,
        channel_size: int = 1024,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.directory = Path(directory)
        self.channel_size = channel_size
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._channel: queue.Queue[WatchEvent] = queue.Queue(maxsize=channel_size)
        self._overflowed = False
        self._closed = False
        self._lock = threading.Lock()

    def start(self) -> None:
        """Open the watch.

        Raises:
            WatchInitError: If the directory is missing or cannot be watched,
                or if the watch service itself cannot be created or started
        """
        if not self.directory.is_dir():
            raise WatchInitError(f"Watched directory '{self.directory}' does not exist")

        try:
            observer = self._observer_factory()
        except OSError as e:
            raise WatchInitError(
                f"Watch service unavailable: {e}", exit_code=ExitCode.WATCH_SERVICE_FAILED
            ) from e

        try:
            observer.schedule(_ChannelHandler(self), str(self.directory), recursive=False)
        except OSError as e:
            raise WatchInitError(f"Cannot watch '{self.directory}': {e}") from e

        try:
            observer.start()
        except OSError as e:
            raise WatchInitError(
                f"Watch service failed to start for '{self.directory}': {e}",
                exit_code=ExitCode.WATCH_SERVICE_FAILED,
            ) from e

        self._observer = observer
        logger.info("watch_started", directory=str(self.directory))

    def contains(self, path: str | bytes) -> bool:
        """Check whether ``path`` is a direct child of the watched directory."""
        return Path(os.fsdecode(path)).parent.resolve() == self.directory.resolve()

    def offer(self, kind: WatchEventKind, path: str | bytes) -> bool:
        """Queue an event for ``path`` without blocking.

        Returns:
            False if the channel was full and the event was dropped
        """
        event = WatchEvent(kind, Path(os.fsdecode(path)).name)
        try:
            self._channel.put_nowait(event)
            return True
        except queue.Full:
            with self._lock:
                self._overflowed = True
            return False

    def drain(self) -> list[WatchEvent]:
        """Return the events pending right now, in delivery order."""
        events: list[WatchEvent] = []
        with self._lock:
            if self._overflowed:
                events.append(WatchEvent(WatchEventKind.OVERFLOW))
                self._overflowed = False

        for _ in range(self._channel.qsize()):
            try:
                events.append(self._channel.get_nowait())
            except queue.Empty:
                break
        return events

    def is_valid(self) -> bool:
        """Check that the watch is still delivering events."""
        return (
            not self._closed
            and self._observer is not None
            and self._observer.is_alive()
            and self.directory.is_dir()
        )

    def close(self) -> None:
        """Stop the observer. The watcher cannot be restarted."""
        if self._closed:
            return
        self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
        logger.info("watch_closed", directory=str(self.directory))
