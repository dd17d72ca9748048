"""In-memory content cache shared by the sync tasks and request handlers."""

import threading
from collections.abc import Callable
from typing import Optional

from website.content.models import ContentKind, ContentRecord


def _newest_first_key(record: ContentRecord) -> tuple:
    # Records without a creation time sort last; name breaks ties deterministically
    created = record.created_at
    return (created is not None, created.timestamp() if created else 0.0, record.name)


class ContentCache:
    """Concurrent name -> record map per content kind.

    Single-key operations are atomic. Values are immutable records, so a
    reader never sees a partially built entry. Compound read-modify-write
    sequences go through :meth:`update`, which runs under the cache lock.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[ContentKind, dict[str, ContentRecord]] = {
            kind: {} for kind in ContentKind
        }

    def get(self, kind: ContentKind, name: str) -> Optional[ContentRecord]:
        with self._lock:
            return self._entries[kind].get(name)

    def put(self, kind: ContentKind, name: str, record: ContentRecord) -> None:
        with self._lock:
            self._entries[kind][name] = record

    def remove(self, kind: ContentKind, name: str) -> Optional[ContentRecord]:
        with self._lock:
            return self._entries[kind].pop(name, None)

    def merge(self, kind: ContentKind, name: str, record: ContentRecord) -> ContentRecord:
        """Store ``record``, keeping the runtime state of the entry it replaces."""
        with self._lock:
            merged = record.carry_runtime_state(self._entries[kind].get(name))
            self._entries[kind][name] = merged
            return merged

    def update(
        self,
        kind: ContentKind,
        name: str,
        fn: Callable[[ContentRecord], ContentRecord],
    ) -> Optional[ContentRecord]:
        """Atomically replace an entry with ``fn(entry)`` if it is present.

        Returns:
            The new record, or None if no entry exists for ``name``
        """
        with self._lock:
            current = self._entries[kind].get(name)
            if current is None:
                return None
            new = fn(current)
            self._entries[kind][name] = new
            return new

    def values_snapshot(self, kind: ContentKind) -> list[ContentRecord]:
        with self._lock:
            return list(self._entries[kind].values())

    def names(self, kind: ContentKind) -> set[str]:
        with self._lock:
            return set(self._entries[kind])

    def clear(self) -> None:
        with self._lock:
            for entries in self._entries.values():
                entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._entries.values())

    # Derived reads

    def snapshot_sorted(self, kind: ContentKind) -> list[ContentRecord]:
        """All records of a kind, newest first by creation time."""
        return sorted(self.values_snapshot(kind), key=_newest_first_key, reverse=True)

    def recent_top(self, n: int) -> list[ContentRecord]:
        """The ``n`` most recently created blogs, newest first."""
        if n <= 0:
            return []
        return self.snapshot_sorted(ContentKind.BLOG)[:n]

    def by_topic(self, topic: str) -> list[ContentRecord]:
        """Blogs tagged with ``topic`` (case insensitive), newest first."""
        wanted = topic.lower()
        return [
            record
            for record in self.snapshot_sorted(ContentKind.BLOG)
            if any(t.lower() == wanted for t in record.topics)
        ]

    def find_by_id(self, kind: ContentKind, record_id: int) -> Optional[ContentRecord]:
        for record in self.values_snapshot(kind):
            if record.id == record_id:
                return record
        return None
