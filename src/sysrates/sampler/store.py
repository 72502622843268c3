"""In-memory keyed store of the last sample and rates per entity."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from .base import CachedEntry

T = TypeVar("T")


class SampleStore:
    """Thread-safe ``entity_id -> CachedEntry`` mapping.

    A single re-entrant lock guards all entries. :meth:`update` performs a
    read-modify-write under the lock, and :meth:`batch` holds the lock
    across several updates so that the entities of one query are refreshed
    together. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CachedEntry] = {}
        self._lock = threading.RLock()

    def get(self, entity_id: str) -> CachedEntry | None:
        with self._lock:
            return self._entries.get(entity_id)

    def put(self, entity_id: str, entry: CachedEntry) -> None:
        with self._lock:
            self._entries[entity_id] = entry

    def update(
        self,
        entity_id: str,
        fn: Callable[[CachedEntry | None], tuple[CachedEntry | None, T]],
    ) -> T:
        """Atomically apply *fn* to the current entry.

        *fn* returns ``(new_entry, result)``; a ``None`` entry leaves the
        store untouched. *result* is passed back to the caller.
        """
        with self._lock:
            new_entry, result = fn(self._entries.get(entity_id))
            if new_entry is not None:
                self._entries[entity_id] = new_entry
            return result

    @contextmanager
    def batch(self) -> Iterator[SampleStore]:
        """Hold the store lock for the duration of the block."""
        with self._lock:
            yield self

    def entries(self, prefix: str = "") -> dict[str, CachedEntry]:
        """Copy of the entries whose id starts with *prefix*."""
        with self._lock:
            return {k: v for k, v in self._entries.items() if k.startswith(prefix)}

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
