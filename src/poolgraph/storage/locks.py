"""Per-key locks so load-modify-save cycles on one entity never interleave."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock, RLock


class KeyedLocks:
    """One re-entrant lock per (entity_type, id), created on demand and dropped once idle."""

    def __init__(self) -> None:
        # key -> [lock, holders and waiters]
        self._locks: dict[tuple[str, str], list] = {}
        self._guard = Lock()

    def _acquire(self, key: tuple[str, str]) -> RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [RLock(), 0]
            entry[1] += 1
            return entry[0]

    def _release(self, key: tuple[str, str]) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, entity_type: str, entity_id: str) -> Iterator[None]:
        key = (entity_type, entity_id)
        lock = self._acquire(key)
        try:
            with lock:
                yield
        finally:
            self._release(key)
