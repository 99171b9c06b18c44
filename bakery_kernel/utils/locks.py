"""
Per-item mutual exclusion inside one process.

Row locks (``SELECT ... FOR UPDATE``) serialize writers on PostgreSQL;
SQLite ignores them.  The registry gives every inventory item its own
``threading.Lock`` so two threads of the same process never interleave the
read-check-write of an adjustment, whichever backend is in use.

Locks are always taken in sorted id order so multi-item units of work
(production runs) cannot deadlock against each other.
"""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from uuid import UUID

from bakery_kernel.logging_config import get_logger

logger = get_logger("utils.locks")


class ItemLockRegistry:
    """Lazily created ``threading.Lock`` per item id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, item_id: UUID | str) -> threading.Lock:
        key = str(item_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *item_ids: UUID | str) -> Iterator[None]:
        """Hold the locks of ``item_ids`` (deduplicated, sorted) for the block."""
        with self.hold_all(item_ids):
            yield

    @contextmanager
    def hold_all(self, item_ids: Iterable[UUID | str]) -> Iterator[None]:
        keys = sorted({str(i) for i in item_ids})
        acquired: list[threading.Lock] = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            logger.debug("item_locks_acquired", extra={"item_ids": keys})
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def clear(self) -> None:
        """Forget all locks.  FOR TESTING ONLY; never call while locks are held."""
        with self._guard:
            self._locks.clear()


# Process-wide registry shared by the module services
item_locks = ItemLockRegistry()
