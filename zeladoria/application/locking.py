from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager


class LotLocks:
    """One re-entrant lock per lot.

    Locks are always taken in ascending lot order so two batches touching
    overlapping lots cannot deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def _lock_for(self, lot: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(lot)
            if lock is None:
                lock = threading.RLock()
                self._locks[lot] = lock
            return lock

    @contextmanager
    def hold(self, lots: Iterable[int]) -> Iterator[None]:
        with ExitStack() as stack:
            for lot in sorted(set(lots)):
                stack.enter_context(self._lock_for(lot))
            yield
