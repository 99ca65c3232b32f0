from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List


class KeyedLocks:
    """One re-entrant lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            slot = self._locks.setdefault(key, [threading.RLock(), 0])
            slot[1] += 1
        lock = slot[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
