from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from app.core.errors import StorageUnavailable


class _KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders]

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                self._locks.pop(key, None)

    @contextmanager
    def hold(self, key: str, *, timeout: float) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=max(0.0, float(timeout))):
                raise StorageUnavailable("operation busy, retry later", lock_key=key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._release(key)


_locks = _KeyedLocks()


def attempt_lock_key(user_id, quiz_id) -> str:
    return f"locks:attempts:{user_id}:{quiz_id}"


@contextmanager
def keyed_lock(key: str, *, timeout: float) -> Iterator[None]:
    """Serialize callers sharing ``key`` within this process.

    Cross-process serialization comes from the user row lock taken inside the
    same unit of work.
    """
    with _locks.hold(key, timeout=timeout):
        yield
