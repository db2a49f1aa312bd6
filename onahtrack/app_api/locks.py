"""Per-subject serialization for mutating lifecycle operations."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class SubjectLockRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, subject_id: str) -> threading.RLock:
        with self._lock:
            lock = self._locks.get(subject_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[subject_id] = lock
            return lock

    @contextmanager
    def hold(self, subject_id: str) -> Iterator[None]:
        lock = self._lock_for(subject_id)
        with lock:
            yield
