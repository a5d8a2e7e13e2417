"""
Per-key compile locks for School Results Management System
Serializes grade compilation for one (class_id, semester_id) at a time
"""

import threading
from contextlib import contextmanager

from utils.exceptions import CompilationInProgressError


class CompileLockRegistry:
    """
    Registry of one lock per compile key.
    An entry lives only while some caller holds or waits for its lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._locks = {}  # key -> [lock, users]

    def _checkout(self, key):
        with self._lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key):
        with self._lock:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def is_locked(self, key):
        with self._lock:
            entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self):
        with self._lock:
            return len(self._locks)

    @contextmanager
    def hold(self, key, timeout=None):
        """Hold the lock for key; raise CompilationInProgressError on timeout"""
        lock = self._checkout(key)
        try:
            acquired = lock.acquire(timeout=timeout if timeout is not None else -1)
            if not acquired:
                raise CompilationInProgressError(
                    f"Compilation already running for {key}",
                    key=list(key) if isinstance(key, tuple) else key
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


# Global instance
compile_locks = CompileLockRegistry()
