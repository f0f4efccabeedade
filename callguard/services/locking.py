"""
Per-subject serialization of writes.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class SubjectLockRegistry:
    """
    Hands out one re-entrant lock per subject id.

    Reads never take these locks. Every write touching a subject (flag and
    call-outcome events, manual suspension changes, booking confirmation)
    runs inside ``hold`` for that subject.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, subject_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(subject_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[subject_id] = lock
            return lock

    @contextmanager
    def hold(self, *subject_ids: str) -> Iterator[None]:
        """
        Hold the locks of all given subjects.

        Locks are acquired in sorted id order so two writers spanning the
        same subjects cannot deadlock.
        """
        ordered = sorted(set(subject_ids))
        acquired = []
        try:
            for subject_id in ordered:
                lock = self.lock_for(subject_id)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
