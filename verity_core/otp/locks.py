"""
Per-Subject Locks
=================
Serialize read-modify-write sequences for one subject within a process.
"""

import asyncio
import weakref


class SubjectLocks:
    """
    Lazily created ``asyncio.Lock`` per subject id.

    Locks are held weakly: once no coroutine holds or waits on a subject's
    lock it is dropped, so the map only holds subjects currently in use.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def __call__(self, subject_id: str) -> asyncio.Lock:
        lock = self._locks.get(subject_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[subject_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
