"""At most one in-flight recompute per course / program scope."""

import logging
import threading
import weakref
from contextlib import contextmanager


class ScopeLockRegistry:
    """Registry of re-entrant locks keyed by scope, e.g. ('course', 12).

    Runs for the same scope queue behind each other; runs for different
    scopes never contend. A scope's lock is dropped from the registry once no
    run holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def __len__(self):
        return len(self._locks)

    def lock_for(self, scope):
        with self._guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = threading.RLock()
                self._locks[scope] = lock
            return lock

    @contextmanager
    def hold(self, scope):
        lock = self.lock_for(scope)
        if not lock.acquire(blocking=False):
            logging.info(f"Recompute for {scope} waiting for the running one to finish")
            lock.acquire()
        try:
            yield
        finally:
            lock.release()


scope_locks = ScopeLockRegistry()
