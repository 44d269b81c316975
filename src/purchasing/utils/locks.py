"""Keyed in-process mutual exclusion.

One ``threading.Lock`` per key (product id, order id), created lazily under
a guard lock. Serializes read-modify-write sequences on the same record
while leaving unrelated records free to proceed in parallel.

Locks are held weakly: a key's lock lives only while some caller holds or
waits on it, so the table does not grow with every order ever touched.

Only valid within one process. A multi-process deployment on a SQL provider
has to rely on row-level locking instead.
"""

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.lock_for(str(key))
        with lock:
            yield
