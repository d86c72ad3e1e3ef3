from contextlib import contextmanager
from threading import Lock
from weakref import WeakValueDictionary


class KeyedLocks:
    """Hands out one lock per key so writes for the same phone run one at a time.

    Entries are weak: a key's lock is dropped once no caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: WeakValueDictionary[str, Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
        with lock:
            yield
