"""
Thread-safe domain name sets.

ConcurrentDomainSet is a mutable set of domain names shared by every
connection-handling thread. Lookups vastly outnumber updates, so membership
tests take the shared side of a reader/writer lock and mutations the
exclusive side.
"""

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator


class ReadWriteLock:
    """
    Reader/writer lock built on a condition variable.

    Any number of readers may hold the lock together; a writer holds it
    alone. Once a writer is waiting, new readers queue behind it so a steady
    stream of lookups cannot starve updates.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ConcurrentDomainSet:
    """
    Mutable set of domain names safe for concurrent use.

    Adding a present name and deleting an absent one are no-ops; no method
    raises for membership reasons.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set(names)
        self._lock = ReadWriteLock()

    def add(self, name: str) -> None:
        with self._lock.write_locked():
            self._names.add(name)

    def add_all(self, names: Iterable[str]) -> None:
        """Insert many names under a single exclusive hold."""
        names = list(names)
        with self._lock.write_locked():
            self._names.update(names)

    def has(self, name: str) -> bool:
        with self._lock.read_locked():
            return name in self._names

    def delete(self, name: str) -> None:
        with self._lock.write_locked():
            self._names.discard(name)

    def discard_all(self, names: Iterable[str]) -> list[str]:
        """
        Remove every given name that is present.

        Returns:
            The names that were actually removed
        """
        names = list(dict.fromkeys(names))
        with self._lock.write_locked():
            removed = [name for name in names if name in self._names]
            self._names.difference_update(removed)
        return removed

    def snapshot(self) -> list[str]:
        """Copy of the current contents, in no particular order."""
        with self._lock.read_locked():
            return list(self._names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._names)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)})"
