"""In-memory key-value stores guarded by a readers/writer lock.

Each store owns a single lock covering its whole map: any number of readers
may hold it together, a writer holds it alone. Records are frozen
dataclasses, so a reader only ever sees a record as it was put.
"""

import threading
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar

from fastapi import Request

from .records import Account, FileRecord

K = TypeVar("K")
V = TypeVar("V")


class RWLock:
    """Readers/writer lock; writers are preferred once waiting."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class KeyValueStore(Generic[K, V]):
    """Map with shared reads and exclusive writes.

    Alternative backings only need to honour put/get/values with the same
    read/write exclusion to be usable by the request handlers.
    """

    def __init__(self):
        self._lock = RWLock()
        self._items: dict[K, V] = {}

    def put(self, key: K, value: V) -> None:
        """Insert or replace ``value`` under ``key``."""
        with self._lock.write():
            self._items[key] = value

    def get(self, key: K) -> V | None:
        with self._lock.read():
            return self._items.get(key)

    def values(self) -> list[V]:
        """Snapshot of every stored value."""
        with self._lock.read():
            return list(self._items.values())

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._items

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._items)


class AccountStore(KeyValueStore[str, Account]):
    def add(self, account: Account) -> bool:
        """Insert ``account`` unless its username is taken.

        Returns:
            True if inserted, False if an account with that username exists.
        """
        with self._lock.write():
            if account.username in self._items:
                return False
            self._items[account.username] = account
            return True


class FileRecordStore(KeyValueStore[str, FileRecord]):
    def put_record(self, record: FileRecord) -> None:
        """Last write wins for a given filename."""
        self.put(record.filename, record)

    def list_records(self) -> list[FileRecord]:
        return sorted(self.values(), key=lambda r: r.filename)


class Store:
    """Owner of all accounts and file records for the process lifetime."""

    def __init__(self):
        self.accounts = AccountStore()
        self.files = FileRecordStore()


def get_store(request: Request) -> Store:
    """FastAPI dependency returning the store owned by the running app."""
    return request.app.state.store
