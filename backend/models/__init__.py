from .records import Account, FileRecord
from .store import AccountStore, FileRecordStore, KeyValueStore, RWLock, Store, get_store

__all__ = [
    "Account",
    "FileRecord",
    "AccountStore",
    "FileRecordStore",
    "KeyValueStore",
    "RWLock",
    "Store",
    "get_store",
]
