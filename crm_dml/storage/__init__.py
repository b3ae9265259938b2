# ==============================================
# STORAGE (Record Store backends)
# ==============================================
#
# Every DML operation persists through a RecordStore.
# Each batch call (insert / update / upsert / delete) is atomic.
#
# Modules:
# --------
# - base.py          → RecordStore ABC, shared batch rules
# - memory_store.py  → in-process tables
# - mysql_store.py   → MySQL, one transaction per batch
# - mongo_store.py   → MongoDB, one session transaction per batch
# - factory.py       → open_store(config)
#
# ==============================================

from .base import RecordStore, Write, Delete
from .memory_store import InMemoryRecordStore
from .mysql_store import MySQLRecordStore
from .mongo_store import MongoRecordStore
from .factory import open_store

__all__ = [
    "RecordStore",
    "Write",
    "Delete",
    "InMemoryRecordStore",
    "MySQLRecordStore",
    "MongoRecordStore",
    "open_store",
]
