"""
Store package.

- kv_store.py: SQLiteKVStore, the aiosqlite-backed store, and open_store()
- sweeper.py: background bulk deletion of expired rows
- expiry.py: expiry policy over epoch-millisecond timestamps
- pattern.py: glob to SQL LIKE translation for key listing
- schema.py: per-store table naming and SQL statements
"""

from sqlkv.store.kv_store import SQLiteKVStore, open_store
from sqlkv.store.sweeper import Sweeper

__all__ = ["SQLiteKVStore", "Sweeper", "open_store"]
