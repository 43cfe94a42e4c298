"""
sqlkv: a Redis-style key-value store over SQLite.

String values, TTL expiration enforced on read and by a background sweeper,
glob key listing and existence checks, one table per store.
"""

from sqlkv.exceptions import (
    ConfigurationError,
    KeyNotFoundError,
    SQLKVError,
    StorageError,
    WrongTypeError,
)
from sqlkv.store import SQLiteKVStore, Sweeper, open_store
from sqlkv.types import NO_EXPIRATION, Record, ValueKind

__version__ = "0.1.0"

__all__ = [
    "NO_EXPIRATION",
    "ConfigurationError",
    "KeyNotFoundError",
    "Record",
    "SQLKVError",
    "SQLiteKVStore",
    "StorageError",
    "Sweeper",
    "ValueKind",
    "WrongTypeError",
    "open_store",
]
