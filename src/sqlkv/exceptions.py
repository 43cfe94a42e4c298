"""
Custom exception hierarchy for sqlkv.

All exceptions inherit from SQLKVError, which carries optional structured
context (key, table, operation) for logging and debugging.
"""

from __future__ import annotations

from typing import Any


class SQLKVError(Exception):
    """Base exception for all sqlkv errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(SQLKVError):
    """Raised when store setup input is invalid.

    Examples:
        - Empty or non-identifier table name
        - Non-positive sweeper interval
    """

    pass


class KeyNotFoundError(SQLKVError):
    """Raised when a key does not exist or has logically expired.

    Context should include:
        - key: The key that was looked up
        - table: The table backing the store
    """

    pass


class WrongTypeError(SQLKVError):
    """Raised when a live key holds a value of a different kind.

    Context should include:
        - key: The key that was looked up
        - kind: The kind tag stored on the row
        - expected: The kind the operation works on
    """

    pass


class StorageError(SQLKVError):
    """Raised when the underlying SQLite connection fails.

    Covers I/O errors, constraint violations, malformed statements and use
    of a store whose connection is closed.

    Context should include:
        - operation: The store operation (set, get, keys, purge, ...)
        - table: The table backing the store
        - key or pattern: What the operation was acting on
    """

    pass
