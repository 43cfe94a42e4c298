"""
Abstract interface for key-value stores.

Redis-style semantics:
- get/ttl raise KeyNotFoundError for absent or expired keys
- delete never fails for a missing key
- exists/keys report expired keys as absent
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlkv.store.expiry import TTL


class KeyValueProtocol(ABC):
    """Abstract interface for key-value store implementations."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: TTL = 0) -> None:
        """Set a string value, replacing any previous value and expiry."""
        ...

    @abstractmethod
    async def get(self, key: str) -> str:
        """Get the string value of a live key."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a key if present."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a live key exists."""
        ...

    @abstractmethod
    async def ttl(self, key: str) -> float:
        """Remaining time to live in seconds, or NO_EXPIRATION."""
        ...

    @abstractmethod
    async def keys(self, pattern: str = "*") -> list[str]:
        """List live string keys matching a glob pattern."""
        ...
