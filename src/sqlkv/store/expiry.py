"""
Expiry policy.

Timestamps are integer milliseconds since the Unix epoch. A key is expired
only once its expiry is strictly before the current time; at the exact
expiry instant it is still alive.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable

from sqlkv.types import NO_EXPIRATION

Clock = Callable[[], float]
TTL = float | int | timedelta


def now_ms(clock: Clock = time.time) -> int:
    """Read a seconds clock and return integer epoch milliseconds."""
    return int(round(clock() * 1000))


def ttl_to_ms(ttl: TTL) -> int:
    """Convert a TTL in seconds (or a timedelta) to milliseconds."""
    if isinstance(ttl, timedelta):
        return int(round(ttl.total_seconds() * 1000))
    return int(round(ttl * 1000))


def compute_expires_at(ttl: TTL, now: int) -> int | None:
    """Return the absolute expiry for a TTL, or None for a permanent key.

    Zero and negative TTLs mean "never expires".
    """
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else ttl
    if seconds <= 0:
        return None
    # Sub-millisecond TTLs still expire, one millisecond out
    return now + max(ttl_to_ms(ttl), 1)


def is_expired(expires_at: int | None, now: int) -> bool:
    if expires_at is None:
        return False
    return expires_at < now


def remaining_seconds(expires_at: int | None, now: int) -> float:
    """Seconds left before expiry, or NO_EXPIRATION for a permanent key.

    Callers check is_expired() first; the result is 0.0 at the boundary.
    """
    if expires_at is None:
        return NO_EXPIRATION
    return max(expires_at - now, 0) / 1000.0
