"""
Core types for sqlkv.

This module defines:
- ValueKind enum for the type tag stored on every row
- Record, the frozen dataclass mirroring one row of a store table
- NO_EXPIRATION, the TTL sentinel for permanent keys
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

NO_EXPIRATION: float = -1.0


class ValueKind(str, Enum):
    """Type tag of a stored value.

    Only strings are written today; other tags are reserved.
    """

    STRING = "string"


@dataclass(frozen=True)
class Record:
    """One physical row of a store table.

    Attributes:
        key: Unique key (primary key of the table).
        value: String payload.
        kind: Type tag, "string" for everything written by set().
        expires_at: Absolute expiry in epoch milliseconds, None if permanent.
    """

    key: str
    value: str | None
    kind: str = ValueKind.STRING.value
    expires_at: int | None = None

    @property
    def is_string(self) -> bool:
        return self.kind == ValueKind.STRING.value

    @classmethod
    def from_row(cls, row: Any) -> Record:
        """Build a record from a row with key, value, kind and expires_at columns."""
        return cls(
            key=row["key"],
            value=row["value"],
            kind=row["kind"],
            expires_at=row["expires_at"],
        )
