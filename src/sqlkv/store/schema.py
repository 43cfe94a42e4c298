"""
Table naming and SQL statements for a single store.

Each store lives in its own table so several stores can share one database
file. Table names are checked against a strict identifier pattern and then
double-quoted; they are the only thing interpolated into SQL; all values go
through parameters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property

from sqlkv.exceptions import ConfigurationError
from sqlkv.store.pattern import LIKE_ESCAPE

MAX_TABLE_NAME_LENGTH = 64

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(table: str) -> str:
    """Return the table name if it is a safe identifier.

    Raises:
        ConfigurationError: If the name is empty, too long or not an identifier.
    """
    if not table:
        raise ConfigurationError("Table name cannot be empty")
    if len(table) > MAX_TABLE_NAME_LENGTH:
        raise ConfigurationError(
            "Table name is too long",
            context={"table": table, "max_length": MAX_TABLE_NAME_LENGTH},
        )
    if not _TABLE_NAME_RE.match(table):
        raise ConfigurationError(
            "Table name must contain only letters, digits and underscores "
            "and must not start with a digit",
            context={"table": table},
        )
    return table


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class TableSchema:
    """SQL for one store table.

    Columns: key (primary key), value, kind (type tag, default 'string'),
    expires_at (epoch milliseconds, NULL for permanent keys).
    """

    table: str

    def __post_init__(self) -> None:
        validate_table_name(self.table)

    @cached_property
    def quoted(self) -> str:
        return quote_identifier(self.table)

    @cached_property
    def create_table(self) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {self.quoted} (
                key TEXT PRIMARY KEY,
                value TEXT,
                kind TEXT NOT NULL DEFAULT 'string',
                expires_at INTEGER NULL
            )
        """

    @cached_property
    def create_expiry_index(self) -> str:
        index = quote_identifier(f"idx_{self.table}_expires_at")
        return f"CREATE INDEX IF NOT EXISTS {index} ON {self.quoted}(expires_at)"

    @cached_property
    def upsert(self) -> str:
        return (
            f"INSERT OR REPLACE INTO {self.quoted} (key, value, kind, expires_at) "
            "VALUES (?, ?, ?, ?)"
        )

    @cached_property
    def select_record(self) -> str:
        return f"SELECT key, value, kind, expires_at FROM {self.quoted} WHERE key = ?"

    @cached_property
    def select_meta(self) -> str:
        return f"SELECT kind, expires_at FROM {self.quoted} WHERE key = ?"

    @cached_property
    def delete_key(self) -> str:
        return f"DELETE FROM {self.quoted} WHERE key = ?"

    @cached_property
    def delete_key_if_expired(self) -> str:
        return (
            f"DELETE FROM {self.quoted} "
            "WHERE key = ? AND expires_at IS NOT NULL AND expires_at < ?"
        )

    @cached_property
    def purge_expired(self) -> str:
        return f"DELETE FROM {self.quoted} WHERE expires_at IS NOT NULL AND expires_at < ?"

    @cached_property
    def scan_pattern(self) -> str:
        return (
            f"SELECT key, kind, expires_at FROM {self.quoted} "
            f"WHERE key LIKE ? ESCAPE '{LIKE_ESCAPE}'"
        )

    @cached_property
    def scan_all(self) -> str:
        return f"SELECT key, value, kind, expires_at FROM {self.quoted}"

    @cached_property
    def count_live(self) -> str:
        return (
            f"SELECT COUNT(*) FROM {self.quoted} "
            "WHERE expires_at IS NULL OR expires_at >= ?"
        )

    @cached_property
    def count_expired(self) -> str:
        return (
            f"SELECT COUNT(*) FROM {self.quoted} "
            "WHERE expires_at IS NOT NULL AND expires_at < ?"
        )

    @cached_property
    def count_by_kind(self) -> str:
        return f"SELECT kind, COUNT(*) FROM {self.quoted} GROUP BY kind"
