"""
Tests for table naming and SQL generation.
"""

from __future__ import annotations

import pytest

from sqlkv.exceptions import ConfigurationError
from sqlkv.store.schema import (
    MAX_TABLE_NAME_LENGTH,
    TableSchema,
    quote_identifier,
    validate_table_name,
)


class TestValidateTableName:
    """Test the table name allow-list."""

    @pytest.mark.parametrize("name", ["kv", "kv_store", "_private", "Cache2"])
    def test_accepts_identifiers(self, name: str) -> None:
        """Test that plain identifiers are accepted."""
        assert validate_table_name(name) == name

    def test_rejects_empty_name(self) -> None:
        """Test that an empty table name is a configuration error."""
        with pytest.raises(ConfigurationError, match="cannot be empty"):
            validate_table_name("")

    @pytest.mark.parametrize(
        "name",
        ['bad"name', "1table", "kv store", "kv;DROP TABLE x", "kv-store", "kv.data"],
    )
    def test_rejects_non_identifiers(self, name: str) -> None:
        """Test that names needing quoting or containing SQL are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_table_name(name)
        assert exc_info.value.context["table"] == name

    def test_rejects_long_names(self) -> None:
        """Test the maximum length."""
        with pytest.raises(ConfigurationError, match="too long"):
            validate_table_name("t" * (MAX_TABLE_NAME_LENGTH + 1))


class TestTableSchema:
    """Test generated statements."""

    def test_invalid_name_rejected_on_construction(self) -> None:
        """Test that TableSchema validates its name."""
        with pytest.raises(ConfigurationError):
            TableSchema("")

    def test_quoted_name(self) -> None:
        """Test identifier quoting."""
        assert TableSchema("kv").quoted == '"kv"'
        assert quote_identifier('a"b') == '"a""b"'

    def test_statements_target_table(self) -> None:
        """Test that every statement uses the quoted table name."""
        schema = TableSchema("sessions")
        for sql in (
            schema.create_table,
            schema.upsert,
            schema.select_record,
            schema.select_meta,
            schema.delete_key,
            schema.delete_key_if_expired,
            schema.purge_expired,
            schema.scan_pattern,
            schema.scan_all,
            schema.count_live,
            schema.count_expired,
            schema.count_by_kind,
        ):
            assert '"sessions"' in sql

    def test_scan_uses_escape_clause(self) -> None:
        """Test that pattern scans declare the escape character."""
        assert "ESCAPE '\\'" in TableSchema("kv").scan_pattern

    def test_purge_is_strictly_less_than(self) -> None:
        """Test that the sweep keeps rows expiring exactly now."""
        assert "expires_at < ?" in TableSchema("kv").purge_expired
