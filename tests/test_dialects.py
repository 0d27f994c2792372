"""Tests for per-engine SQL generation."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from bulk_upsert.db.dialects import (
    Engine,
    MySQLDialect,
    SQLiteDialect,
    WriteMode,
    build_statement,
)
from bulk_upsert.errors import InvalidArgumentError, UnsupportedEngineError

ROWS = [(1, "a"), (2, "b")]


class TestSQLite:

    def test_upsert_uses_replace_into(self):
        stmt = build_statement(SQLiteDialect(), WriteMode.UPSERT, "users", ["id", "name"], ROWS)
        assert stmt.sql == "REPLACE INTO users (id,name) VALUES (:p0,:p1),(:p2,:p3)"
        assert stmt.params == {"p0": 1, "p1": "a", "p2": 2, "p3": "b"}
        assert stmt.row_count == 2

    def test_insert(self):
        stmt = build_statement(SQLiteDialect(), WriteMode.INSERT, "users", ["id", "name"], ROWS[:1])
        assert stmt.sql == "INSERT INTO users (id,name) VALUES (:p0,:p1)"
        assert stmt.params == {"p0": 1, "p1": "a"}


class TestMySQL:

    def test_upsert_updates_every_column(self):
        stmt = build_statement(MySQLDialect(), WriteMode.UPSERT, "users", ["id", "name"], ROWS)
        assert stmt.sql == (
            "INSERT INTO users (id,name) VALUES (%(P0)s,%(P1)s),(%(P2)s,%(P3)s) "
            "ON DUPLICATE KEY UPDATE id = VALUES(id),name = VALUES(name)"
        )
        assert stmt.params == {"P0": 1, "P1": "a", "P2": 2, "P3": "b"}

    def test_insert(self):
        stmt = build_statement(MySQLDialect(), "insert", "users", ["name"], [("a",), ("b",)])
        assert stmt.sql == "INSERT INTO users (name) VALUES (%(P0)s),(%(P1)s)"


class TestStatementLimits:

    def test_rows_capped_by_parameter_limit(self):
        assert SQLiteDialect().rows_per_statement(4, 500) == 249
        assert SQLiteDialect().rows_per_statement(1, 500) == 500
        assert MySQLDialect().rows_per_statement(4, 500) == 500

    def test_no_columns(self):
        with pytest.raises(InvalidArgumentError):
            SQLiteDialect().rows_per_statement(0, 10)

    def test_too_many_columns(self):
        with pytest.raises(InvalidArgumentError):
            SQLiteDialect().rows_per_statement(1000, 10)

    def test_empty_rows(self):
        with pytest.raises(InvalidArgumentError):
            build_statement(SQLiteDialect(), WriteMode.UPSERT, "t", ["a"], [])


class TestWriteMode:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("upsert", WriteMode.UPSERT),
            (" INSERT ", WriteMode.INSERT),
            (WriteMode.INSERT, WriteMode.INSERT),
        ],
    )
    def test_parse(self, name, expected):
        assert WriteMode.parse(name) is expected

    def test_unknown_mode(self):
        with pytest.raises(InvalidArgumentError, match="upsert, insert"):
            WriteMode.parse("merge")

    def test_build_statement_rejects_unknown_mode(self):
        with pytest.raises(InvalidArgumentError):
            build_statement(SQLiteDialect(), "merge", "t", ["a"], [(1,)])


class TestEngine:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("sqlite", Engine.SQLITE),
            ("SQLite3", Engine.SQLITE),
            ("mysql", Engine.MYSQL),
            (" MariaDB ", Engine.MYSQL),
            (Engine.MYSQL, Engine.MYSQL),
        ],
    )
    def test_parse(self, name, expected):
        assert Engine.parse(name) is expected

    @pytest.mark.parametrize("name", ["postgres", "", "SQLiteConnection"])
    def test_parse_unknown(self, name):
        with pytest.raises(UnsupportedEngineError):
            Engine.parse(name)

    def test_dialect_per_variant(self):
        assert isinstance(Engine.SQLITE.dialect, SQLiteDialect)
        assert isinstance(Engine.MYSQL.dialect, MySQLDialect)

    def test_sqlite_connection_detected(self):
        conn = sqlite3.connect(":memory:")
        try:
            assert Engine.for_connection(conn) is Engine.SQLITE
        finally:
            conn.close()

    def test_other_connections_need_explicit_engine(self):
        with pytest.raises(UnsupportedEngineError):
            Engine.for_connection(MagicMock())
