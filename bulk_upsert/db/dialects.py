"""SQL text generation for the supported database engines.

Each :class:`Engine` variant owns one :class:`Dialect`.  Dialects only
build statement text and parameter dictionaries; execution lives in
:mod:`bulk_upsert.db.loader`.

Identifiers are interpolated as given.  Values are always bound through
named parameters, numbered from zero within each statement:

* SQLite -- ``:p0, :p1, ...`` (``sqlite3`` named style)
* MySQL  -- ``%(P0)s, %(P1)s, ...`` (``pyformat``, as used by PyMySQL and
  mysqlclient)
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from ..errors import InvalidArgumentError, UnsupportedEngineError


class WriteMode(str, Enum):
    """What a bulk statement does with rows whose key already exists."""

    UPSERT = "upsert"
    INSERT = "insert"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "WriteMode | str") -> "WriteMode":
        """Return the mode named by *value* (case-insensitive).

        Raises :class:`InvalidArgumentError` for unknown names.
        """
        if isinstance(value, WriteMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            expected = ", ".join(m.value for m in cls)
            raise InvalidArgumentError(
                f"Unknown write mode {value!r}; expected one of: {expected}"
            ) from None


@dataclass(frozen=True)
class Statement:
    """One executable statement covering a single chunk of rows."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    row_count: int = 0


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------

class Dialect:
    """Statement builder shared by both engines."""

    name: str = ""
    max_parameters: int = 999
    _param_prefix: str = "p"

    def param_name(self, index: int) -> str:
        return f"{self._param_prefix}{index}"

    def placeholder(self, name: str) -> str:
        raise NotImplementedError

    def upsert_sql(self, table: str, columns: Sequence[str], groups: Sequence[str]) -> str:
        raise NotImplementedError

    def insert_sql(self, table: str, columns: Sequence[str], groups: Sequence[str]) -> str:
        return f"INSERT INTO {table} ({','.join(columns)}) VALUES {','.join(groups)}"

    def rows_per_statement(self, column_count: int, chunk_size: int) -> int:
        """Largest chunk that keeps a statement under :attr:`max_parameters`."""
        if column_count < 1:
            raise InvalidArgumentError("at least one column is required")
        if column_count > self.max_parameters:
            raise InvalidArgumentError(
                f"{column_count} columns exceed the {self.name} limit of "
                f"{self.max_parameters} parameters per statement"
            )
        return min(chunk_size, self.max_parameters // column_count)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SQLiteDialect(Dialect):
    """``REPLACE INTO`` upserts with named ``:pN`` parameters.

    ``REPLACE`` deletes the conflicting row and inserts the new one, so every
    non-key column is overwritten.
    """

    name = "sqlite"
    # SQLITE_MAX_VARIABLE_NUMBER before SQLite 3.32.
    max_parameters = 999

    def placeholder(self, name: str) -> str:
        return f":{name}"

    def upsert_sql(self, table: str, columns: Sequence[str], groups: Sequence[str]) -> str:
        return f"REPLACE INTO {table} ({','.join(columns)}) VALUES {','.join(groups)}"


class MySQLDialect(Dialect):
    """``INSERT ... ON DUPLICATE KEY UPDATE`` with pyformat parameters.

    MySQL picks the conflicting key itself (primary key or any unique index).
    """

    name = "mysql"
    max_parameters = 65535
    _param_prefix = "P"

    def placeholder(self, name: str) -> str:
        return f"%({name})s"

    def upsert_sql(self, table: str, columns: Sequence[str], groups: Sequence[str]) -> str:
        updates = ",".join(f"{c} = VALUES({c})" for c in columns)
        return (
            f"INSERT INTO {table} ({','.join(columns)}) VALUES {','.join(groups)} "
            f"ON DUPLICATE KEY UPDATE {updates}"
        )


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

_ALIASES: dict[str, str] = {
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
    "mysql": "mysql",
    "mariadb": "mysql",
}


class Engine(str, Enum):
    """Supported database back ends."""

    SQLITE = "sqlite"
    MYSQL = "mysql"

    def __str__(self) -> str:
        return self.value

    @property
    def dialect(self) -> Dialect:
        return _DIALECTS[self]

    @classmethod
    def parse(cls, value: "Engine | str") -> "Engine":
        """Return the engine named by *value* (case-insensitive).

        Raises :class:`UnsupportedEngineError` for unknown names.
        """
        if isinstance(value, Engine):
            return value
        name = _ALIASES.get(str(value).strip().lower())
        if name is None:
            supported = ", ".join(sorted(_ALIASES))
            raise UnsupportedEngineError(
                f"Unsupported database engine {value!r}; expected one of: {supported}"
            )
        return cls(name)

    @classmethod
    def for_connection(cls, conn: Any) -> "Engine":
        """Infer the engine from *conn*; only SQLite connections qualify."""
        if isinstance(conn, sqlite3.Connection):
            return cls.SQLITE
        raise UnsupportedEngineError(
            f"Cannot infer the database engine for {type(conn).__name__}; "
            "pass engine='sqlite' or engine='mysql' explicitly"
        )


_DIALECTS: dict[Engine, Dialect] = {
    Engine.SQLITE: SQLiteDialect(),
    Engine.MYSQL: MySQLDialect(),
}


def build_statement(
    dialect: Dialect,
    mode: WriteMode,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
) -> Statement:
    """Bind *rows* (value tuples in *columns* order) into one statement."""
    if not rows:
        raise InvalidArgumentError("cannot build a statement without rows")

    params: dict[str, Any] = {}
    groups: list[str] = []
    i = 0
    for row in rows:
        holders = []
        for value in row:
            name = dialect.param_name(i)
            params[name] = value
            holders.append(dialect.placeholder(name))
            i += 1
        groups.append(f"({','.join(holders)})")

    if WriteMode.parse(mode) is WriteMode.UPSERT:
        sql = dialect.upsert_sql(table, columns, groups)
    else:
        sql = dialect.insert_sql(table, columns, groups)
    return Statement(sql=sql, params=params, row_count=len(rows))
