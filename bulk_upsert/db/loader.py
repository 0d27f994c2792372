"""Chunked bulk upsert and insert over a DB-API connection.

The main entry point is :class:`BulkWriter`, bound to one connection and one
:class:`~bulk_upsert.db.dialects.Engine`.  Rows are split into chunks and
each chunk is sent as a single multi-row statement:

* SQLite -- ``REPLACE INTO``: rows whose PRIMARY KEY or UNIQUE columns match
  an existing row replace it; all others are inserted.
* MySQL -- ``INSERT ... ON DUPLICATE KEY UPDATE`` with every column
  refreshed from the incoming row.

Module-level helpers (:func:`upsert`, :func:`insert`,
:func:`upsert_records`, :func:`insert_records`, :func:`upsert_dataframe`)
build a writer for a single call.  Transactions are left to the caller;
:func:`~bulk_upsert.db.connection.get_connection` commits on exit.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from itertools import chain
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

import pandas as pd

from ..chunking import chunk, release
from ..config import get_settings
from ..errors import InvalidArgumentError, MissingKeyError
from ..mapping import TableMapper, TableMapping, default_mapper
from .dialects import Engine, Statement, WriteMode, build_statement

logger = logging.getLogger(__name__)

_EMPTY = object()


@dataclass
class WriteResult:
    """Outcome of one bulk write.

    Attributes
    ----------
    table : str
        Target table.  Empty when an entity write received no entities,
        since there is no type to take the table name from.
    engine : Engine
        Engine the statements were built for.
    mode : WriteMode
        ``upsert`` or ``insert``.
    records : int
        Rows sent to the database.
    statements : int
        Statements executed (one per chunk).
    rowcount : int
        Sum of the driver-reported rowcounts.  MySQL counts an updated row
        twice, so this can exceed *records*.
    """

    table: str
    engine: Engine
    mode: WriteMode
    records: int = 0
    statements: int = 0
    rowcount: int = 0


def _execute(conn: Any, statement: Statement) -> int:
    """Run *statement* on a fresh cursor and return its rowcount."""
    cursor = conn.cursor()
    try:
        cursor.execute(statement.sql, statement.params)
        return cursor.rowcount
    finally:
        cursor.close()


def plan_statements(
    engine: Engine | str,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    mode: WriteMode | str = WriteMode.UPSERT,
    chunk_size: Optional[int] = None,
) -> Iterator[Statement]:
    """Lazily build one statement per chunk of *rows* for *engine*.

    Arguments are checked before the first row is read.  The chunk size is
    capped so that no statement exceeds the engine's parameter limit.
    """
    if not table:
        raise InvalidArgumentError("table name must not be empty")
    dialect = Engine.parse(engine).dialect
    columns = list(columns)
    mode = WriteMode.parse(mode)
    if chunk_size is None:
        chunk_size = get_settings().chunk_size
    size = dialect.rows_per_statement(len(columns), chunk_size)
    return (
        build_statement(dialect, mode, table, columns, part)
        for part in chunk(rows, size)
    )


def _record_values(record: Any, columns: Sequence[str], table: str) -> tuple:
    if isinstance(record, Mapping):
        try:
            return tuple(record[c] for c in columns)
        except KeyError as exc:
            raise InvalidArgumentError(
                f"Record for {table} is missing column {exc.args[0]!r}"
            ) from None
    if isinstance(record, (str, bytes)):
        raise InvalidArgumentError(f"Record for {table} must be a mapping or a sequence")
    values = tuple(record)
    if len(values) != len(columns):
        raise InvalidArgumentError(
            f"Record for {table} has {len(values)} values, expected {len(columns)}"
        )
    return values


class BulkWriter:
    """Write rows to one connection in fixed-size multi-row statements.

    Parameters
    ----------
    conn:
        An open DB-API connection (``sqlite3``, PyMySQL, mysqlclient, ...).
    engine:
        :class:`Engine` or engine name.  When *None* the engine is inferred,
        which only works for :class:`sqlite3.Connection`.
    chunk_size:
        Maximum rows per statement; defaults to the configured
        ``chunk_size``.  Statements are further limited so that they never
        bind more parameters than the engine allows.
    mapper:
        Describes entity types for :meth:`upsert` and :meth:`insert`.

    Raises
    ------
    UnsupportedEngineError
        If the engine is unknown or cannot be inferred.
    InvalidArgumentError
        If *chunk_size* is below 1.
    """

    def __init__(
        self,
        conn: Any,
        engine: Engine | str | None = None,
        *,
        chunk_size: Optional[int] = None,
        mapper: Optional[TableMapper] = None,
    ) -> None:
        if conn is None:
            raise InvalidArgumentError("conn must not be None")
        if chunk_size is None:
            chunk_size = get_settings().chunk_size
        if chunk_size < 1:
            raise InvalidArgumentError(f"chunk_size must be at least 1, got {chunk_size}")

        self.conn = conn
        self.engine = Engine.for_connection(conn) if engine is None else Engine.parse(engine)
        self.dialect = self.engine.dialect
        self.chunk_size = chunk_size
        self.mapper: TableMapper = mapper or default_mapper()

    # ------------------------------------------------------------------
    # Statement planning
    # ------------------------------------------------------------------

    def plan(
        self,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        mode: WriteMode | str = WriteMode.UPSERT,
    ) -> Iterator[Statement]:
        """Yield one :class:`Statement` per chunk of *rows* without executing.

        *rows* are value tuples in *columns* order.
        """
        return plan_statements(self.engine, table, columns, rows, mode, self.chunk_size)

    def _run(
        self,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        mode: WriteMode,
    ) -> WriteResult:
        result = WriteResult(table=table, engine=self.engine, mode=mode)
        for statement in self.plan(table, columns, rows, mode):
            logger.debug(
                "%s %d row(s) into %s (%d params)",
                mode.value, statement.row_count, table, len(statement.params),
            )
            affected = _execute(self.conn, statement)
            result.records += statement.row_count
            result.statements += 1
            if affected and affected > 0:
                result.rowcount += affected

        if result.statements:
            logger.info(
                "%s: %d rows into %s in %d statement(s) [%s]",
                mode.value.capitalize(), result.records, table,
                result.statements, self.engine.value,
            )
        else:
            logger.debug("Nothing to %s into %s", mode.value, table)
        return result

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def write_records(
        self,
        table: str,
        columns: Sequence[str],
        records: Iterable[Any],
        mode: WriteMode | str = WriteMode.UPSERT,
    ) -> WriteResult:
        """Write mappings or positional sequences into *table*.

        Mapping values are looked up by column name; sequences must list
        the values in *columns* order.
        """
        if records is None:
            raise InvalidArgumentError("records must not be None")
        columns = list(columns)
        mode = WriteMode.parse(mode)
        it = iter(records)
        try:
            rows = (_record_values(r, columns, table) for r in it)
            return self._run(table, columns, rows, mode)
        finally:
            release(it)

    def upsert_records(
        self, table: str, columns: Sequence[str], records: Iterable[Any]
    ) -> WriteResult:
        return self.write_records(table, columns, records, WriteMode.UPSERT)

    def insert_records(
        self, table: str, columns: Sequence[str], records: Iterable[Any]
    ) -> WriteResult:
        return self.write_records(table, columns, records, WriteMode.INSERT)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def _entity_columns(
        self, entity_type: type, mode: WriteMode
    ) -> tuple[TableMapping, list[str]]:
        mapping = self.mapper.describe(entity_type)
        if mode is WriteMode.UPSERT:
            if not mapping.all_keys:
                raise MissingKeyError(
                    f"{mapping.entity_type.__name__} must have at least one "
                    "key or explicit key field"
                )
            return mapping, list(mapping.upsert_columns)
        return mapping, list(mapping.insert_columns)

    @staticmethod
    def _entity_rows(
        mapping: TableMapping, columns: list[str], entities: Iterable[Any]
    ) -> Iterator[tuple]:
        for entity in entities:
            if type(entity) is not mapping.entity_type:
                raise InvalidArgumentError(
                    f"Expected {mapping.entity_type.__name__}, "
                    f"got {type(entity).__name__}"
                )
            yield mapping.values(entity, columns)

    def _write_entities(self, entities: Any, mode: WriteMode) -> WriteResult:
        if entities is None:
            raise InvalidArgumentError("entities must not be None")

        single = dataclasses.is_dataclass(entities) and not isinstance(entities, type)
        if single or not isinstance(entities, Iterable):
            it: Iterator[Any] = iter((entities,))
        else:
            it = iter(entities)

        try:
            first = next(it, _EMPTY)
            if first is _EMPTY:
                logger.debug("No entities to %s", mode.value)
                return WriteResult(table="", engine=self.engine, mode=mode)

            mapping, columns = self._entity_columns(type(first), mode)
            rows = self._entity_rows(mapping, columns, chain((first,), it))
            return self._run(mapping.table, columns, rows, mode)
        finally:
            release(it)

    def upsert(self, entities: Any) -> WriteResult:
        """Insert or fully update one entity or an iterable of entities.

        Every non-computed column, keys included, is written.
        An empty iterable writes nothing and returns a result whose
        ``table`` is empty.

        Raises
        ------
        MissingKeyError
            If the entity type has no key or explicit key.
        """
        return self._write_entities(entities, WriteMode.UPSERT)

    def insert(self, entities: Any) -> WriteResult:
        """Bulk-insert entities, leaving generated keys to the database."""
        return self._write_entities(entities, WriteMode.INSERT)


# ---------------------------------------------------------------------------
# One-shot helpers
# ---------------------------------------------------------------------------

def upsert(
    conn: Any,
    entities: Any,
    *,
    engine: Engine | str | None = None,
    chunk_size: Optional[int] = None,
    mapper: Optional[TableMapper] = None,
) -> WriteResult:
    """Upsert dataclass *entities* (one instance or an iterable)."""
    return BulkWriter(conn, engine, chunk_size=chunk_size, mapper=mapper).upsert(entities)


def insert(
    conn: Any,
    entities: Any,
    *,
    engine: Engine | str | None = None,
    chunk_size: Optional[int] = None,
    mapper: Optional[TableMapper] = None,
) -> WriteResult:
    """Bulk-insert dataclass *entities* (one instance or an iterable)."""
    return BulkWriter(conn, engine, chunk_size=chunk_size, mapper=mapper).insert(entities)


def upsert_records(
    conn: Any,
    table: str,
    columns: Sequence[str],
    records: Iterable[Any],
    *,
    engine: Engine | str | None = None,
    chunk_size: Optional[int] = None,
) -> WriteResult:
    """Upsert mappings or value sequences into *table*."""
    return BulkWriter(conn, engine, chunk_size=chunk_size).upsert_records(table, columns, records)


def insert_records(
    conn: Any,
    table: str,
    columns: Sequence[str],
    records: Iterable[Any],
    *,
    engine: Engine | str | None = None,
    chunk_size: Optional[int] = None,
) -> WriteResult:
    """Bulk-insert mappings or value sequences into *table*."""
    return BulkWriter(conn, engine, chunk_size=chunk_size).insert_records(table, columns, records)


def dataframe_rows(df: pd.DataFrame, columns: Sequence[str]) -> list[list[Any]]:
    """Return *df* restricted to *columns* as Python values, NaN as ``None``."""
    frame = df[list(columns)].astype(object)
    return frame.where(frame.notna(), None).values.tolist()


def upsert_dataframe(
    conn: Any,
    df: pd.DataFrame,
    table: str,
    *,
    columns: Sequence[str] | None = None,
    exclude: Sequence[str] = (),
    mode: WriteMode | str = WriteMode.UPSERT,
    engine: Engine | str | None = None,
    chunk_size: Optional[int] = None,
) -> WriteResult:
    """Write *df* into *table*.

    Parameters
    ----------
    conn:
        An open DB-API connection.
    df:
        Source data.  Column names must match the target table columns.
    table:
        Target table name (must already exist).
    columns:
        Explicit column list to use.  When *None*, the DataFrame's own
        column names are used after dropping any in *exclude*.
    exclude:
        Columns managed by the database (e.g. ``id`` or ``created_at``).
    mode:
        ``upsert`` (default) or ``insert``.
    engine, chunk_size:
        See :class:`BulkWriter`.

    Returns
    -------
    WriteResult
    """
    writer = BulkWriter(conn, engine, chunk_size=chunk_size)
    mode = WriteMode.parse(mode)

    if columns is None:
        skip = set(exclude)
        columns = [c for c in df.columns if c not in skip]

    # Ensure the DataFrame only contains the columns we plan to write.
    missing = set(columns) - set(df.columns)
    if missing:
        raise InvalidArgumentError(
            f"DataFrame is missing columns required for {table}: {sorted(map(str, missing))}"
        )

    if df.empty:
        logger.debug("Empty DataFrame -- nothing to write into %s", table)
        return WriteResult(table=table, engine=writer.engine, mode=mode)

    rows = dataframe_rows(df, columns)
    return writer._run(table, [str(c) for c in columns], rows, mode)
