"""Database layer: engine dialects, connections and chunked writers."""

from .connection import get_connection
from .dialects import Dialect, Engine, MySQLDialect, SQLiteDialect, Statement, WriteMode
from .loader import (
    BulkWriter,
    WriteResult,
    insert,
    insert_records,
    plan_statements,
    upsert,
    upsert_dataframe,
    upsert_records,
)

__all__ = [
    "get_connection",
    "Dialect",
    "Engine",
    "MySQLDialect",
    "SQLiteDialect",
    "Statement",
    "WriteMode",
    "BulkWriter",
    "WriteResult",
    "insert",
    "insert_records",
    "plan_statements",
    "upsert",
    "upsert_dataframe",
    "upsert_records",
]
