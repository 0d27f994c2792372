"""Chunked upsert and bulk insert for SQLite and MySQL."""

from .chunking import chunk
from .db import (
    BulkWriter,
    Engine,
    WriteMode,
    WriteResult,
    get_connection,
    insert,
    insert_records,
    upsert,
    upsert_dataframe,
    upsert_records,
)
from .errors import (
    BulkUpsertError,
    InvalidArgumentError,
    MissingKeyError,
    UnsupportedEngineError,
)
from .mapping import (
    DataclassMapper,
    TableMapper,
    TableMapping,
    column,
    computed,
    describe,
    explicit_key,
    key,
    table,
)

__version__ = "0.1.0"

__all__ = [
    "chunk",
    "BulkWriter",
    "Engine",
    "WriteMode",
    "WriteResult",
    "get_connection",
    "insert",
    "insert_records",
    "upsert",
    "upsert_dataframe",
    "upsert_records",
    "BulkUpsertError",
    "InvalidArgumentError",
    "MissingKeyError",
    "UnsupportedEngineError",
    "DataclassMapper",
    "TableMapper",
    "TableMapping",
    "column",
    "computed",
    "describe",
    "explicit_key",
    "key",
    "table",
]
