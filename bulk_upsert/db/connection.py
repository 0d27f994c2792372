"""SQLite connection manager for bulk writes.

Provides a context-managed connection with WAL mode and foreign-key
enforcement.  MySQL connections come from the caller's own driver and are
passed to :class:`~bulk_upsert.db.loader.BulkWriter` directly.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..config import get_settings

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _configure_connection(conn: sqlite3.Connection, in_memory: bool) -> None:
    """Apply runtime pragmas to *conn*."""
    if not in_memory:
        conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA busy_timeout = 5000;")


@contextmanager
def get_connection(
    db_path: Path | str | None = None,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured :class:`sqlite3.Connection`.

    The connection uses WAL journal mode, enables foreign-key constraints,
    and sets a 5-second busy timeout suitable for concurrent readers/writers.

    On normal exit the transaction is committed; on exception it is rolled
    back.  The connection is always closed when the context exits.

    Parameters
    ----------
    db_path:
        Filesystem path for the SQLite file, or ``":memory:"``.  Falls back
        to the configured ``db_path`` when *None*.
    """
    if db_path is None:
        db_path = get_settings().db_path

    in_memory = str(db_path) == MEMORY_DB
    if in_memory:
        target = MEMORY_DB
    else:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        target = str(path)

    conn = sqlite3.connect(target)
    conn.row_factory = sqlite3.Row
    logger.debug("Opened SQLite database %s", target)
    try:
        _configure_connection(conn, in_memory)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
