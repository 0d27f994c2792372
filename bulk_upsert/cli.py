"""Command-line interface for chunked upserts.

Provides two subcommands:

- ``load`` -- Read a CSV file and upsert (or insert) it into a SQLite table.
- ``plan`` -- Show the statements a write would issue for an engine,
  without touching a database.

Usage
-----
::

    python -m bulk_upsert --db shop.db load --csv users.csv --table users
    python -m bulk_upsert --engine mysql --chunk-size 200 plan --csv users.csv --table users -v
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from .config import get_settings
from .errors import BulkUpsertError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def _read_csv(path_arg: str) -> pd.DataFrame:
    """Load *path_arg* into a DataFrame, exiting if the file is missing."""
    path = Path(path_arg)
    if not path.is_file():
        print(f"Error: CSV file not found: {path}", file=sys.stderr)
        sys.exit(1)
    df = pd.read_csv(path)
    logger.debug("Read %d rows, %d columns from %s", len(df), len(df.columns), path)
    return df


def _split_columns(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    return [c.strip() for c in raw.split(",") if c.strip()]


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------

def _handle_load(args: argparse.Namespace) -> None:
    """Write a CSV file into a SQLite table."""
    from .db.connection import get_connection
    from .db.dialects import Engine
    from .db.loader import upsert_dataframe
    from .output.terminal import display_result

    if Engine.parse(args.engine) is not Engine.SQLITE:
        print(
            f"Error: load writes to SQLite only; use 'plan' to preview "
            f"{args.engine} statements.",
            file=sys.stderr,
        )
        sys.exit(1)

    df = _read_csv(args.csv)

    try:
        with get_connection(args.db) as conn:
            result = upsert_dataframe(
                conn,
                df,
                args.table,
                columns=_split_columns(args.columns),
                mode=args.mode,
                engine=Engine.SQLITE,
                chunk_size=args.chunk_size,
            )
    except sqlite3.Error as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    display_result(result)
    print("Done.")


def _handle_plan(args: argparse.Namespace) -> None:
    """Preview the statements for a CSV file without executing them."""
    from .db.dialects import Engine
    from .db.loader import dataframe_rows, plan_statements
    from .output.terminal import display_plan

    engine = Engine.parse(args.engine)
    df = _read_csv(args.csv)
    columns = _split_columns(args.columns) or [str(c) for c in df.columns]

    missing = set(columns) - set(df.columns)
    if missing:
        print(
            f"Error: CSV is missing columns: {', '.join(sorted(missing))}",
            file=sys.stderr,
        )
        sys.exit(1)

    statements = plan_statements(
        engine,
        args.table,
        columns,
        dataframe_rows(df, columns),
        mode=args.mode,
        chunk_size=args.chunk_size,
    )
    display_plan(statements, engine, verbose=args.verbose)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _add_write_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--csv",
        required=True,
        metavar="FILE",
        help="CSV file with a header row naming the table columns.",
    )
    parser.add_argument(
        "--table",
        required=True,
        metavar="NAME",
        help="Target table (must already exist for load).",
    )
    parser.add_argument(
        "--columns",
        metavar="A,B,...",
        help="Comma-separated subset of CSV columns to write (default: all).",
    )
    parser.add_argument(
        "--mode",
        choices=["upsert", "insert"],
        default="upsert",
        help="upsert replaces rows with matching keys; insert only adds (default: upsert).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser with all subcommands."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="bulk_upsert",
        description="Chunked upsert and bulk insert for SQLite and MySQL.",
    )

    # Global flags
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help=f"Path to the SQLite database (default: {settings.db_path}).",
    )
    parser.add_argument(
        "--engine",
        default=settings.engine,
        help=f"Database engine: sqlite or mysql (default: {settings.engine}).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=settings.chunk_size,
        help=f"Maximum rows per statement (default: {settings.chunk_size}).",
    )
    parser.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default=settings.log_level if settings.log_level in _LOG_LEVELS else "WARNING",
        help="Logging verbosity (default: WARNING).",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ---- load ----
    load_parser = subparsers.add_parser(
        "load",
        help="Write a CSV file into a SQLite table.",
    )
    _add_write_arguments(load_parser)
    load_parser.set_defaults(func=_handle_load)

    # ---- plan ----
    plan_parser = subparsers.add_parser(
        "plan",
        help="Show the statements a write would issue, without executing.",
    )
    _add_write_arguments(plan_parser)
    plan_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Print the SQL text of every statement.",
    )
    plan_parser.set_defaults(func=_handle_plan)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> None:
    """Parse command-line arguments and dispatch to the appropriate handler.

    Parameters
    ----------
    argv:
        Argument list to parse.  Defaults to ``sys.argv[1:]`` when
        *None*.
    """
    try:
        parser = _build_parser()
    except BulkUpsertError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level, logging.WARNING),
        format="%(asctime)s  %(name)-30s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    # Set default db path if not specified
    if args.db is None:
        args.db = get_settings().db_path

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except BulkUpsertError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
