"""Terminal display for write summaries and statement plans.

Uses ``colorama`` for cross-platform ANSI colour output and ``tabulate``
for neatly aligned tables.  All output goes to stdout via :func:`print`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from colorama import Fore, Style, init as colorama_init
from tabulate import tabulate

if TYPE_CHECKING:
    from ..db.dialects import Engine, Statement
    from ..db.loader import WriteResult

# Initialise colorama once at import time (autoreset so every print
# statement starts from a clean style).
colorama_init(autoreset=True)

_MODE_COLOURS: dict[str, str] = {
    "upsert": Fore.CYAN,
    "insert": Fore.GREEN,
}

_SEPARATOR = "=" * 70

# Longest SQL text shown before truncating in verbose plans.
_SQL_PREVIEW_CHARS = 240


def _print_table(rows: list[list], headers: list[str]) -> None:
    table = tabulate(
        rows,
        headers=headers,
        tablefmt="simple",
        stralign="left",
        numalign="right",
    )
    for line in table.splitlines():
        print(f"    {line}")


def _header(title: str) -> None:
    print()
    print(f"{Style.BRIGHT}{Fore.WHITE}{_SEPARATOR}{Style.RESET_ALL}")
    print(f"{Style.BRIGHT}{Fore.WHITE}  {title}{Style.RESET_ALL}")
    print(f"{Style.BRIGHT}{Fore.WHITE}{_SEPARATOR}{Style.RESET_ALL}")
    print()


def display_result(result: "WriteResult") -> None:
    """Print a summary of a completed write."""
    colour = _MODE_COLOURS.get(result.mode.value, "")
    _header(f"{result.mode.value.upper()}  --  {result.table or '(nothing written)'}")

    _print_table(
        [
            ["Engine", result.engine.value],
            ["Mode", f"{colour}{result.mode.value}{Style.RESET_ALL}"],
            ["Records", result.records],
            ["Statements", result.statements],
            ["Rows affected", result.rowcount],
        ],
        headers=["", "Value"],
    )
    print()


def display_plan(
    statements: Iterable["Statement"],
    engine: "Engine",
    verbose: bool = False,
) -> int:
    """Print one row per planned statement and return the statement count.

    With *verbose*, the SQL text of each statement is printed below the
    table, truncated for readability.
    """
    statements = list(statements)
    _header(f"PLAN  --  {len(statements)} statement(s) for {engine.value}")

    if not statements:
        print(f"  {Fore.YELLOW}No rows to write.{Style.RESET_ALL}")
        print()
        return 0

    rows = [
        [i + 1, stmt.row_count, len(stmt.params)]
        for i, stmt in enumerate(statements)
    ]
    _print_table(rows, headers=["#", "Rows", "Parameters"])
    print()

    if verbose:
        for i, stmt in enumerate(statements):
            sql = stmt.sql
            if len(sql) > _SQL_PREVIEW_CHARS:
                sql = sql[:_SQL_PREVIEW_CHARS] + " ..."
            print(f"  {Style.BRIGHT}[{i + 1}]{Style.RESET_ALL} {sql}")
        print()

    return len(statements)
