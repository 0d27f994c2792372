"""Environment-driven settings for the bulk upsert layer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .errors import InvalidArgumentError

__all__: list[str] = ["Settings", "get_settings", "DEFAULT_CHUNK_SIZE"]

DEFAULT_CHUNK_SIZE: int = 500
DEFAULT_DB_PATH: Path = Path("bulk_upsert.db")


def _parse_chunk_size(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise InvalidArgumentError(
            f"BULK_UPSERT_CHUNK_SIZE must be an integer, got {raw!r}"
        ) from None
    if value < 1:
        raise InvalidArgumentError(
            f"BULK_UPSERT_CHUNK_SIZE must be at least 1, got {value}"
        )
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime defaults; every field can be overridden on the command line.

    Attributes
    ----------
    db_path : Path
        SQLite database file (``BULK_UPSERT_DB``).
    engine : str
        Engine name parsed by :meth:`Engine.parse` (``BULK_UPSERT_ENGINE``).
    chunk_size : int
        Maximum rows per statement (``BULK_UPSERT_CHUNK_SIZE``).
    log_level : str
        Logging level name (``BULK_UPSERT_LOG_LEVEL``).
    """

    db_path: Path = DEFAULT_DB_PATH
    engine: str = "sqlite"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=Path(os.getenv("BULK_UPSERT_DB", str(DEFAULT_DB_PATH))),
            engine=os.getenv("BULK_UPSERT_ENGINE", "sqlite"),
            chunk_size=_parse_chunk_size(
                os.getenv("BULK_UPSERT_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))
            ),
            log_level=os.getenv("BULK_UPSERT_LOG_LEVEL", "WARNING").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""

    return Settings.from_env()
