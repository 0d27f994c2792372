import sqlite3

import pytest

from bulk_upsert.config import get_settings

_ENV_VARS = (
    "BULK_UPSERT_DB",
    "BULK_UPSERT_ENGINE",
    "BULK_UPSERT_CHUNK_SIZE",
    "BULK_UPSERT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test from default settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def conn():
    """In-memory SQLite database with a few keyed tables."""
    connection = sqlite3.connect(":memory:")
    connection.executescript(
        """
        CREATE TABLE users (
            id    INTEGER PRIMARY KEY AUTOINCREMENT,
            name  TEXT NOT NULL
        );
        CREATE TABLE events (
            code        TEXT PRIMARY KEY,
            payload     TEXT,
            created_at  TEXT NOT NULL DEFAULT 'db'
        );
        CREATE TABLE Notes (
            body  TEXT
        );
        CREATE TABLE scores (
            id     INTEGER PRIMARY KEY,
            name   TEXT,
            score  REAL
        );
        """
    )
    yield connection
    connection.close()
