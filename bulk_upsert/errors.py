"""Exception types raised by the bulk upsert layer.

Driver and source-iterator errors are never wrapped; only argument and
configuration problems detected by this package use these classes.
"""

from __future__ import annotations


class BulkUpsertError(Exception):
    """Base class for every error raised by :mod:`bulk_upsert`."""


class InvalidArgumentError(BulkUpsertError, ValueError):
    """A caller passed an argument that can never succeed."""


class MissingKeyError(InvalidArgumentError):
    """An entity type has neither a key nor an explicit key column."""


class UnsupportedEngineError(BulkUpsertError):
    """No handler exists for the requested database engine."""
