"""Split a sequence into fixed-size, order-preserving chunks.

:func:`chunk` is the batching primitive behind every bulk statement: each
chunk it yields becomes one multi-row ``INSERT``/``REPLACE`` statement.
"""

from __future__ import annotations

from itertools import islice
from typing import Iterable, Iterator, TypeVar

from .errors import InvalidArgumentError

T = TypeVar("T")


def chunk(source: Iterable[T], size: int) -> Iterator[list[T]]:
    """Split *source* into lists of at most *size* elements.

    Every chunk except the last holds exactly *size* elements; the last
    holds the remainder.  An empty source produces no chunks.

    Arguments are validated immediately, before any element of *source* is
    read.  The returned iterator is lazy and single-pass: it pulls from
    *source* only when the next chunk is requested.

    Parameters
    ----------
    source:
        Any iterable, including generators and database cursors.
    size:
        Maximum chunk length; must be at least 1.

    Raises
    ------
    InvalidArgumentError
        If *source* is ``None`` or *size* is below 1.
    TypeError
        If *source* is not iterable.
    """
    if source is None:
        raise InvalidArgumentError("source must not be None")
    if isinstance(size, bool) or not isinstance(size, int):
        raise InvalidArgumentError(f"size must be an integer, got {size!r}")
    if size < 1:
        raise InvalidArgumentError(f"size must be at least 1, got {size}")

    return _chunk_iterator(iter(source), size)


def release(it: Iterator) -> None:
    """Call ``close()`` on *it* if it has one (generators, DB cursors)."""
    close = getattr(it, "close", None)
    if close is not None:
        close()


def _chunk_iterator(it: Iterator[T], size: int) -> Iterator[list[T]]:
    try:
        for first in it:
            buffer = [first]
            buffer.extend(islice(it, size - 1))
            yield buffer
            if len(buffer) < size:
                # Short chunk means the source is exhausted.
                return
    finally:
        release(it)
