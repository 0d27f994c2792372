"""Entity-to-table mapping for dataclass records.

A :class:`TableMapping` answers the questions every bulk statement needs:
which table, which columns, which of them are keys, and which are computed
by the database and must never be written.  :class:`DataclassMapper`
derives a mapping from ``dataclasses.field`` metadata:

::

    @table("users")
    @dataclass
    class User:
        id: int = key()
        email: str = ""
        updated_at: str = computed(default=None)

Other record types can plug in by implementing the :class:`TableMapper`
protocol.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, TypeVar

from .errors import InvalidArgumentError

_META_KEY = "bulk_upsert"

_KEY = "key"
_EXPLICIT_KEY = "explicit_key"
_COMPUTED = "computed"

C = TypeVar("C", bound=type)


# ---------------------------------------------------------------------------
# Field markers
# ---------------------------------------------------------------------------

def _marked(role: str | None, write: bool = True, **kwargs: Any) -> Any:
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[_META_KEY] = {"role": role, "write": write}
    return dataclasses.field(metadata=metadata, **kwargs)


def key(**kwargs: Any) -> Any:
    """Mark a field as a database-generated key (e.g. autoincrement)."""
    return _marked(_KEY, **kwargs)


def explicit_key(**kwargs: Any) -> Any:
    """Mark a field as a key whose value is assigned by the caller."""
    return _marked(_EXPLICIT_KEY, **kwargs)


def computed(**kwargs: Any) -> Any:
    """Mark a field as computed by the database; it is never written."""
    return _marked(_COMPUTED, **kwargs)


def column(*, write: bool = True, **kwargs: Any) -> Any:
    """Declare a plain field; ``write=False`` keeps it out of the table."""
    return _marked(None, write=write, **kwargs)


def table(name: str) -> Callable[[C], C]:
    """Class decorator overriding the default table name."""
    if not name:
        raise InvalidArgumentError("table name must not be empty")

    def decorate(cls: C) -> C:
        cls.__table_name__ = name
        return cls

    return decorate


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableMapping:
    """Column layout of one entity type.

    Attributes
    ----------
    entity_type : type
        The mapped class.
    table : str
        Target table name.
    columns : tuple[str, ...]
        Every mapped column in declaration order, computed ones included.
    keys : tuple[str, ...]
        Keys generated by the database.
    explicit_keys : tuple[str, ...]
        Keys supplied by the caller.
    computed : tuple[str, ...]
        Columns the database fills in; never written.
    """

    entity_type: type
    table: str
    columns: tuple[str, ...]
    keys: tuple[str, ...] = ()
    explicit_keys: tuple[str, ...] = ()
    computed: tuple[str, ...] = ()

    @property
    def all_keys(self) -> tuple[str, ...]:
        return self.keys + self.explicit_keys

    @property
    def upsert_columns(self) -> tuple[str, ...]:
        """Columns written by an upsert: everything except computed."""
        return tuple(c for c in self.columns if c not in self.computed)

    @property
    def insert_columns(self) -> tuple[str, ...]:
        """Columns written by an insert: generated keys are left to the database."""
        skip = set(self.keys) | set(self.computed)
        return tuple(c for c in self.columns if c not in skip)

    def values(self, entity: Any, columns: Sequence[str]) -> tuple:
        return tuple(getattr(entity, name) for name in columns)


class TableMapper(Protocol):
    """Anything that can describe how an entity type maps to a table."""

    def describe(self, entity_type: type) -> TableMapping:
        ...


class DataclassMapper:
    """Build :class:`TableMapping` objects from dataclass field metadata.

    Rules:

    * The table is ``__table_name__`` (see :func:`table`) or the class name
      followed by ``s``.
    * Fields declared with ``column(write=False)`` are not columns.
    * With no field marked :func:`key` or :func:`explicit_key`, a field
      named ``id`` (any case) is the generated key.

    Mappings are cached per type.
    """

    def __init__(self) -> None:
        self._cache: dict[type, TableMapping] = {}

    def describe(self, entity_type: type) -> TableMapping:
        if not (isinstance(entity_type, type) and dataclasses.is_dataclass(entity_type)):
            raise InvalidArgumentError(
                f"{entity_type!r} is not a dataclass type; "
                "pass a dataclass or supply a custom TableMapper"
            )

        cached = self._cache.get(entity_type)
        if cached is not None:
            return cached

        columns: list[str] = []
        keys: list[str] = []
        explicit: list[str] = []
        computed_cols: list[str] = []

        for f in dataclasses.fields(entity_type):
            meta = f.metadata.get(_META_KEY, {})
            if not meta.get("write", True):
                continue
            columns.append(f.name)
            role = meta.get("role")
            if role == _KEY:
                keys.append(f.name)
            elif role == _EXPLICIT_KEY:
                explicit.append(f.name)
            elif role == _COMPUTED:
                computed_cols.append(f.name)

        if not keys and not explicit:
            keys = [name for name in columns if name.lower() == "id"][:1]

        mapping = TableMapping(
            entity_type=entity_type,
            table=getattr(entity_type, "__table_name__", None) or f"{entity_type.__name__}s",
            columns=tuple(columns),
            keys=tuple(keys),
            explicit_keys=tuple(explicit),
            computed=tuple(computed_cols),
        )
        self._cache[entity_type] = mapping
        return mapping


_default_mapper = DataclassMapper()


def describe(entity_type: type) -> TableMapping:
    """Describe *entity_type* with the shared :class:`DataclassMapper`."""
    return _default_mapper.describe(entity_type)


def default_mapper() -> DataclassMapper:
    return _default_mapper
