"""Tests for dataclass table mappings."""

from dataclasses import dataclass
from typing import Optional

import pytest

from bulk_upsert.errors import InvalidArgumentError
from bulk_upsert.mapping import (
    DataclassMapper,
    column,
    computed,
    describe,
    explicit_key,
    key,
    table,
)


@dataclass
class User:
    id: int
    name: str


@table("audit_events")
@dataclass
class AuditEvent:
    event_id: int = key()
    tenant: str = explicit_key(default="acme")
    payload: str = ""
    scratch: str = column(write=False, default="")
    created_at: Optional[str] = computed(default=None)


@dataclass
class Note:
    body: str


class NotADataclass:
    id = 1


class TestDescribe:

    def test_default_table_name_and_id_key(self):
        mapping = describe(User)
        assert mapping.table == "Users"
        assert mapping.columns == ("id", "name")
        assert mapping.keys == ("id",)
        assert mapping.explicit_keys == ()
        assert mapping.computed == ()

    def test_id_key_is_case_insensitive(self):
        @dataclass
        class Order:
            ID: int
            total: float

        assert describe(Order).keys == ("ID",)

    def test_markers(self):
        mapping = describe(AuditEvent)
        assert mapping.table == "audit_events"
        assert mapping.columns == ("event_id", "tenant", "payload", "created_at")
        assert mapping.keys == ("event_id",)
        assert mapping.explicit_keys == ("tenant",)
        assert mapping.computed == ("created_at",)
        assert mapping.all_keys == ("event_id", "tenant")

    def test_write_columns(self):
        mapping = describe(AuditEvent)
        assert mapping.upsert_columns == ("event_id", "tenant", "payload")
        assert mapping.insert_columns == ("tenant", "payload")

    def test_marked_key_disables_id_convention(self):
        @dataclass
        class Link:
            id: int
            url: str = explicit_key(default="")

        mapping = describe(Link)
        assert mapping.keys == ()
        assert mapping.explicit_keys == ("url",)

    def test_type_without_key(self):
        mapping = describe(Note)
        assert mapping.all_keys == ()
        assert mapping.upsert_columns == ("body",)

    def test_values_follow_column_order(self):
        event = AuditEvent(event_id=7, tenant="t1", payload="x")
        mapping = describe(AuditEvent)
        assert mapping.values(event, ("payload", "event_id")) == ("x", 7)

    def test_markers_keep_field_defaults(self):
        event = AuditEvent(event_id=1)
        assert event.tenant == "acme"
        assert event.created_at is None


class TestMapper:

    def test_mappings_are_cached(self):
        mapper = DataclassMapper()
        assert mapper.describe(User) is mapper.describe(User)

    @pytest.mark.parametrize("target", [NotADataclass, User(1, "a"), dict])
    def test_rejects_non_dataclass_types(self, target):
        with pytest.raises(InvalidArgumentError):
            DataclassMapper().describe(target)

    def test_empty_table_name(self):
        with pytest.raises(InvalidArgumentError):
            table("")
