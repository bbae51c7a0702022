"""Tests for path indexes, schema keys and wire types."""

import pytest

from conftest import OFFICE, WORKER, build_registry
from crudforge.errors import UnknownModelError, UnknownPathError
from crudforge.schema import build_index

DATED_PROJECT = {
    "model": "Project",
    "fields": {
        "name": "String",
        "office": {"type": "ObjectId", "ref": "Office"},
        "budget": "Date",
    },
}


class TestBuildIndex:
    def test_all_paths_of_decycled_tree(self, registry):
        assert list(registry.path_index("Project")) == [
            "name",
            "office",
            "office.name",
            "office.address",
            "office.address.street",
            "office.address.city",
            "office.manager",
            "office.manager.name",
            "office.manager.office",
            "office.manager.salary",
            "office.manager.notes",
            "office.parent",
            "budget",
        ]

    def test_prefix(self, registry):
        index = build_index(registry.decycled("Worker"), prefix="worker.")
        assert "worker.salary" in index

    def test_get_field(self, registry):
        assert registry.get_field("Project", "office.manager.salary").min_read_access == 100

    def test_unknown_path(self, registry):
        with pytest.raises(UnknownPathError) as exc_info:
            registry.get_field("Project", "office.phone")
        assert exc_info.value.path == "office.phone"

    def test_unknown_model(self, registry):
        with pytest.raises(UnknownModelError):
            registry.path_index("Nope")

    def test_validate_paths(self, registry):
        assert registry.validate_paths("Project", ["name", "office.name"]) == ["name", "office.name"]
        with pytest.raises(UnknownPathError):
            registry.validate_paths("Project", ["name", "bogus"])


class TestSchemaKeys:
    def test_depth_one(self):
        registry = build_registry(DATED_PROJECT, OFFICE, WORKER)
        assert registry.get_schema_keys("Project", 1) == ["name", "office"]

    def test_depth_two_descends_one_reference(self):
        registry = build_registry(DATED_PROJECT, OFFICE, WORKER)
        assert registry.get_schema_keys("Project", 2) == [
            "name",
            "office.name",
            "office.manager",
            "office.parent",
        ]

    def test_objects_and_dates_are_excluded(self):
        registry = build_registry({
            "model": "M",
            "fields": {"when": "Date", "blob": {"type": {}}, "count": "Number", "ok": "Boolean"},
        })
        assert registry.get_schema_keys("M", 3) == ["count", "ok"]

    def test_plain_nested_paths(self, registry):
        assert "office.address.city" in registry.get_schema_keys("Project", 3)

    def test_default_depth_is_header_depth(self):
        registry = build_registry(DATED_PROJECT, OFFICE, WORKER, max_header_depth=1)
        assert registry.get_schema_keys("Project") == ["name", "office"]

    def test_zero_depth(self, registry):
        assert registry.get_schema_keys("Project", 0) == []


class TestWireTypes:
    def test_top_level_types(self, registry):
        assert registry.get_wire_types("Project") == {
            "name": "string",
            "office": "Office",
            "budget": "float",
        }

    def test_objects_are_dropped(self):
        registry = build_registry({
            "model": "M",
            "fields": {"when": "Date", "flag": "Boolean", "nested": {"a": "String"}},
        })
        assert registry.get_wire_types("M") == {"when": "string", "flag": "bool"}


class TestGetSchema:
    def test_one_model(self, registry):
        schema = registry.get_schema("Project")
        assert [field["key"] for field in schema] == ["name", "office", "budget"]
        assert schema[1]["ref"] == {"store": "default", "model": "Office"}
        assert "children" not in schema[0]

    def test_all_models(self, registry):
        assert set(registry.get_schema()) == {"Project", "Office", "Worker"}
