"""Tests for table header projection."""

from conftest import OFFICE, PROJECT, WORKER, build_registry
from crudforge.schema import project


def header_keys(headers):
    return [header.key for header in headers]


def find(headers, key):
    return next(header for header in headers if header.key == key)


def reference_hops(headers) -> int:
    best = 0
    for header in headers:
        if header.subheaders:
            hop = 1 if header.value_type not in ("Object", None) else 0
            best = max(best, hop + reference_hops(header.subheaders))
    return best


class TestProjection:
    def test_header_attributes(self, registry):
        name = find(registry.get_table_headers("Project"), "name")
        assert name.display_name == "Name"
        assert name.value_type == "String"
        assert name.primary is True
        assert name.is_array is False
        assert name.subheaders is None

    def test_hidden_fields_are_omitted(self, registry):
        headers = registry.get_table_headers("Worker")
        assert "notes" not in header_keys(headers)

    def test_hidden_fields_are_omitted_below_references(self, registry):
        office = find(registry.get_table_headers("Project", 2), "office")
        manager = find(office.subheaders, "manager")
        assert header_keys(manager.subheaders) == ["name", "office", "salary"]

    def test_to_dict(self, registry):
        data = find(registry.get_table_headers("Project", 1), "office").to_dict()
        assert data["name"] == "Office"
        assert data["type"] == "Office"
        assert [h["key"] for h in data["subheaders"]] == ["name", "address", "manager", "parent"]


class TestDepth:
    def test_zero_depth_expands_no_reference(self, registry):
        office = find(registry.get_table_headers("Project", 0), "office")
        assert office.subheaders is None

    def test_one_reference_hop(self, registry):
        headers = registry.get_table_headers("Project", 1)
        office = find(headers, "office")
        assert header_keys(office.subheaders) == ["name", "address", "manager", "parent"]
        assert find(office.subheaders, "manager").subheaders is None
        assert reference_hops(headers) == 1

    def test_plain_nesting_is_free(self, registry):
        office = find(registry.get_table_headers("Project", 1), "office")
        address = find(office.subheaders, "address")
        assert header_keys(address.subheaders) == ["street", "city"]

    def test_deep_plain_nesting_at_root(self):
        registry = build_registry({
            "model": "M",
            "fields": {"a": {"b": {"c": {"d": "String"}}}},
        })
        headers = registry.get_table_headers("M", 0)
        assert headers[0].subheaders[0].subheaders[0].subheaders[0].key == "d"

    def test_cycles_are_bounded(self, registry):
        for depth in range(4):
            headers = project(registry.fields("Office"), depth)
            assert reference_hops(headers) <= depth

    def test_default_depth(self):
        registry = build_registry(PROJECT, OFFICE, WORKER, max_header_depth=1)
        office = find(registry.get_table_headers("Project"), "office")
        assert find(office.subheaders, "parent").subheaders is None
