"""
Unit tests for source introspection

Tests:
- extract_fields: paths, types, arrays, bounds and exclusions
- extract_source_fields: primary paths, array roots, caching
- Helpers: primary path candidates, field names, output inference
"""

import pytest

from jsonmap.introspection import (
    ExtractionCache,
    ExtractOptions,
    extract_field_names,
    extract_fields,
    extract_source_fields,
    find_arrays_and_objects,
    infer_output_fields,
)
from jsonmap.schema.models import OutputField, SourceDescriptor


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def order():
    """Sample order document"""
    return {
        "id": 7,
        "customer": {"name": "Ada", "vip": True},
        "tags": ["new", "web"],
        "lines": [
            {"sku": "A1", "qty": 2},
            {"sku": "B2", "qty": 1},
        ],
        "note": None,
        "extras": [],
    }


@pytest.fixture
def events_response():
    """API response wrapping an array of events"""
    return {
        "meta": {"page": 1},
        "data": {
            "events": [
                {"name": "launch", "at": "2024-01-05"},
                {"name": "review", "at": "2024-02-01"},
            ]
        },
    }


def paths(fields):
    return [f.path for f in fields]


# ============================================================================
# TEST: extract_fields
# ============================================================================


class TestExtractFields:
    """Tests for path enumeration"""

    def test_document_order_and_types(self, order):
        fields = extract_fields(order)

        assert paths(fields) == [
            "id",
            "customer",
            "customer.name",
            "customer.vip",
            "tags",
            "lines",
            "lines[*]",
            "lines[*].sku",
            "lines[*].qty",
            "lines[0]",
            "lines[0].sku",
            "lines[0].qty",
            "lines[1]",
            "lines[1].sku",
            "lines[1].qty",
            "note",
        ]
        types = {f.path: f.type for f in fields}
        assert types["id"] == "number"
        assert types["customer"] == "object"
        assert types["customer.vip"] == "boolean"
        assert types["tags"] == "array"
        assert types["note"] == "null"

    def test_array_descriptor(self, order):
        lines = next(f for f in extract_fields(order) if f.path == "lines")

        assert lines.array_length == 2
        assert not lines.is_leaf

    def test_wildcard_and_fixed_flags(self, order):
        fields = {f.path: f for f in extract_fields(order)}

        assert fields["lines[*].sku"].is_wildcard
        assert fields["lines[*].sku"].name == "sku"
        assert fields["lines[0].sku"].is_fixed_index
        assert not fields["customer.name"].is_wildcard

    def test_values_included(self, order):
        fields = {f.path: f for f in extract_fields(order)}

        assert fields["customer.name"].value == "Ada"
        assert fields["customer"].value is None

    def test_values_excluded(self, order):
        fields = extract_fields(order, options=ExtractOptions(include_values=False))

        assert all(f.value is None for f in fields)

    def test_depth_is_counted_from_root(self, order):
        fields = {f.path: f for f in extract_fields(order)}

        assert fields["id"].depth == 1
        assert fields["customer.name"].depth == 2

    def test_max_depth(self, order):
        fields = extract_fields(order, options=ExtractOptions(max_depth=1))

        assert "customer" in paths(fields)
        assert "customer.name" not in paths(fields)
        assert "lines[*]" not in paths(fields)

    def test_wildcards_only(self, order):
        options = ExtractOptions(include_fixed_indices=False)
        fields = extract_fields(order, options=options)

        assert "lines[*].sku" in paths(fields)
        assert "lines[0].sku" not in paths(fields)

    def test_max_array_indices(self, order):
        options = ExtractOptions(max_array_indices=1)
        fields = extract_fields(order, options=options)

        assert "lines[0].sku" in paths(fields)
        assert "lines[1].sku" not in paths(fields)

    def test_null_and_empty_array_switches(self, order):
        options = ExtractOptions(include_null_values=False, include_empty_arrays=True)
        fields = extract_fields(order, options=options)

        assert "note" not in paths(fields)
        assert "extras" in paths(fields)

    def test_exclude_patterns(self, order):
        options = ExtractOptions(exclude_patterns=("cust*", "note"))
        fields = extract_fields(order, options=options)

        assert not any(p.startswith("customer") for p in paths(fields))
        assert "note" not in paths(fields)

    def test_max_total_fields(self, order):
        fields = extract_fields(order, options=ExtractOptions(max_total_fields=3))

        assert paths(fields) == ["id", "customer", "customer.name"]

    def test_base_path_prefix(self):
        fields = extract_fields({"a": 1}, base_path="root")

        assert paths(fields) == ["root", "root.a"]

    def test_scalar_root_yields_nothing(self):
        assert extract_fields(42) == []


# ============================================================================
# TEST: extract_source_fields
# ============================================================================


class TestExtractSourceFields:
    """Tests for per-source extraction"""

    def test_array_root_is_rebased_onto_items(self, events_response):
        source = SourceDescriptor(id="api", name="Events", type="array", primary_path="data.events")
        fields = extract_source_fields(events_response, source)

        assert paths(fields) == ["name", "at"]
        assert all(f.source_id == "api" and f.source_name == "Events" for f in fields)
        assert fields[0].depth == 1

    def test_object_root(self, events_response):
        source = SourceDescriptor(id="api", name="Meta", primary_path="meta")

        assert paths(extract_source_fields(events_response, source)) == ["page"]

    def test_cache_is_reused_and_invalidated(self, events_response):
        cache = ExtractionCache()
        source = SourceDescriptor(id="api", name="Events", primary_path="data.events")

        first = extract_source_fields(events_response, source, cache=cache)
        second = extract_source_fields({"other": 1}, source, cache=cache)

        assert second is first
        assert len(cache) == 1

        cache.invalidate("api")
        assert len(cache) == 0
        assert paths(extract_source_fields({"data": {"events": [{"x": 1}]}}, source, cache=cache)) == ["x"]


# ============================================================================
# TEST: Helpers
# ============================================================================


class TestHelpers:
    """Tests for introspection helpers"""

    def test_find_arrays_and_objects(self, events_response):
        found = find_arrays_and_objects(events_response)

        assert {"path": "", "type": "object"} in found
        assert {"path": "data.events", "type": "array", "count": 2} in found

    def test_extract_field_names(self, order):
        assert extract_field_names(order) == ["id", "note"]

    def test_infer_output_fields(self):
        fields = infer_output_fields({"name": "Ada", "address": {"city": "X"}, "tags": [], "x": None})

        assert fields == [
            OutputField(path="name", type="string"),
            OutputField(path="address", type="object"),
            OutputField(path="address.city", type="string"),
            OutputField(path="tags", type="array"),
            OutputField(path="x", type="any"),
        ]
