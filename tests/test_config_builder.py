"""
Unit tests for MappingConfigBuilder

Tests:
- Sources, primary paths and merge modes
- Mapping drop semantics, array index and mode edits
- Transformations attached to mappings
- Undo and redo history
"""

import itertools

import pytest

from jsonmap.builder import MappingConfigBuilder
from jsonmap.mapper.mapping import FieldMapping
from jsonmap.schema.models import (
    MappingTransformation,
    OutputField,
    OutputWrapperConfig,
    SourceDescriptor,
)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def builder():
    """Builder with deterministic ids and one source"""
    counter = itertools.count(1)
    builder = MappingConfigBuilder(id_factory=lambda: f"m{next(counter)}")
    builder.add_source(SourceDescriptor(id="api", name="API", type="array", primary_path="events"))
    return builder


# ============================================================================
# TEST: Sources
# ============================================================================


class TestSources:
    """Tests for source selection edits"""

    def test_first_source_sets_primary_path(self, builder):
        selection = builder.config.source_selection

        assert selection.primary_path == "events"
        assert [s.id for s in selection.sources] == ["api"]

    def test_add_source_replaces_same_id(self, builder):
        builder.add_source(SourceDescriptor(id="api", name="API v2"))

        assert [s.name for s in builder.config.source_selection.sources] == ["API v2"]

    def test_remove_source_drops_its_mappings(self, builder):
        builder.add_source(SourceDescriptor(id="shop", name="Shop"))
        builder.add_mapping("name", "title", source_id="api")
        builder.add_mapping("label", "title", source_id="shop")

        config = builder.remove_source("shop")

        assert [s.id for s in config.source_selection.sources] == ["api"]
        assert [m.source_id for m in config.field_mappings] == ["api"]

    def test_set_primary_path_of_first_source(self, builder):
        config = builder.set_primary_path("data.events", source_id="api")

        assert config.source_selection.primary_path == "data.events"
        assert config.source_selection.sources[0].primary_path == "data.events"

    def test_set_primary_path_unknown_source(self, builder):
        with pytest.raises(ValueError):
            builder.set_primary_path("x", source_id="ghost")

    def test_set_merge_mode(self, builder):
        assert builder.set_merge_mode("combined").source_selection.merge_mode == "combined"
        with pytest.raises(ValueError):
            builder.set_merge_mode("zip")


# ============================================================================
# TEST: Mappings
# ============================================================================


class TestMappings:
    """Tests for mapping edits"""

    def test_add_mapping(self, builder):
        config = builder.add_mapping("name", "title", source_id="api", fallback_value="untitled")

        assert config.field_mappings == (
            FieldMapping(id="m1", source_path="name", target_path="title", source_id="api", fallback_value="untitled"),
        )

    def test_drop_replaces_same_source_and_target(self, builder):
        builder.add_mapping("name", "title", source_id="api")
        config = builder.add_mapping("label", "title", source_id="api")

        assert [(m.id, m.source_path) for m in config.field_mappings] == [("m2", "label")]

    def test_drop_keeps_other_sources(self, builder):
        builder.add_mapping("name", "title", source_id="api")
        config = builder.add_mapping("label", "title", source_id="shop")

        assert [m.source_id for m in config.field_mappings] == ["api", "shop"]

    def test_wildcard_defaults_to_index_zero(self, builder):
        [mapping] = builder.add_mapping("tags[*].name", "tag").field_mappings

        assert mapping.source_path == "tags[0].name"
        assert mapping.array_config.mapping_mode == "index"
        assert mapping.array_config.template_path == "tags[*].name"

    def test_array_mode(self, builder):
        [mapping] = builder.add_mapping("tags[*].name", "tags", mapping_mode="array").field_mappings

        assert mapping.source_path == "tags[*].name"
        assert mapping.is_array_mode

    def test_set_array_index_keeps_id(self, builder):
        builder.add_mapping("tags[*].name", "tag")
        [mapping] = builder.set_array_index("m1", "tags", 2).field_mappings

        assert mapping.id == "m1"
        assert mapping.source_path == "tags[2].name"

    def test_set_mapping_mode(self, builder):
        builder.add_mapping("tags[1].name", "tag")

        [mapping] = builder.set_mapping_mode("m1", "array").field_mappings
        assert mapping.source_path == "tags[*].name"

        [mapping] = builder.set_mapping_mode("m1", "index").field_mappings
        assert mapping.source_path == "tags[1].name"

    def test_array_edits_require_arrays(self, builder):
        builder.add_mapping("name", "title")

        with pytest.raises(ValueError):
            builder.set_array_index("m1", "name", 1)
        with pytest.raises(ValueError):
            builder.set_mapping_mode("m1", "array")

    def test_update_mapping(self, builder):
        builder.add_mapping("name", "title")
        [mapping] = builder.update_mapping("m1", source_path="items[3].name", target_path="heading").field_mappings

        assert mapping.id == "m1"
        assert mapping.target_path == "heading"
        assert mapping.source_path == "items[3].name"
        assert mapping.array_config.indices == {"items": 3}

    def test_update_mapping_rejects_id_change(self, builder):
        builder.add_mapping("name", "title")

        with pytest.raises(ValueError):
            builder.update_mapping("m1", id="other")

    def test_remove_mapping(self, builder):
        builder.add_mapping("name", "title")

        assert builder.remove_mapping("m1").field_mappings == ()
        with pytest.raises(ValueError):
            builder.remove_mapping("m1")

    def test_add_mappings(self, builder):
        mappings = [FieldMapping(id="a1", source_path="x", target_path="y")]

        assert builder.add_mappings(mappings).field_mappings == tuple(mappings)


# ============================================================================
# TEST: Template, wrapper and transformations
# ============================================================================


class TestOutputAndTransformations:
    """Tests for template, wrapper and transformation edits"""

    def test_add_output_field_replaces_same_path(self, builder):
        builder.add_output_field(OutputField(path="title"))
        config = builder.add_output_field(OutputField(path="title", required=True))

        assert config.output_template.fields == (OutputField(path="title", required=True),)

    def test_set_output_wrapper(self, builder):
        wrapper = OutputWrapperConfig(enabled=True, wrapper_key="events")

        assert builder.set_output_wrapper(wrapper).output_wrapper == wrapper

    def test_attach_and_chain(self, builder):
        builder.add_transformation(MappingTransformation(id="t1", name="Trim", type="trim"))
        builder.add_transformation(MappingTransformation(id="t2", name="Upper", type="uppercase"))
        builder.add_mapping("name", "title")

        builder.attach_transformation("m1", "t1")
        [mapping] = builder.attach_transformation("m1", "t2", chain=True).field_mappings

        assert mapping.transform_chain == ["t1", "t2"]

    def test_attach_unknown_transformation(self, builder):
        builder.add_mapping("name", "title")

        with pytest.raises(ValueError):
            builder.attach_transformation("m1", "missing")

    def test_remove_transformation_detaches_it(self, builder):
        builder.add_transformation(MappingTransformation(id="t1", name="Trim", type="trim"))
        builder.add_mapping("name", "title", transform_id="t1")

        config = builder.remove_transformation("t1")

        assert config.transformations == ()
        assert config.field_mappings[0].transform_chain == []


# ============================================================================
# TEST: History
# ============================================================================


class TestHistory:
    """Tests for undo and redo"""

    def test_undo_redo(self, builder):
        before = builder.config
        after = builder.add_mapping("name", "title")

        assert builder.undo() == before
        assert builder.can_redo
        assert builder.redo() == after

    def test_new_edit_clears_redo(self, builder):
        builder.add_mapping("name", "title")
        builder.undo()
        builder.add_mapping("label", "title")

        assert not builder.can_redo

    def test_noop_edit_is_not_recorded(self, builder):
        builder.add_mapping("name", "title")
        builder.set_merge_mode("single")
        builder.undo()

        assert builder.config.field_mappings == ()

    def test_undo_on_empty_history(self):
        builder = MappingConfigBuilder()

        assert not builder.can_undo
        assert builder.undo() == builder.config
