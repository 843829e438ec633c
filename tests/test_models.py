"""Unit tests for configuration models and their JSON form"""

import json

import pytest

from jsonmap.mapper.mapping import ArrayIndexConfig, FieldMapping, MappingCondition
from jsonmap.schema.models import (
    MappingConfig,
    MappingTransformation,
    MetadataFields,
    OutputField,
    OutputTemplate,
    OutputWrapperConfig,
    SourceDescriptor,
    SourceSelection,
)
from jsonmap.transformer.specs import LookupConfig


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def full_config():
    """Configuration exercising every optional part"""
    return MappingConfig(
        source_selection=SourceSelection(
            type="array",
            primary_path="data.events",
            sources=(
                SourceDescriptor(
                    id="api",
                    name="Events API",
                    type="array",
                    category="http",
                    primary_path="data.events",
                    metadata={"region": "eu"},
                ),
            ),
            merge_mode="single",
            unwrap_single_items=True,
        ),
        output_template=OutputTemplate(
            fields=(
                OutputField(path="title", type="string", required=True),
                OutputField(path="venue", type="object"),
                OutputField(path="venue.city", type="string", default_value="unknown"),
            ),
            structure={"title": "", "venue": {"city": ""}},
        ),
        field_mappings=(
            FieldMapping(
                id="m1",
                source_path="name",
                target_path="title",
                source_id="api",
                source_name="Events API",
                transform_id="t1",
                transform_ids=("t2",),
            ),
            FieldMapping(
                id="m2",
                source_path="places[0].city",
                target_path="venue.city",
                fallback_value="unknown",
                conditional=MappingCondition(when="online", operator="equals", value=True, then="online", else_=None),
                array_config=ArrayIndexConfig.from_source_path("places[0].city"),
            ),
        ),
        transformations=(
            MappingTransformation(id="t1", name="Trim", type="trim"),
            MappingTransformation(id="t2", name="Names", type="lookup", config={"lookupTable": {"a": "A"}}),
        ),
        output_wrapper=OutputWrapperConfig(
            enabled=True,
            wrapper_key="events",
            include_metadata=True,
            metadata_fields=MetadataFields(version=True),
            custom_metadata={"env": "test"},
        ),
    )


# ============================================================================
# TEST: Serialization
# ============================================================================


class TestSerialization:
    """Tests for camelCase dictionaries"""

    def test_round_trip(self, full_config):
        assert MappingConfig.from_dict(full_config.to_dict()) == full_config

    def test_round_trip_through_json_text(self, full_config):
        text = json.dumps(full_config.to_dict())
        assert MappingConfig.from_dict(json.loads(text)) == full_config

    def test_camel_case_keys(self, full_config):
        data = full_config.to_dict()

        assert set(data) == {"sourceSelection", "outputTemplate", "fieldMappings", "transformations", "outputWrapper"}
        assert data["sourceSelection"]["primaryPath"] == "data.events"
        assert data["fieldMappings"][1]["arrayConfig"] == {
            "fields": ["places"],
            "indices": {"places": 0},
            "templatePath": "places[*].city",
            "mappingMode": "index",
        }
        assert data["fieldMappings"][1]["conditional"]["operator"] == "equals"

    def test_none_fields_are_omitted(self):
        data = FieldMapping(id="m", source_path="a", target_path="b").to_dict()

        assert data == {"id": "m", "sourcePath": "a", "targetPath": "b"}

    def test_minimal_dict(self):
        config = MappingConfig.from_dict({"sourceSelection": {}, "outputTemplate": {}, "fieldMappings": []})

        assert config == MappingConfig()

    def test_array_config_from_json_string(self):
        config = ArrayIndexConfig.from_dict('{"fields": ["a"], "indices": {"a": "2"}, "templatePath": "a[*].b"}')

        assert config.indices == {"a": 2}
        assert config.resolve_path() == "a[2].b"

    def test_mapping_without_id_gets_one(self):
        mapping = FieldMapping.from_dict({"sourcePath": "a", "targetPath": "b"})

        assert mapping.id.startswith("mapping_")


# ============================================================================
# TEST: Model helpers
# ============================================================================


class TestModelHelpers:
    """Tests for lookups and derived properties"""

    def test_transform_chain(self):
        mapping = FieldMapping(id="m", source_path="a", target_path="b", transform_id="t1", transform_ids=("t2", "t3"))

        assert mapping.transform_chain == ["t1", "t2", "t3"]

    def test_array_index_config_from_path(self):
        assert ArrayIndexConfig.from_source_path("plain.path") is None

        wildcard = ArrayIndexConfig.from_source_path("items[*].tags[*]")
        assert wildcard.mapping_mode == "array"
        assert wildcard.indices == {"items": 0, "tags": 0}

        indexed = ArrayIndexConfig.from_source_path("items[2].name")
        assert indexed.mapping_mode == "index"
        assert indexed.resolve_path() == "items[2].name"

    def test_array_index_config_edits(self):
        config = ArrayIndexConfig.from_source_path("items[0].name")

        assert config.with_index("items", 3).resolve_path() == "items[3].name"
        assert config.with_mode("array").resolve_path() == "items[*].name"
        with pytest.raises(ValueError):
            config.with_index("other", 1)
        with pytest.raises(ValueError):
            config.with_mode("all")

    def test_metadata_field_defaults(self):
        fields = MetadataFields()

        assert fields.is_enabled("timestamp")
        assert fields.is_enabled("count")
        assert not fields.is_enabled("version")
        assert not MetadataFields(count=False).is_enabled("count")

    def test_template_children_and_leaves(self, full_config):
        template = full_config.output_template

        assert [f.path for f in template.children("venue")] == ["venue.city"]
        assert [f.path for f in template.leaves()] == ["title", "venue.city"]
        assert template.get_field("venue").type == "object"

    def test_config_lookups(self, full_config):
        assert full_config.get_mapping("m2").target_path == "venue.city"
        assert full_config.get_transformation("t2").typed_config() == LookupConfig(lookup_table={"a": "A"})
        assert full_config.get_mapping("missing") is None
        assert [m.id for m in full_config.mappings_for_target("title")] == ["m1"]
        assert full_config.source_selection.get_source("api").label == "Events API"
