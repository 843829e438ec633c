"""
Unit tests for mapping configuration validation

Tests:
- Structural errors (selection, template, wrapper)
- Required fields, references, paths and array configs
- Warnings for unused transformations, duplicates and coverage gaps
"""

from dataclasses import replace

import pytest

from jsonmap.mapper.mapping import ArrayIndexConfig, FieldMapping
from jsonmap.schema.models import (
    MappingConfig,
    MappingTransformation,
    OutputField,
    OutputTemplate,
    OutputWrapperConfig,
    SourceDescriptor,
    SourceSelection,
)
from jsonmap.validator.config_validator import validate_config


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def config():
    """A configuration without problems"""
    source = SourceDescriptor(id="api", name="API", type="array", primary_path="items")
    return MappingConfig(
        source_selection=SourceSelection(type="array", primary_path="items", sources=(source,)),
        output_template=OutputTemplate(fields=(
            OutputField(path="name", type="string", required=True),
            OutputField(path="price", type="number"),
        )),
        field_mappings=(
            FieldMapping(id="m1", source_path="title", target_path="name", source_id="api", transform_id="t1"),
            FieldMapping(id="m2", source_path="cost", target_path="price", source_id="api"),
        ),
        transformations=(MappingTransformation(id="t1", name="Trim", type="trim"),),
    )


def with_mappings(config, *mappings):
    return replace(config, field_mappings=config.field_mappings + mappings)


# ============================================================================
# TEST: Valid configuration
# ============================================================================


class TestValidConfig:
    """Tests for a clean configuration"""

    def test_no_errors_or_warnings(self, config):
        result = validate_config(config)

        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_to_dict(self, config):
        assert validate_config(config).to_dict() == {"valid": True, "errors": [], "warnings": []}


# ============================================================================
# TEST: Errors
# ============================================================================


class TestErrors:
    """Tests for blocking problems"""

    def test_missing_primary_path_and_sources(self, config):
        result = validate_config(replace(config, source_selection=SourceSelection()))

        assert not result.valid
        assert "Source primary path is required" in result.errors
        assert "At least one source must be selected" in result.errors

    def test_empty_template(self, config):
        result = validate_config(replace(config, output_template=OutputTemplate()))

        assert "Output template must define at least one field" in result.errors

    def test_wrapper_without_key(self, config):
        result = validate_config(replace(config, output_wrapper=OutputWrapperConfig(enabled=True, wrapper_key="")))

        assert "Output wrapper is enabled but has no wrapper key" in result.errors

    def test_required_field_without_mapping(self, config):
        result = validate_config(replace(config, field_mappings=config.field_mappings[1:]))

        assert "Required field 'name' has no mapping or default value" in result.errors

    def test_required_field_with_default(self, config):
        template = OutputTemplate(fields=(
            OutputField(path="name", required=True, default_value="n/a"),
            OutputField(path="price"),
        ))
        result = validate_config(replace(config, output_template=template, field_mappings=config.field_mappings[1:]))

        assert result.valid

    def test_unknown_source(self, config):
        result = validate_config(with_mappings(
            config, FieldMapping(id="m3", source_path="x", target_path="price", source_id="ghost")
        ))

        assert "Mapping m3 references unknown source 'ghost'" in result.errors

    def test_unknown_transformation(self, config):
        result = validate_config(with_mappings(
            config, FieldMapping(id="m3", source_path="x", target_path="price", transform_ids=("nope",))
        ))

        assert "Mapping m3 references unknown transformation 'nope'" in result.errors

    def test_invalid_transformation_config(self, config):
        bad = MappingTransformation(id="t2", name="Halve", type="calculate", config={"operation": "divide", "value": 0})
        mappings = (replace(config.field_mappings[1], transform_id="t2"),)
        result = validate_config(replace(
            config,
            transformations=config.transformations + (bad,),
            field_mappings=config.field_mappings[:1] + mappings,
        ))

        assert "Transformation 'Halve': Cannot divide by zero" in result.errors

    def test_malformed_paths(self, config):
        result = validate_config(with_mappings(
            config, FieldMapping(id="m3", source_path="items[", target_path="price")
        ))

        assert any(e.startswith("Mapping m3 has an invalid source path") for e in result.errors)

    def test_source_metadata_path_is_not_parsed(self, config):
        result = validate_config(with_mappings(
            config, FieldMapping(id="m3", source_path="_source.metadata.region", target_path="price")
        ))

        assert not any("m3" in e for e in result.errors)

    def test_empty_target(self, config):
        result = validate_config(with_mappings(config, FieldMapping(id="m3", source_path="a", target_path="")))

        assert "Mapping m3 has no target path" in result.errors

    def test_array_config_mismatch(self, config):
        mapping = FieldMapping(
            id="m3",
            source_path="lines[0].sku",
            target_path="price",
            array_config=ArrayIndexConfig.from_source_path("lines[1].sku"),
        )
        result = validate_config(with_mappings(config, mapping))

        assert any(e.startswith("Mapping m3 source path") for e in result.errors)

    def test_array_config_consistent(self, config):
        mapping = FieldMapping(
            id="m3",
            source_path="lines[*].sku",
            target_path="price",
            array_config=ArrayIndexConfig.from_source_path("lines[*].sku"),
        )

        assert not any("m3" in e for e in validate_config(with_mappings(config, mapping)).errors)


# ============================================================================
# TEST: Warnings
# ============================================================================


class TestWarnings:
    """Tests for informational findings"""

    def test_unused_transformation(self, config):
        unused = MappingTransformation(id="t2", name="Upper", type="uppercase")
        result = validate_config(replace(config, transformations=config.transformations + (unused,)))

        assert result.valid
        assert "Transformation 'Upper' is not used by any mapping" in result.warnings

    def test_duplicate_target(self, config):
        result = validate_config(with_mappings(
            config, FieldMapping(id="m3", source_path="label", target_path="name", source_id="api")
        ))

        assert "Target 'name' is mapped 2 times" in result.warnings

    def test_optional_field_not_mapped(self, config):
        result = validate_config(replace(config, field_mappings=config.field_mappings[:1]))

        assert result.valid
        assert "Optional field 'price' is not mapped" in result.warnings

    def test_parent_mapping_covers_children(self, config):
        template = OutputTemplate(fields=(
            OutputField(path="name", required=True),
            OutputField(path="price", type="object"),
            OutputField(path="price.amount"),
        ))
        result = validate_config(replace(config, output_template=template))

        assert not any("price" in w for w in result.warnings)

    def test_combined_coverage(self, config):
        sources = config.source_selection.sources + (SourceDescriptor(id="shop", name="Shop"),)
        selection = replace(config.source_selection, sources=sources, merge_mode="combined")
        result = validate_config(replace(config, source_selection=selection))

        assert "Target 'name' is not mapped for source 'Shop'" in result.warnings
        assert "Target 'price' is not mapped for source 'Shop'" in result.warnings

    def test_source_less_mapping_covers_every_source(self, config):
        sources = config.source_selection.sources + (SourceDescriptor(id="shop", name="Shop"),)
        selection = replace(config.source_selection, sources=sources, merge_mode="combined")
        mappings = tuple(replace(m, source_id=None) for m in config.field_mappings)
        result = validate_config(replace(config, source_selection=selection, field_mappings=mappings))

        assert result.warnings == []
