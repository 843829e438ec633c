"""Mapping configuration validation."""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List

from jsonmap.exceptions import PathError
from jsonmap.mapper.mapping import ARRAY_MODE, FieldMapping, is_source_path
from jsonmap.path.resolver import parse_path
from jsonmap.schema.models import MappingConfig
from jsonmap.transformer.registry import validate_transform_config

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Aggregated errors (blocking) and warnings (informational)."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def _covers(mapping: FieldMapping, path: str) -> bool:
    """True when the mapping writes path itself or one of its ancestors."""
    target = mapping.target_path
    return path == target or path.startswith(f"{target}.") or path.startswith(f"{target}[")


def _check_paths(mapping: FieldMapping, errors: List[str]) -> None:
    if not mapping.target_path:
        errors.append(f"Mapping {mapping.id} has no target path")
    paths = [("target", mapping.target_path)]
    if not is_source_path(mapping.source_path):
        paths.append(("source", mapping.source_path))
    if mapping.conditional and not is_source_path(mapping.conditional.when):
        paths.append(("condition", mapping.conditional.when))

    for role, path in paths:
        try:
            parse_path(path)
        except PathError as e:
            errors.append(f"Mapping {mapping.id} has an invalid {role} path: {e}")


def _check_array_config(mapping: FieldMapping, errors: List[str]) -> None:
    array_config = mapping.array_config
    if array_config is None:
        return
    if array_config.mapping_mode == ARRAY_MODE:
        expected = array_config.template_path
    else:
        expected = array_config.resolve_path()
    if expected != mapping.source_path:
        errors.append(
            f"Mapping {mapping.id} source path {mapping.source_path!r} does not match "
            f"its array configuration ({expected!r})"
        )


def validate_config(config: MappingConfig) -> ValidationResult:
    """
    Check a mapping configuration for structural and semantic problems

    Errors block use of the configuration; warnings are informational.
    Application never consults this result.
    """
    result = ValidationResult()
    errors, warnings = result.errors, result.warnings

    selection = config.source_selection
    template = config.output_template
    mappings = config.field_mappings

    # Structure
    if selection.primary_path is None:
        errors.append("Source primary path is required")
    if not selection.sources:
        errors.append("At least one source must be selected")
    if not template.fields:
        errors.append("Output template must define at least one field")

    wrapper = config.output_wrapper
    if wrapper is not None and wrapper.enabled and not wrapper.wrapper_key:
        errors.append("Output wrapper is enabled but has no wrapper key")

    # Required fields
    for output_field in template.fields:
        if not output_field.required or output_field.default_value is not None:
            continue
        if not any(m.target_path == output_field.path for m in mappings):
            errors.append(f"Required field '{output_field.path}' has no mapping or default value")

    # Mappings
    source_ids = {s.id for s in selection.sources}
    transform_ids = {t.id for t in config.transformations}
    for mapping in mappings:
        if mapping.source_id and selection.sources and mapping.source_id not in source_ids:
            errors.append(f"Mapping {mapping.id} references unknown source '{mapping.source_id}'")
        for transform_id in mapping.transform_chain:
            if transform_id not in transform_ids:
                errors.append(f"Mapping {mapping.id} references unknown transformation '{transform_id}'")
        _check_paths(mapping, errors)
        _check_array_config(mapping, errors)

    # Transformations
    referenced = {transform_id for m in mappings for transform_id in m.transform_chain}
    for transformation in config.transformations:
        check = validate_transform_config(transformation.type, transformation.config)
        for error in check.errors:
            errors.append(f"Transformation '{transformation.name}': {error}")
        if transformation.id not in referenced:
            warnings.append(f"Transformation '{transformation.name}' is not used by any mapping")

    # Duplicates and coverage
    counts = Counter(m.target_path for m in mappings)
    for target_path, count in counts.items():
        if count > 1:
            warnings.append(f"Target '{target_path}' is mapped {count} times")

    for output_field in template.leaves():
        if output_field.required or output_field.default_value is not None:
            continue
        if not any(_covers(m, output_field.path) for m in mappings):
            warnings.append(f"Optional field '{output_field.path}' is not mapped")

    if selection.merge_mode == "combined" and len(selection.sources) > 1:
        for target_path in counts:
            targeted = [m for m in mappings if m.target_path == target_path]
            if any(m.source_id is None for m in targeted):
                continue
            covered = {m.source_id for m in targeted}
            for source in selection.sources:
                if source.id not in covered:
                    warnings.append(f"Target '{target_path}' is not mapped for source '{source.label}'")

    logger.debug(f"Validation finished: {len(errors)} errors, {len(warnings)} warnings")
    return result
