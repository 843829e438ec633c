"""
Transformation Module

Pure value transformations used by field mappings:
- Text: uppercase, lowercase, capitalize, trim, substring, replace, concatenate, split
- Number: number_format, calculate, round, ceil, floor
- Date: date_format, date_add
- Advanced: parse_json, stringify, lookup, custom (sandboxed expression)
"""

from .registry import (
    TransformerRegistry,
    TransformValidation,
    apply_transformation,
    apply_transformations,
    validate_transform_config,
)
from .specs import TransformationType, parse_transform_config

__all__ = [
    "TransformerRegistry",
    "TransformValidation",
    "TransformationType",
    "apply_transformation",
    "apply_transformations",
    "parse_transform_config",
    "validate_transform_config",
]
