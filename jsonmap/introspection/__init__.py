"""
Source Introspection Module

Discovers the field structure of sample source documents:
- Dot/bracket path enumeration with wildcard generalization
- Fixed-index paths for leading array elements
- Primary path candidates (arrays and objects)
- Output template inference from a sample item
"""

from .field_extractor import (
    ExtractionCache,
    ExtractOptions,
    FieldDescriptor,
    extract_field_names,
    extract_fields,
    extract_source_fields,
    find_arrays_and_objects,
    infer_output_fields,
)

__all__ = [
    "ExtractionCache",
    "ExtractOptions",
    "FieldDescriptor",
    "extract_fields",
    "extract_source_fields",
    "extract_field_names",
    "find_arrays_and_objects",
    "infer_output_fields",
]
