"""
Mapping Application Module

Builds output documents from source data with:
- Field mapping, transformation chains and conditional overrides
- Array sources and per-element (array mode) mappings
- Multi-source merge modes
- Output wrapper envelopes
- Undoable configuration editing
"""

from .config_builder import MappingConfigBuilder
from .conditions import evaluate_condition
from .field_builder import FieldBuilder, source_metadata
from .payload_builder import MappingApplier, apply_mapping, apply_sources
from .wrapper import wrap_output

__all__ = [
    "MappingApplier",
    "MappingConfigBuilder",
    "FieldBuilder",
    "apply_mapping",
    "apply_sources",
    "evaluate_condition",
    "source_metadata",
    "wrap_output",
]
