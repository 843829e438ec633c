"""
Field Builder - Resolves the output value of a single field mapping

Per mapping, in order:
- Resolve the source path against the item (or "_source.*" metadata)
- Apply the transformation chain
- Apply the conditional override
- Substitute the fallback value for a missing result

Array-mode mappings resolve once per array element and yield a list.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jsonmap.builder.conditions import apply_condition
from jsonmap.mapper.mapping import SOURCE_PREFIX, FieldMapping, is_source_path
from jsonmap.path.resolver import collect_values, get_value
from jsonmap.schema.models import MappingTransformation, SourceDescriptor
from jsonmap.transformer.dates import iso_string
from jsonmap.transformer.registry import TransformerRegistry, default_registry

logger = logging.getLogger(__name__)


def source_metadata(source: SourceDescriptor, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Values addressable as "_source.<key>" from a mapping

    Example:
        "_source.name", "_source.path", "_source.metadata.region"
    """
    return {
        "id": source.id,
        "name": source.name or source.id,
        "type": source.type,
        "category": source.category,
        "timestamp": iso_string(timestamp) if timestamp else None,
        "path": source.primary_path or "root",
        "metadata": dict(source.metadata or {}),
    }


class FieldBuilder:
    """Builds individual output fields from a source item"""

    def __init__(
        self,
        transformations: Iterable[MappingTransformation] = (),
        registry: Optional[TransformerRegistry] = None,
    ):
        """
        Initialize FieldBuilder

        Args:
            transformations: Transformations referenced by mapping ids
            registry: Transformer registry (defaults to the shared one)
        """
        self.transformations: Dict[str, MappingTransformation] = {t.id: t for t in transformations}
        self.registry = registry or default_registry

    def resolve(self, item: Any, path: str, source_meta: Optional[Dict[str, Any]] = None) -> Any:
        """Look up path in item, or in source metadata for "_source.*" paths"""
        if source_meta is not None and is_source_path(path):
            return get_value(source_meta, path[len(SOURCE_PREFIX) + 1:])
        return get_value(item, path)

    def build_field(
        self,
        mapping: FieldMapping,
        item: Any,
        source_meta: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Any]:
        """
        Build a single output field

        Args:
            mapping: Field mapping configuration
            item: Source item
            source_meta: Metadata of the item's source, see source_metadata()

        Returns:
            Tuple of (target_path, value); value is None when nothing resolved
        """
        if mapping.is_array_mode and not is_source_path(mapping.source_path):
            values = collect_values(item, mapping.array_config.template_path or mapping.source_path)
            value: Any = [self._apply_transformers(v, mapping.transform_chain) for v in values] or None
        else:
            value = self.resolve(item, mapping.source_path, source_meta)
            value = self._apply_transformers(value, mapping.transform_chain)

        if mapping.conditional:
            value = apply_condition(
                mapping.conditional,
                lambda path: self.resolve(item, path, source_meta),
            )

        if value is None:
            value = mapping.fallback_value

        return mapping.target_path, value

    def _apply_transformers(self, value: Any, transform_ids: List[str]) -> Any:
        """Apply transformations by id, in order"""
        for transform_id in transform_ids:
            transformation = self.transformations.get(transform_id)
            if transformation is None:
                logger.warning(f"Unknown transformation id: {transform_id}")
                continue
            value = self.registry.apply(value, transformation)
        return value
