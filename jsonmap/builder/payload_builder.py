"""
Payload Builder - Applies a mapping configuration to source documents

Integrates:
- FieldBuilder: per-mapping value resolution
- Array sources: one output item per source element
- Multi-source merge: single, combined and separate modes
- Output wrapper: metadata envelope

Failures are isolated: a failing field is skipped within its item and a
failing item is skipped within its batch.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from jsonmap.builder.field_builder import FieldBuilder, source_metadata
from jsonmap.builder.wrapper import wrap_output
from jsonmap.mapper.mapping import FieldMapping
from jsonmap.path.resolver import get_value, set_value
from jsonmap.schema.models import MappingConfig, SourceDescriptor, SourceSelection
from jsonmap.transformer.registry import TransformerRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _navigate(document: Any, primary_path: Optional[str]) -> Any:
    return get_value(document, primary_path) if primary_path else document


def _limit(items: List[Any], limit: Optional[int]) -> List[Any]:
    return items[:limit] if limit is not None else items


class MappingApplier:
    """
    Builds output documents from source data and a MappingConfig

    Usage:
    ```python
    applier = MappingApplier()
    output = applier.apply({"user": {"name": "Ada"}}, config)
    # Returns: {"profile": {"fullName": "Ada"}}
    ```
    """

    def __init__(self, registry: Optional[TransformerRegistry] = None, clock: Optional[Clock] = None):
        """
        Initialize MappingApplier

        Args:
            registry: Transformer registry (defaults to the shared one)
            clock: Returns the current time for timestamps
        """
        self.registry = registry
        self.clock = clock or utc_now

    def build_item(
        self,
        item: Any,
        mappings: Sequence[FieldMapping],
        field_builder: FieldBuilder,
        source_meta: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build one output object from one source item

        Mappings run in declaration order; later mappings overwrite earlier
        ones on the same target. Fields resolving to None are not written.
        """
        result: Dict[str, Any] = {}

        for mapping in mappings:
            try:
                target, value = field_builder.build_field(mapping, item, source_meta)
            except Exception as e:
                logger.error(f"Error building field {mapping.target_path} from {mapping.source_path}: {e}")
                continue

            if value is not None:
                result = set_value(result, target, value)

        return result

    def build_batch(
        self,
        items: List[Any],
        mappings: Sequence[FieldMapping],
        field_builder: FieldBuilder,
        source_meta: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Build one output object per item, skipping items that fail"""
        results = []

        for index, item in enumerate(items):
            try:
                results.append(self.build_item(item, mappings, field_builder, source_meta))
            except Exception as e:
                logger.error(f"Error building item {index}: {e}")
                continue

        logger.info(f"Built {len(results)} items from {len(items)} source items")
        return results

    def _process(
        self,
        root: Any,
        selection: SourceSelection,
        mappings: Sequence[FieldMapping],
        field_builder: FieldBuilder,
        source_meta: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> Any:
        if isinstance(root, list) and selection.type == "array":
            results = self.build_batch(_limit(root, limit), mappings, field_builder, source_meta)
            if selection.unwrap_single_items and len(results) == 1:
                return results[0]
            return results
        return self.build_item(root, mappings, field_builder, source_meta)

    def _field_builder(self, config: MappingConfig) -> FieldBuilder:
        return FieldBuilder(config.transformations, self.registry)

    def _source_meta(self, source: Optional[SourceDescriptor], now: datetime) -> Optional[Dict[str, Any]]:
        return source_metadata(source, now) if source is not None else None

    def apply(self, source_data: Any, config: MappingConfig, limit: Optional[int] = None) -> Any:
        """
        Apply config to one source document

        Args:
            source_data: Source document
            config: Mapping configuration
            limit: Maximum number of array items to process (preview)

        Returns:
            Output object, list of objects, or the wrapped envelope
        """
        selection = config.source_selection
        source = selection.primary_source
        now = self.clock()

        root = _navigate(source_data, selection.primary_path)
        payload = self._process(
            root,
            selection,
            config.field_mappings,
            self._field_builder(config),
            self._source_meta(source, now),
            limit,
        )
        return wrap_output(payload, config.output_wrapper, source, now)

    def apply_sources(
        self,
        documents: Dict[str, Any],
        config: MappingConfig,
        limit: Optional[int] = None,
    ) -> Any:
        """
        Apply config to several source documents keyed by source id

        Honors source_selection.merge_mode:
        - single: the first source only, every mapping applies
        - combined: items of all sources concatenated into one list
        - separate: one result per source, keyed by source name
        """
        selection = config.source_selection
        now = self.clock()
        if not selection.sources:
            logger.warning("No sources selected, nothing to apply")
            return wrap_output([], config.output_wrapper, None, now)

        if selection.merge_mode == "combined" and len(selection.sources) > 1:
            payload = self._apply_combined(documents, config, limit)
        elif selection.merge_mode == "separate" and len(selection.sources) > 1:
            payload = self._apply_separate(documents, config, limit)
        else:
            source = selection.primary_source
            if source.id not in documents:
                logger.error(f"Missing document for source {source.id}")
                return wrap_output([], config.output_wrapper, source, now)
            root = _navigate(documents[source.id], source.primary_path or selection.primary_path)
            payload = self._process(
                root,
                selection,
                config.field_mappings,
                self._field_builder(config),
                self._source_meta(source, now),
                limit,
            )

        return wrap_output(payload, config.output_wrapper, selection.primary_source, now)

    def _source_items(self, documents: Dict[str, Any], source: SourceDescriptor, limit: Optional[int]) -> List[Any]:
        if source.id not in documents:
            logger.error(f"Missing document for source {source.id}, skipping")
            return []
        root = _navigate(documents[source.id], source.primary_path)
        if root is None:
            logger.warning(f"Primary path {source.primary_path!r} not found in source {source.id}")
            return []
        items = root if isinstance(root, list) else [root]
        return _limit(items, limit)

    @staticmethod
    def mappings_for_source(mappings: Sequence[FieldMapping], source_id: str) -> List[FieldMapping]:
        """
        Mappings that apply to items of one source in combined mode

        A mapping carrying the source id wins; a source-less mapping applies
        only to targets the source does not map itself.
        """
        own_targets = {m.target_path for m in mappings if m.source_id == source_id}
        return [
            m for m in mappings
            if m.source_id == source_id or (m.source_id is None and m.target_path not in own_targets)
        ]

    def _apply_combined(self, documents: Dict[str, Any], config: MappingConfig, limit: Optional[int]) -> List[Dict[str, Any]]:
        field_builder = self._field_builder(config)
        now = self.clock()
        results: List[Dict[str, Any]] = []

        for source in config.source_selection.sources:
            items = self._source_items(documents, source, limit)
            mappings = self.mappings_for_source(config.field_mappings, source.id)
            results.extend(self.build_batch(items, mappings, field_builder, source_metadata(source, now)))

        logger.info(f"Combined {len(results)} items from {len(config.source_selection.sources)} sources")
        return results

    def _apply_separate(self, documents: Dict[str, Any], config: MappingConfig, limit: Optional[int]) -> Dict[str, Any]:
        selection = config.source_selection
        field_builder = self._field_builder(config)
        now = self.clock()
        results: Dict[str, Any] = {}

        for source in selection.sources:
            if source.id not in documents:
                logger.error(f"Missing document for source {source.id}, skipping")
                continue
            mappings = [m for m in config.field_mappings if m.source_id == source.id]
            root = _navigate(documents[source.id], source.primary_path)
            results[source.name or source.id] = self._process(
                root, selection, mappings, field_builder, source_metadata(source, now), limit
            )

        return results


def apply_mapping(source_data: Any, config: MappingConfig) -> Any:
    """Apply config to a source document with default settings."""
    return MappingApplier().apply(source_data, config)


def apply_sources(documents: Dict[str, Any], config: MappingConfig, limit: Optional[int] = None) -> Any:
    """Apply config to source documents keyed by source id."""
    return MappingApplier().apply_sources(documents, config, limit)
