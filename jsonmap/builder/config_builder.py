"""
Config Builder - Incremental, undoable editing of a MappingConfig

Every edit produces a new immutable MappingConfig and records the previous
one for undo. Mapping ids survive every edit of the mapping they name.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, List, Optional

from jsonmap.mapper.mapping import INDEX_MODE, ArrayIndexConfig, FieldMapping, new_mapping_id
from jsonmap.schema.models import (
    MERGE_MODES,
    MappingConfig,
    MappingTransformation,
    OutputField,
    OutputTemplate,
    OutputWrapperConfig,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)


def _source_path_for(config: Optional[ArrayIndexConfig], fallback: str) -> str:
    return config.resolve_path() if config is not None else fallback


class MappingConfigBuilder:
    """
    Builds a MappingConfig through discrete edits

    Usage:
    ```python
    builder = MappingConfigBuilder()
    builder.add_source(SourceDescriptor(id="api", name="API", type="array"))
    builder.add_mapping("events[*].name", "title", source_id="api")
    config = builder.config
    ```
    """

    def __init__(self, config: Optional[MappingConfig] = None, id_factory: Optional[Callable[[], str]] = None):
        """
        Initialize builder

        Args:
            config: Starting configuration (defaults to an empty one)
            id_factory: Mapping id generator
        """
        self._config = config or MappingConfig()
        self._undo: List[MappingConfig] = []
        self._redo: List[MappingConfig] = []
        self.id_factory = id_factory or new_mapping_id

    @property
    def config(self) -> MappingConfig:
        return self._config

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def _commit(self, config: MappingConfig) -> MappingConfig:
        if config != self._config:
            self._undo.append(self._config)
            self._redo.clear()
            self._config = config
        return self._config

    def undo(self) -> MappingConfig:
        """Restore the configuration before the last edit."""
        if not self._undo:
            logger.debug("Nothing to undo")
            return self._config
        self._redo.append(self._config)
        self._config = self._undo.pop()
        return self._config

    def redo(self) -> MappingConfig:
        """Re-apply the last undone edit."""
        if not self._redo:
            logger.debug("Nothing to redo")
            return self._config
        self._undo.append(self._config)
        self._config = self._redo.pop()
        return self._config

    # ========================================================================
    # Sources
    # ========================================================================

    def add_source(self, source: SourceDescriptor) -> MappingConfig:
        """Add a source, replacing any source with the same id."""
        selection = self._config.source_selection
        sources = [s for s in selection.sources if s.id != source.id]
        if len(sources) == len(selection.sources):
            sources.append(source)
        else:
            sources = [source if s.id == source.id else s for s in selection.sources]

        primary_path = selection.primary_path
        if primary_path is None and sources[0].id == source.id:
            primary_path = source.primary_path

        return self._commit(replace(
            self._config,
            source_selection=replace(selection, sources=tuple(sources), primary_path=primary_path),
        ))

    def remove_source(self, source_id: str) -> MappingConfig:
        """Remove a source together with the mappings it feeds."""
        selection = self._config.source_selection
        return self._commit(replace(
            self._config,
            source_selection=replace(
                selection,
                sources=tuple(s for s in selection.sources if s.id != source_id),
            ),
            field_mappings=tuple(m for m in self._config.field_mappings if m.source_id != source_id),
        ))

    def set_primary_path(self, primary_path: str, source_id: Optional[str] = None) -> MappingConfig:
        """
        Set the primary path of the selection, or of one source

        Changing the first source's path also updates the selection's.
        """
        selection = self._config.source_selection
        if source_id is None:
            return self._commit(replace(
                self._config,
                source_selection=replace(selection, primary_path=primary_path),
            ))

        if selection.get_source(source_id) is None:
            raise ValueError(f"Unknown source: {source_id}")
        sources = tuple(
            replace(s, primary_path=primary_path) if s.id == source_id else s
            for s in selection.sources
        )
        is_primary = selection.sources[0].id == source_id
        return self._commit(replace(
            self._config,
            source_selection=replace(
                selection,
                sources=sources,
                primary_path=primary_path if is_primary else selection.primary_path,
            ),
        ))

    def set_merge_mode(self, merge_mode: str) -> MappingConfig:
        if merge_mode not in MERGE_MODES:
            raise ValueError(f"Unknown merge mode: {merge_mode}")
        return self._commit(replace(
            self._config,
            source_selection=replace(self._config.source_selection, merge_mode=merge_mode),
        ))

    # ========================================================================
    # Output template and wrapper
    # ========================================================================

    def set_output_template(self, template: OutputTemplate) -> MappingConfig:
        return self._commit(replace(self._config, output_template=template))

    def add_output_field(self, output_field: OutputField) -> MappingConfig:
        """Add an output field, replacing any field with the same path."""
        template = self._config.output_template
        fields = [f for f in template.fields if f.path != output_field.path]
        if len(fields) == len(template.fields):
            fields.append(output_field)
        else:
            fields = [output_field if f.path == output_field.path else f for f in template.fields]
        return self._commit(replace(
            self._config,
            output_template=replace(template, fields=tuple(fields)),
        ))

    def set_output_wrapper(self, wrapper: Optional[OutputWrapperConfig]) -> MappingConfig:
        return self._commit(replace(self._config, output_wrapper=wrapper))

    # ========================================================================
    # Field mappings
    # ========================================================================

    def _get_mapping(self, mapping_id: str) -> FieldMapping:
        mapping = self._config.get_mapping(mapping_id)
        if mapping is None:
            raise ValueError(f"Unknown mapping: {mapping_id}")
        return mapping

    def _replace_mapping(self, mapping: FieldMapping) -> MappingConfig:
        return self._commit(replace(
            self._config,
            field_mappings=tuple(
                mapping if m.id == mapping.id else m for m in self._config.field_mappings
            ),
        ))

    def add_mapping(
        self,
        source_path: str,
        target_path: str,
        source_id: Optional[str] = None,
        source_name: Optional[str] = None,
        transform_id: Optional[str] = None,
        fallback_value: Any = None,
        mapping_mode: str = INDEX_MODE,
    ) -> MappingConfig:
        """
        Map a source path onto a target path (drop semantics)

        A mapping already binding the same source to the same target is
        replaced; mappings from other sources onto the target are kept.
        Paths through arrays get an ArrayIndexConfig; wildcards resolve to
        index 0 in index mode.
        """
        array_config = ArrayIndexConfig.from_source_path(source_path, mapping_mode)
        mapping = FieldMapping(
            id=self.id_factory(),
            source_path=_source_path_for(array_config, source_path),
            target_path=target_path,
            source_id=source_id,
            source_name=source_name,
            transform_id=transform_id,
            fallback_value=fallback_value,
            array_config=array_config,
        )

        kept = tuple(
            m for m in self._config.field_mappings
            if not (m.target_path == target_path and m.source_id == source_id)
        )
        logger.debug(f"Mapping {mapping.source_path} -> {target_path} as {mapping.id}")
        return self._commit(replace(self._config, field_mappings=kept + (mapping,)))

    def add_mappings(self, mappings: List[FieldMapping]) -> MappingConfig:
        """Append prepared mappings (e.g. auto-mapping proposals) as one edit."""
        return self._commit(replace(
            self._config,
            field_mappings=self._config.field_mappings + tuple(mappings),
        ))

    def update_mapping(self, mapping_id: str, **changes) -> MappingConfig:
        """
        Change fields of a mapping, keeping its id

        A new source_path re-derives the array config in the current mode.
        """
        if "id" in changes:
            raise ValueError("Mapping ids cannot be changed")
        mapping = self._get_mapping(mapping_id)

        if "source_path" in changes and "array_config" not in changes:
            mode = mapping.array_config.mapping_mode if mapping.array_config else INDEX_MODE
            array_config = ArrayIndexConfig.from_source_path(changes["source_path"], mode)
            changes["array_config"] = array_config
            changes["source_path"] = _source_path_for(array_config, changes["source_path"])

        return self._replace_mapping(replace(mapping, **changes))

    def remove_mapping(self, mapping_id: str) -> MappingConfig:
        self._get_mapping(mapping_id)
        return self._commit(replace(
            self._config,
            field_mappings=tuple(m for m in self._config.field_mappings if m.id != mapping_id),
        ))

    def set_array_index(self, mapping_id: str, field_name: str, index: int) -> MappingConfig:
        """Point one array segment of a mapping at another element."""
        mapping = self._get_mapping(mapping_id)
        if mapping.array_config is None:
            raise ValueError(f"Mapping {mapping_id} does not traverse arrays")
        array_config = mapping.array_config.with_index(field_name, index)
        return self._replace_mapping(replace(
            mapping,
            array_config=array_config,
            source_path=array_config.resolve_path(),
        ))

    def set_mapping_mode(self, mapping_id: str, mapping_mode: str) -> MappingConfig:
        """Switch a mapping between one element (index) and all elements (array)."""
        mapping = self._get_mapping(mapping_id)
        if mapping.array_config is None:
            raise ValueError(f"Mapping {mapping_id} does not traverse arrays")
        array_config = mapping.array_config.with_mode(mapping_mode)
        return self._replace_mapping(replace(
            mapping,
            array_config=array_config,
            source_path=array_config.resolve_path(),
        ))

    # ========================================================================
    # Transformations
    # ========================================================================

    def add_transformation(self, transformation: MappingTransformation) -> MappingConfig:
        """Add a transformation, replacing any with the same id."""
        kept = tuple(t for t in self._config.transformations if t.id != transformation.id)
        return self._commit(replace(self._config, transformations=kept + (transformation,)))

    def attach_transformation(self, mapping_id: str, transform_id: str, chain: bool = False) -> MappingConfig:
        """
        Attach a transformation to a mapping

        Args:
            mapping_id: Mapping to change
            transform_id: Transformation to attach
            chain: Append to the mapping's chain instead of replacing its
                primary transformation
        """
        if self._config.get_transformation(transform_id) is None:
            raise ValueError(f"Unknown transformation: {transform_id}")
        mapping = self._get_mapping(mapping_id)
        if chain:
            updated = replace(mapping, transform_ids=mapping.transform_ids + (transform_id,))
        else:
            updated = replace(mapping, transform_id=transform_id)
        return self._replace_mapping(updated)

    def remove_transformation(self, transform_id: str) -> MappingConfig:
        """Remove a transformation and detach it from every mapping."""
        mappings = tuple(
            replace(
                m,
                transform_id=None if m.transform_id == transform_id else m.transform_id,
                transform_ids=tuple(t for t in m.transform_ids if t != transform_id),
            )
            for m in self._config.field_mappings
        )
        return self._commit(replace(
            self._config,
            transformations=tuple(t for t in self._config.transformations if t.id != transform_id),
            field_mappings=mappings,
        ))
