"""JSON exporter."""
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from jsonmap.exceptions import ConfigImportError
from jsonmap.mapper.mapping import new_mapping_id
from jsonmap.schema.models import MappingConfig

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("sourceSelection", "outputTemplate", "fieldMappings")


def dumps_config(config: MappingConfig) -> str:
    """Serialize a mapping configuration to JSON text."""
    return json.dumps(config.to_dict(), indent=2, ensure_ascii=False, default=str)


def loads_config(text: str) -> MappingConfig:
    """
    Parse a mapping configuration from JSON text

    Raises:
        ConfigImportError: Text is not JSON or lacks a required section
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigImportError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigImportError("Mapping configuration must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigImportError(f"Invalid mapping configuration structure, missing: {', '.join(missing)}")

    try:
        return MappingConfig.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ConfigImportError(f"Invalid mapping configuration: {e}") from e


def clone_config(config: MappingConfig, id_factory: Optional[Callable[[], str]] = None) -> MappingConfig:
    """Copy a configuration, giving every field mapping a fresh id."""
    id_factory = id_factory or new_mapping_id
    return replace(
        config,
        field_mappings=tuple(replace(m, id=id_factory()) for m in config.field_mappings),
    )


def merge_configs(base: MappingConfig, other: MappingConfig) -> MappingConfig:
    """
    Merge other into base

    Sources, output fields, transformations and mappings of other are added
    unless base already holds one with the same key (source id, field path,
    transformation id, mapping id). Selection settings and the wrapper of
    base win.
    """
    selection = base.source_selection
    source_ids = {s.id for s in selection.sources}
    sources = selection.sources + tuple(s for s in other.source_selection.sources if s.id not in source_ids)

    template = base.output_template
    field_paths = {f.path for f in template.fields}
    fields = template.fields + tuple(f for f in other.output_template.fields if f.path not in field_paths)

    transform_ids = {t.id for t in base.transformations}
    mapping_ids = {m.id for m in base.field_mappings}

    merged = MappingConfig(
        source_selection=replace(selection, sources=sources),
        output_template=replace(template, fields=fields),
        field_mappings=base.field_mappings + tuple(
            m for m in other.field_mappings if m.id not in mapping_ids
        ),
        transformations=base.transformations + tuple(
            t for t in other.transformations if t.id not in transform_ids
        ),
        output_wrapper=base.output_wrapper or other.output_wrapper,
    )
    logger.debug(
        f"Merged configs: {len(merged.field_mappings)} mappings, "
        f"{len(merged.transformations)} transformations"
    )
    return merged


class JsonExporter:
    """Persist mapping configurations and mapped output as JSON files."""

    def export_config(self, output_file: Path, config: MappingConfig) -> None:
        """Write a configuration file."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, "w", encoding="utf-8") as f:
            f.write(dumps_config(config))

        logger.info(f"Saved mapping configuration to {output_file}")

    def load_config(self, input_file: Path) -> MappingConfig:
        """Read a configuration file."""
        input_file = Path(input_file)
        try:
            text = input_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigImportError(f"Cannot read {input_file}: {e}") from e
        return loads_config(text)

    def export_output(self, output_file: Path, output: Any) -> None:
        """Write mapped output."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2, default=str, ensure_ascii=False)

        count = len(output) if isinstance(output, list) else 1
        logger.info(f"Exported {count} records to {output_file}")

    def summary(self, config: MappingConfig) -> Dict[str, Any]:
        """Counts shown after export."""
        return {
            "sources": len(config.source_selection.sources),
            "outputFields": len(config.output_template.fields),
            "mappings": len(config.field_mappings),
            "transformations": len(config.transformations),
        }
