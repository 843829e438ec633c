"""Models for mapping configurations, sources and output templates."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from jsonmap.mapper.mapping import FieldMapping, compact
from jsonmap.transformer.specs import TransformConfig, parse_transform_config

OUTPUT_FIELD_TYPES = ("string", "number", "boolean", "object", "array", "any")
MERGE_MODES = ("single", "combined", "separate")


@dataclass(frozen=True)
class SourceDescriptor:
    """A selected data source."""

    id: str
    name: str
    type: str = "object"  # "array" | "object"
    category: Optional[str] = None
    primary_path: str = ""
    path: Optional[str] = None
    alias: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def label(self) -> str:
        return self.name or self.id

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "primaryPath": self.primary_path,
            "path": self.path,
            "alias": self.alias,
            "metadata": self.metadata,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceDescriptor":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            type=data.get("type", "object"),
            category=data.get("category"),
            primary_path=data.get("primaryPath") or "",
            path=data.get("path"),
            alias=data.get("alias"),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True)
class SourceSelection:
    """Which sources feed the mapping and how they are combined."""

    type: str = "object"  # "array" | "object" | "mixed"
    primary_path: Optional[str] = None
    sources: Tuple[SourceDescriptor, ...] = ()
    merge_mode: str = "single"
    unwrap_single_items: bool = False

    def get_source(self, source_id: str) -> Optional[SourceDescriptor]:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    @property
    def primary_source(self) -> Optional[SourceDescriptor]:
        return self.sources[0] if self.sources else None

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "type": self.type,
            "primaryPath": self.primary_path,
            "sources": [source.to_dict() for source in self.sources],
            "mergeMode": self.merge_mode,
            "unwrapSingleItems": self.unwrap_single_items,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceSelection":
        return cls(
            type=data.get("type", "object"),
            primary_path=data.get("primaryPath"),
            sources=tuple(SourceDescriptor.from_dict(s) for s in data.get("sources", [])),
            merge_mode=data.get("mergeMode", "single"),
            unwrap_single_items=bool(data.get("unwrapSingleItems", False)),
        )


@dataclass(frozen=True)
class OutputField:
    """A field of the desired output document."""

    path: str
    type: str = "any"
    required: bool = False
    default_value: Any = None
    description: Optional[str] = None

    def is_descendant_of(self, ancestor: str) -> bool:
        return self.path.startswith(f"{ancestor}.") or self.path.startswith(f"{ancestor}[")

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "path": self.path,
            "type": self.type,
            "required": self.required or None,
            "defaultValue": self.default_value,
            "description": self.description,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputField":
        return cls(
            path=data["path"],
            type=data.get("type", "any"),
            required=bool(data.get("required", False)),
            default_value=data.get("defaultValue"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class OutputTemplate:
    """Declared shape of the output document."""

    fields: Tuple[OutputField, ...] = ()
    structure: Any = None

    def get_field(self, path: str) -> Optional[OutputField]:
        for output_field in self.fields:
            if output_field.path == path:
                return output_field
        return None

    def children(self, path: str) -> List[OutputField]:
        """Direct descendants of the field at path."""
        depth = path.count(".") + 1
        return [
            f for f in self.fields
            if f.is_descendant_of(path) and f.path.count(".") == depth
        ]

    def leaves(self) -> List[OutputField]:
        """Fields without declared descendants, whatever their type."""
        return [
            f for f in self.fields
            if not any(other.is_descendant_of(f.path) for other in self.fields)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "structure": self.structure,
            "fields": [f.to_dict() for f in self.fields],
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputTemplate":
        return cls(
            fields=tuple(OutputField.from_dict(f) for f in data.get("fields", [])),
            structure=data.get("structure"),
        )


@dataclass(frozen=True)
class MetadataFields:
    """Wrapper metadata toggles; None means the field's default."""

    timestamp: Optional[bool] = None
    source: Optional[bool] = None
    count: Optional[bool] = None
    version: Optional[bool] = None

    def is_enabled(self, name: str) -> bool:
        flag = getattr(self, name)
        if name == "version":
            return bool(flag)
        return flag is not False

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "timestamp": self.timestamp,
            "source": self.source,
            "count": self.count,
            "version": self.version,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetadataFields":
        return cls(
            timestamp=data.get("timestamp"),
            source=data.get("source"),
            count=data.get("count"),
            version=data.get("version"),
        )


@dataclass(frozen=True)
class OutputWrapperConfig:
    """Envelope placed around the mapped payload."""

    enabled: bool = False
    wrapper_key: str = "data"
    include_metadata: bool = False
    metadata_fields: MetadataFields = field(default_factory=MetadataFields)
    custom_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "wrapperKey": self.wrapper_key,
            "includeMetadata": self.include_metadata,
            "metadataFields": self.metadata_fields.to_dict(),
            "customMetadata": dict(self.custom_metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputWrapperConfig":
        return cls(
            enabled=bool(data.get("enabled", False)),
            wrapper_key=data.get("wrapperKey", "data"),
            include_metadata=bool(data.get("includeMetadata", False)),
            metadata_fields=MetadataFields.from_dict(data.get("metadataFields") or {}),
            custom_metadata=dict(data.get("customMetadata") or {}),
        )


@dataclass(frozen=True)
class MappingTransformation:
    """A named, configured value transformation."""

    id: str
    name: str
    type: str
    config: Dict[str, Any] = field(default_factory=dict)

    def typed_config(self) -> TransformConfig:
        return parse_transform_config(self.type, self.config)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "config": dict(self.config),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingTransformation":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            type=data["type"],
            config=dict(data.get("config") or {}),
        )


@dataclass(frozen=True)
class MappingConfig:
    """Complete mapping configuration (the exchanged artifact)."""

    source_selection: SourceSelection = field(default_factory=SourceSelection)
    output_template: OutputTemplate = field(default_factory=OutputTemplate)
    field_mappings: Tuple[FieldMapping, ...] = ()
    transformations: Tuple[MappingTransformation, ...] = ()
    output_wrapper: Optional[OutputWrapperConfig] = None

    def get_transformation(self, transform_id: str) -> Optional[MappingTransformation]:
        for transformation in self.transformations:
            if transformation.id == transform_id:
                return transformation
        return None

    def get_mapping(self, mapping_id: str) -> Optional[FieldMapping]:
        for mapping in self.field_mappings:
            if mapping.id == mapping_id:
                return mapping
        return None

    def mappings_for_target(self, target_path: str) -> List[FieldMapping]:
        return [m for m in self.field_mappings if m.target_path == target_path]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return compact({
            "sourceSelection": self.source_selection.to_dict(),
            "outputTemplate": self.output_template.to_dict(),
            "fieldMappings": [m.to_dict() for m in self.field_mappings],
            "transformations": [t.to_dict() for t in self.transformations],
            "outputWrapper": self.output_wrapper.to_dict() if self.output_wrapper else None,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingConfig":
        wrapper = data.get("outputWrapper")
        return cls(
            source_selection=SourceSelection.from_dict(data.get("sourceSelection") or {}),
            output_template=OutputTemplate.from_dict(data.get("outputTemplate") or {}),
            field_mappings=tuple(FieldMapping.from_dict(m) for m in data.get("fieldMappings", [])),
            transformations=tuple(
                MappingTransformation.from_dict(t) for t in data.get("transformations", [])
            ),
            output_wrapper=OutputWrapperConfig.from_dict(wrapper) if wrapper else None,
        )
