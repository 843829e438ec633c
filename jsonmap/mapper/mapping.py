"""Field mapping models."""
import json
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from jsonmap.path.resolver import (
    array_fields,
    fixed_indices,
    has_fixed_index,
    substitute_indices,
    to_template_path,
)

ARRAY_MODE = "array"
INDEX_MODE = "index"
MAPPING_MODES = (ARRAY_MODE, INDEX_MODE)

# Source paths under this prefix read source metadata instead of the item
SOURCE_PREFIX = "_source"


def new_mapping_id() -> str:
    """Generate a stable mapping id."""
    return f"mapping_{uuid.uuid4().hex}"


def is_source_path(path: str) -> bool:
    return path == SOURCE_PREFIX or path.startswith(f"{SOURCE_PREFIX}.")


def compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class ArrayIndexConfig:
    """Index selection for a source path that traverses arrays."""

    fields: Tuple[str, ...] = ()
    indices: Dict[str, int] = field(default_factory=dict)
    template_path: str = ""
    mapping_mode: str = INDEX_MODE

    @classmethod
    def from_source_path(
        cls, source_path: str, mapping_mode: Optional[str] = None
    ) -> Optional["ArrayIndexConfig"]:
        """
        Derive the config for a source path, or None when it has no arrays.

        Wildcard segments default to index 0. Without an explicit mode, a
        path with fixed indices is in index mode and a wildcard-only path in
        array mode.
        """
        names = array_fields(source_path)
        if not names:
            return None

        found = fixed_indices(source_path)
        indices = {name: found.get(name, 0) for name in names}
        if mapping_mode is None:
            mapping_mode = INDEX_MODE if has_fixed_index(source_path) else ARRAY_MODE

        return cls(
            fields=tuple(names),
            indices=indices,
            template_path=to_template_path(source_path),
            mapping_mode=mapping_mode,
        )

    def resolve_path(self) -> str:
        """Source path implied by the template, indices and mode."""
        if self.mapping_mode == ARRAY_MODE:
            return self.template_path
        return substitute_indices(self.template_path, self.indices)

    def with_index(self, field_name: str, index: int) -> "ArrayIndexConfig":
        if field_name not in self.fields:
            raise ValueError(f"Unknown array field: {field_name}")
        if index < 0:
            raise ValueError(f"Array index must be non-negative: {index}")
        indices = dict(self.indices)
        indices[field_name] = index
        return replace(self, indices=indices)

    def with_mode(self, mapping_mode: str) -> "ArrayIndexConfig":
        if mapping_mode not in MAPPING_MODES:
            raise ValueError(f"Unknown mapping mode: {mapping_mode}")
        return replace(self, mapping_mode=mapping_mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": list(self.fields),
            "indices": dict(self.indices),
            "templatePath": self.template_path,
            "mappingMode": self.mapping_mode,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ArrayIndexConfig":
        # The editor historically stored this block as a JSON string
        if isinstance(data, str):
            data = json.loads(data)
        return cls(
            fields=tuple(data.get("fields", [])),
            indices={key: int(value) for key, value in data.get("indices", {}).items()},
            template_path=data.get("templatePath", ""),
            mapping_mode=data.get("mappingMode", INDEX_MODE),
        )


@dataclass(frozen=True)
class MappingCondition:
    """Conditional override evaluated against the source item."""

    when: str
    operator: str
    value: Any = None
    then: Any = None
    else_: Any = None
    type: str = "simple"

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "type": self.type,
            "when": self.when,
            "operator": self.operator,
            "value": self.value,
            "then": self.then,
            "else": self.else_,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingCondition":
        return cls(
            when=data.get("when", ""),
            operator=data.get("operator", "equals"),
            value=data.get("value"),
            then=data.get("then"),
            else_=data.get("else"),
            type=data.get("type", "simple"),
        )


@dataclass(frozen=True)
class FieldMapping:
    """Represents a mapping from a source path to a target path."""

    id: str
    source_path: str
    target_path: str
    source_id: Optional[str] = None
    source_name: Optional[str] = None
    transform_id: Optional[str] = None
    transform_ids: Tuple[str, ...] = ()
    fallback_value: Any = None
    conditional: Optional[MappingCondition] = None
    array_config: Optional[ArrayIndexConfig] = None

    @property
    def transform_chain(self) -> List[str]:
        """Transformation ids in application order."""
        chain = [self.transform_id] if self.transform_id else []
        chain.extend(self.transform_ids)
        return chain

    @property
    def is_array_mode(self) -> bool:
        return self.array_config is not None and self.array_config.mapping_mode == ARRAY_MODE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return compact({
            "id": self.id,
            "sourcePath": self.source_path,
            "targetPath": self.target_path,
            "sourceId": self.source_id,
            "sourceName": self.source_name,
            "transformId": self.transform_id,
            "transformIds": list(self.transform_ids) or None,
            "fallbackValue": self.fallback_value,
            "conditional": self.conditional.to_dict() if self.conditional else None,
            "arrayConfig": self.array_config.to_dict() if self.array_config else None,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        conditional = data.get("conditional")
        array_config = data.get("arrayConfig")
        return cls(
            id=data.get("id") or new_mapping_id(),
            source_path=data.get("sourcePath", ""),
            target_path=data.get("targetPath", ""),
            source_id=data.get("sourceId"),
            source_name=data.get("sourceName"),
            transform_id=data.get("transformId"),
            transform_ids=tuple(data.get("transformIds") or ()),
            fallback_value=data.get("fallbackValue"),
            conditional=MappingCondition.from_dict(conditional) if conditional else None,
            array_config=ArrayIndexConfig.from_dict(array_config) if array_config else None,
        )
