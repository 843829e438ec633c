"""
Field Extractor - Enumerates the addressable paths of a JSON document

Supports:
- Nested objects (dot paths)
- Arrays generalized through their first element ("items[*].name")
- Fixed-index paths for the first few elements ("items[0].name")
- Depth and total-field bounds
- Caller-owned caches keyed by source
"""

import logging
from dataclasses import dataclass, replace
from fnmatch import fnmatchcase
from typing import Any, Dict, List, Optional, Tuple

from jsonmap.mapper.mapping import compact
from jsonmap.path.resolver import get_value, has_fixed_index, has_wildcard, join_path
from jsonmap.schema.models import OutputField, SourceDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractOptions:
    """Bounds and switches for field extraction"""

    max_depth: int = 10
    include_wildcards: bool = True
    include_fixed_indices: bool = True
    max_array_indices: int = 3
    include_values: bool = True
    include_null_values: bool = True
    include_empty_arrays: bool = False
    exclude_patterns: Tuple[str, ...] = ()
    max_total_fields: int = 1000


@dataclass(frozen=True)
class FieldDescriptor:
    """One addressable path found in a document"""

    path: str
    name: str
    type: str  # "string" | "number" | "boolean" | "null" | "object" | "array"
    value: Any = None
    depth: int = 0
    array_length: Optional[int] = None
    is_wildcard: bool = False
    is_fixed_index: bool = False
    source_id: Optional[str] = None
    source_name: Optional[str] = None

    @property
    def is_leaf(self) -> bool:
        return self.type not in ("object", "array")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return compact({
            "path": self.path,
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "depth": self.depth,
            "arrayLength": self.array_length,
            "isWildcard": self.is_wildcard or None,
            "isFixedIndex": self.is_fixed_index or None,
            "sourceId": self.source_id,
            "sourceName": self.source_name,
        })


def value_type(value: Any) -> str:
    """JSON type name of a value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def _field_name(path: str) -> str:
    return path.rsplit(".", 1)[-1]


class _Extractor:
    """Recursive descent bounded by a decrementing depth budget"""

    def __init__(self, options: ExtractOptions):
        self.options = options
        self.fields: List[FieldDescriptor] = []

    @property
    def full(self) -> bool:
        return len(self.fields) >= self.options.max_total_fields

    def emit(self, path: str, kind: str, depth: int, value: Any = None, array_length: Optional[int] = None) -> None:
        if self.full:
            return
        self.fields.append(FieldDescriptor(
            path=path,
            name=_field_name(path),
            type=kind,
            value=value if self.options.include_values else None,
            depth=depth,
            array_length=array_length,
            is_wildcard=has_wildcard(path),
            is_fixed_index=has_fixed_index(path),
        ))

    def excluded(self, key: str) -> bool:
        return any(fnmatchcase(key, pattern) for pattern in self.options.exclude_patterns)

    def walk(self, value: Any, path: str, remaining: int, depth: int) -> None:
        if self.full:
            return

        if isinstance(value, dict):
            self.walk_object(value, path, remaining, depth)
        elif isinstance(value, list):
            self.walk_array(value, path, remaining, depth)
        elif value is None:
            if path and self.options.include_null_values:
                self.emit(path, "null", depth)
        elif path:
            self.emit(path, value_type(value), depth, value=value)

    def walk_object(self, value: Dict[str, Any], path: str, remaining: int, depth: int) -> None:
        if path:
            self.emit(path, "object", depth)
        if remaining <= 0:
            return

        for key, child in value.items():
            if self.excluded(key):
                continue
            self.walk(child, join_path(path, key), remaining - 1, depth + 1)

    def walk_array(self, value: List[Any], path: str, remaining: int, depth: int) -> None:
        if not value:
            if path and self.options.include_empty_arrays:
                self.emit(path, "array", depth, array_length=0)
            return

        if path:
            self.emit(path, "array", depth, array_length=len(value))
        # An array of scalars is described by its array descriptor alone
        if not isinstance(value[0], (dict, list)) or remaining <= 0:
            return

        if self.options.include_wildcards:
            self.walk(value[0], f"{path}[*]", remaining - 1, depth + 1)

        if self.options.include_fixed_indices:
            for index in range(min(self.options.max_array_indices, len(value))):
                self.walk(value[index], f"{path}[{index}]", remaining - 1, depth + 1)


def extract_fields(
    value: Any,
    base_path: str = "",
    options: Optional[ExtractOptions] = None,
) -> List[FieldDescriptor]:
    """
    Enumerate the addressable paths of a JSON value

    Args:
        value: JSON document or sub-tree
        base_path: Path prefix for emitted descriptors
        options: Extraction bounds (defaults to ExtractOptions())

    Returns:
        Descriptors in document order, containers before their contents
    """
    options = options or ExtractOptions()
    extractor = _Extractor(options)
    extractor.walk(value, base_path, options.max_depth, 0)

    if extractor.full:
        logger.warning(f"Field extraction stopped at {options.max_total_fields} fields")
    logger.debug(f"Extracted {len(extractor.fields)} fields under {base_path or '<root>'}")
    return extractor.fields


class ExtractionCache:
    """Caller-owned cache of extracted source fields"""

    def __init__(self):
        self._entries: Dict[Tuple[str, str, ExtractOptions], List[FieldDescriptor]] = {}

    def get(self, key: Tuple[str, str, ExtractOptions]) -> Optional[List[FieldDescriptor]]:
        return self._entries.get(key)

    def put(self, key: Tuple[str, str, ExtractOptions], fields: List[FieldDescriptor]) -> None:
        self._entries[key] = fields

    def invalidate(self, source_id: str) -> None:
        """Drop every entry of one source (e.g. after its sample data refreshed)."""
        for key in [key for key in self._entries if key[0] == source_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _strip_array_root(fields: List[FieldDescriptor]) -> List[FieldDescriptor]:
    """
    Rebase paths extracted from an array root onto its items

    "[*].name" becomes "name"; root index paths ("[0]", "[0].name") and the
    root wildcard itself are dropped.
    """
    stripped = []
    for descriptor in fields:
        if descriptor.path.startswith("[*]."):
            path = descriptor.path[len("[*]."):]
            stripped.append(replace(
                descriptor,
                path=path,
                name=_field_name(path),
                depth=max(descriptor.depth - 1, 0),
                is_wildcard=has_wildcard(path),
            ))
        elif not descriptor.path.startswith("["):
            stripped.append(descriptor)
    return stripped


def extract_source_fields(
    document: Any,
    source: SourceDescriptor,
    options: Optional[ExtractOptions] = None,
    cache: Optional[ExtractionCache] = None,
) -> List[FieldDescriptor]:
    """
    Extract the mappable fields of one source document

    Args:
        document: Raw source document
        source: Source descriptor (its primary_path navigates the document)
        options: Extraction bounds
        cache: Optional cache shared across calls for the same session

    Returns:
        Descriptors tagged with the source id and name
    """
    options = options or ExtractOptions()
    key = (source.id, source.primary_path, options)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"Using cached fields for source {source.id}")
            return cached

    root = get_value(document, source.primary_path) if source.primary_path else document
    fields = extract_fields(root, "", options)
    if isinstance(root, list):
        fields = _strip_array_root(fields)

    fields = [replace(f, source_id=source.id, source_name=source.name) for f in fields]
    logger.info(f"Extracted {len(fields)} fields from source {source.label}")

    if cache is not None:
        cache.put(key, fields)
    return fields


def find_arrays_and_objects(data: Any, max_depth: int = 5) -> List[Dict[str, Any]]:
    """
    List candidate primary paths (objects and arrays) of a document

    Returns:
        Dicts with "path", "type" and, for arrays, "count"
    """
    results: List[Dict[str, Any]] = []

    def visit(current: Any, path: str, depth: int) -> None:
        if depth >= max_depth:
            return
        if isinstance(current, list):
            results.append({"path": path, "type": "array", "count": len(current)})
        elif isinstance(current, dict):
            results.append({"path": path, "type": "object"})
            for key, child in current.items():
                visit(child, join_path(path, key), depth + 1)

    visit(data, "", 0)
    return results


def extract_field_names(data: Any) -> List[str]:
    """Names of the top-level scalar fields of an object."""
    options = ExtractOptions(
        max_depth=1,
        include_wildcards=False,
        include_fixed_indices=False,
        include_values=False,
    )
    return [f.name for f in extract_fields(data, "", options) if f.is_leaf]


def infer_output_fields(sample: Any, max_depth: int = 3) -> List[OutputField]:
    """
    Derive a shallow output template from a sample item

    Arrays are kept as single array-typed fields; nulls become "any".
    """
    options = ExtractOptions(
        max_depth=max_depth,
        include_wildcards=False,
        include_fixed_indices=False,
        include_values=False,
        include_empty_arrays=True,
    )
    return [
        OutputField(path=f.path, type="any" if f.type == "null" else f.type)
        for f in extract_fields(sample, "", options)
    ]
