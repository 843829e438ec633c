"""
Path Resolver - Reads and writes values at dot/bracket paths inside JSON trees

Path syntax:
- Dot-separated keys: "user.address.city"
- Fixed array index suffix: "events[0].name"
- Wildcard suffix (all elements): "events[*].name"

Reads never raise for missing paths; writes never mutate their input.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from jsonmap.exceptions import PathError

logger = logging.getLogger(__name__)

WILDCARD = "*"

# "name", "name[0]", "name[*]", "[0]", "grid[0][1]"
SEGMENT_PATTERN = re.compile(r'^([^\[\]]*)((?:\[(?:\*|\d+)\])*)$')
INDEX_PATTERN = re.compile(r'\[(\*|\d+)\]')
FIXED_INDEX_PATTERN = re.compile(r'\[\d+\]')
DOTTED_INDEX_PATTERN = re.compile(r'\.(\d+)(?=\.|\[|$)')

_MISSING = object()


@dataclass(frozen=True)
class PathSegment:
    """One dot-separated segment: a key plus optional array suffixes"""

    key: str
    indices: Tuple[Union[int, str], ...] = ()

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.indices

    @property
    def is_indexed(self) -> bool:
        return any(index != WILDCARD for index in self.indices)

    def __str__(self) -> str:
        return self.key + "".join(f"[{index}]" for index in self.indices)


def split_path(path: Optional[str]) -> List[str]:
    """Split a path on dots, dropping empty segments."""
    if not path:
        return []
    return [segment for segment in path.split(".") if segment]


def join_path(*parts: Optional[str]) -> str:
    """Join path fragments, attaching bracket fragments without a dot."""
    result = ""
    for part in parts:
        if not part:
            continue
        if not result:
            result = part
        elif part.startswith("["):
            result = f"{result}{part}"
        else:
            result = f"{result}.{part}"
    return result


def parse_segment(segment: str) -> PathSegment:
    """
    Parse a single segment strictly

    Raises:
        PathError: If brackets are malformed or the segment mixes a
            wildcard with a fixed index (e.g. "grid[*][0]")
    """
    match = SEGMENT_PATTERN.match(segment)
    if not match:
        raise PathError(f"Malformed path segment: {segment!r}")

    key, suffix = match.group(1), match.group(2)
    indices = tuple(
        WILDCARD if token == WILDCARD else int(token)
        for token in INDEX_PATTERN.findall(suffix)
    )

    segment_obj = PathSegment(key=key, indices=indices)
    if segment_obj.is_wildcard and segment_obj.is_indexed:
        raise PathError(f"Segment mixes wildcard and fixed index: {segment!r}")
    if not key and not indices:
        raise PathError(f"Empty path segment in {segment!r}")

    return segment_obj


def parse_path(path: str) -> List[PathSegment]:
    """Parse a whole path strictly (see parse_segment)."""
    return [parse_segment(segment) for segment in split_path(path)]


def _parse_lenient(segment: str) -> PathSegment:
    """Parse a segment, falling back to a literal key when malformed"""
    match = SEGMENT_PATTERN.match(segment)
    if not match:
        return PathSegment(key=segment)
    indices = tuple(
        WILDCARD if token == WILDCARD else int(token)
        for token in INDEX_PATTERN.findall(match.group(2))
    )
    return PathSegment(key=match.group(1), indices=indices)


def _segments(path: str) -> List[Tuple[str, PathSegment]]:
    """Raw segments paired with their parsed form"""
    return [(raw, _parse_lenient(raw)) for raw in split_path(path)]


def _step_key(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key, _MISSING)
    # "events.0.name" style numeric keys index into lists
    if isinstance(current, list) and key.isdigit():
        index = int(key)
        return current[index] if index < len(current) else _MISSING
    return _MISSING


def _step_index(current: Any, index: Union[int, str]) -> Any:
    if not isinstance(current, list):
        return _MISSING
    if index == WILDCARD:
        # Preview semantics: a wildcard read yields the first element
        return current[0] if current else _MISSING
    return current[index] if index < len(current) else _MISSING


def _lookup(root: Any, path: Optional[str]) -> Any:
    if not path:
        return root

    current = root
    for raw, segment in _segments(path):
        # Bracketed keys written verbatim by set_value take precedence
        if isinstance(current, dict) and raw in current:
            current = current[raw]
            continue

        if segment.key:
            current = _step_key(current, segment.key)
            if current is _MISSING:
                return _MISSING

        for index in segment.indices:
            current = _step_index(current, index)
            if current is _MISSING:
                return _MISSING

    return current


def get_value(root: Any, path: Optional[str]) -> Any:
    """
    Get the value at path

    Args:
        root: JSON tree (dicts, lists, scalars)
        path: Path expression; empty means the root itself

    Returns:
        The value, or None when any segment cannot be resolved
    """
    value = _lookup(root, path)
    return None if value is _MISSING else value


def path_exists(root: Any, path: str) -> bool:
    """Check whether path resolves (a stored null counts as existing)."""
    return _lookup(root, path) is not _MISSING


def set_value(root: Any, path: Optional[str], value: Any) -> Any:
    """
    Return a copy of root with value assigned at path

    Dictionaries along the path are copied, untouched branches are shared.
    Missing or non-object intermediates are replaced by empty objects.
    Bracket segments are plain keys here; callers resolve concrete indices
    before writing.
    """
    if not path:
        return value

    segments = split_path(path)
    if isinstance(root, dict):
        result = dict(root)
    else:
        if root is not None:
            logger.debug(f"Replacing non-object root of type {type(root).__name__} while setting {path}")
        result = {}

    current = result
    for segment in segments[:-1]:
        child = current.get(segment)
        child = dict(child) if isinstance(child, dict) else {}
        current[segment] = child
        current = child

    current[segments[-1]] = value
    return result


def collect_values(root: Any, path: str) -> List[Any]:
    """
    Resolve path once per concrete index of every wildcard segment

    Results are flattened in index order. A value missing inside an
    element yields None at its position; a missing array yields nothing.

    Example:
        collect_values({"c": [{"n": "a"}, {}]}, "c[*].n") == ["a", None]
    """
    steps = []
    for raw in split_path(path):
        segment = _parse_lenient(raw)
        if segment.key:
            steps.append(("key", segment.key))
        for index in segment.indices:
            steps.append(("index", index))

    results: List[Any] = []

    def visit(current: Any, position: int, inside: bool) -> None:
        if position == len(steps):
            results.append(current)
            return

        kind, arg = steps[position]
        if kind == "index" and arg == WILDCARD:
            if isinstance(current, list):
                for element in current:
                    visit(element, position + 1, True)
            elif inside:
                results.append(None)
            return

        nxt = _step_key(current, arg) if kind == "key" else _step_index(current, arg)
        if nxt is _MISSING:
            if inside:
                results.append(None)
            return
        visit(nxt, position + 1, inside)

    visit(root, 0, False)
    return results


def expand_wildcard_path(root: Any, path: str) -> List[str]:
    """
    Expand every wildcard into the concrete paths present in root

    Example:
        "items[*].name" over 3 items -> ["items[0].name", "items[1].name", "items[2].name"]
    """
    segments = [_parse_lenient(raw) for raw in split_path(path)]
    paths: List[str] = []

    def expand(current: Any, position: int, built: str) -> None:
        if position == len(segments):
            paths.append(built)
            return

        segment = segments[position]
        if segment.key:
            current = _step_key(current, segment.key)
            if current is _MISSING:
                return
        expand_indices(current, position, 0, join_path(built, segment.key))

    def expand_indices(current: Any, position: int, index_pos: int, built: str) -> None:
        indices = segments[position].indices
        if index_pos == len(indices):
            expand(current, position + 1, built)
            return
        if not isinstance(current, list):
            return
        index = indices[index_pos]
        candidates = range(len(current)) if index == WILDCARD else [index]
        for concrete in candidates:
            if concrete < len(current):
                expand_indices(current[concrete], position, index_pos + 1, f"{built}[{concrete}]")

    expand(root, 0, "")
    return paths


def has_wildcard(path: Optional[str]) -> bool:
    return bool(path) and "[*]" in path


def has_fixed_index(path: Optional[str]) -> bool:
    return bool(path) and FIXED_INDEX_PATTERN.search(path) is not None


def to_template_path(path: str) -> str:
    """Replace every fixed index with a wildcard."""
    return FIXED_INDEX_PATTERN.sub("[*]", path)


def normalize_path(path: str) -> str:
    """Convert "events.0.name" to "events[0].name"."""
    return DOTTED_INDEX_PATTERN.sub(r'[\1]', path)


def denormalize_path(path: str) -> str:
    """Convert "events[0].name" to "events.0.name"."""
    return re.sub(r'\[(\d+)\]', r'.\1', path)


def array_fields(path: str) -> List[str]:
    """Names of array-bearing segments, in order of first appearance."""
    fields: List[str] = []
    for raw in split_path(path):
        segment = _parse_lenient(raw)
        if segment.indices and segment.key not in fields:
            fields.append(segment.key)
    return fields


def fixed_indices(path: str) -> Dict[str, int]:
    """First fixed index found for each array-bearing segment."""
    indices: Dict[str, int] = {}
    for raw in split_path(path):
        segment = _parse_lenient(raw)
        for index in segment.indices:
            if index != WILDCARD and segment.key not in indices:
                indices[segment.key] = index
    return indices


def substitute_indices(template_path: str, indices: Dict[str, int]) -> str:
    """
    Replace wildcards of the named array segments with concrete indices

    Segments are matched by exact key, so "items" never touches "subitems".
    Wildcards of segments absent from indices are left in place.
    """
    parts = []
    for raw in split_path(template_path):
        segment = _parse_lenient(raw)
        if segment.key in indices and segment.is_wildcard:
            replaced = tuple(
                indices[segment.key] if index == WILDCARD else index
                for index in segment.indices
            )
            segment = PathSegment(key=segment.key, indices=replaced)
        parts.append(str(segment))
    return ".".join(parts)
