"""Heuristic mapping engine for auto-detecting field mappings."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from jsonmap.mapper.mapping import ArrayIndexConfig, FieldMapping, new_mapping_id
from jsonmap.mapper.similarity import similarity

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7


@dataclass(frozen=True)
class MappingSuggestion:
    """A proposed mapping with its similarity score."""

    mapping: FieldMapping
    confidence: float

    def to_dict(self):
        return {**self.mapping.to_dict(), "confidence": round(self.confidence, 4)}


def _path_of(item: Any) -> str:
    return item if isinstance(item, str) else item.path


def best_match(target_path: str, source_fields: Sequence[Any], threshold: float) -> Optional[Tuple[Any, float]]:
    """
    Pick the most similar source field for a target path

    A candidate must score strictly above threshold (an exact match always
    qualifies) and strictly above the running best, so the first of equally
    scored candidates wins.
    """
    best = None
    best_score = 0.0
    for candidate in source_fields:
        score = similarity(_path_of(candidate), target_path)
        if score <= threshold and score < 1.0:
            continue
        if best is None or score > best_score:
            best, best_score = candidate, score
    return (best, best_score) if best is not None else None


def _build_mapping(source: Any, target: Any, id_factory: Callable[[], str]) -> FieldMapping:
    source_path = _path_of(source)
    array_config = ArrayIndexConfig.from_source_path(source_path)
    if array_config is not None:
        source_path = array_config.resolve_path()
    return FieldMapping(
        id=id_factory(),
        source_path=source_path,
        target_path=_path_of(target),
        source_id=getattr(source, "source_id", None),
        source_name=getattr(source, "source_name", None),
        fallback_value=getattr(target, "default_value", None),
        array_config=array_config,
    )


def propose_mappings(
    source_fields: Sequence[Any],
    target_fields: Iterable[Any],
    threshold: float = DEFAULT_THRESHOLD,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[FieldMapping]:
    """
    Propose one mapping per target field with a close enough source field

    Args:
        source_fields: Source paths (str) or FieldDescriptors
        target_fields: Target paths (str) or OutputFields
        threshold: Minimum similarity, exclusive
        id_factory: Mapping id generator

    Returns:
        FieldMappings carrying each target's default value as fallback
    """
    return [s.mapping for s in HeuristicMapper(threshold, id_factory).suggest(source_fields, target_fields)]


class HeuristicMapper:
    """Auto-map source fields to output fields using name similarity."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, id_factory: Optional[Callable[[], str]] = None):
        """Initialize mapper with a similarity threshold."""
        self.threshold = threshold
        self.id_factory = id_factory or new_mapping_id

    def suggest(
        self,
        source_fields: Sequence[Any],
        target_fields: Iterable[Any],
        existing: Iterable[FieldMapping] = (),
    ) -> List[MappingSuggestion]:
        """Generate mapping suggestions for targets not covered by existing mappings."""
        mapped = {m.target_path for m in existing}
        suggestions = []

        for target in target_fields:
            target_path = _path_of(target)
            if target_path in mapped:
                continue

            match = best_match(target_path, source_fields, self.threshold)
            if match is None:
                logger.debug(f"No source field similar enough to {target_path}")
                continue

            source, score = match
            suggestions.append(MappingSuggestion(
                mapping=_build_mapping(source, target, self.id_factory),
                confidence=score,
            ))

        logger.info(f"Suggested {len(suggestions)} mappings")
        return suggestions
