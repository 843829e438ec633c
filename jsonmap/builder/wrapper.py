"""Output envelope around a mapped payload."""
from datetime import datetime
from typing import Any, Dict, Optional

from jsonmap.schema.models import OutputWrapperConfig, SourceDescriptor
from jsonmap.transformer.dates import iso_string

OUTPUT_VERSION = "1.0.0"
DEFAULT_WRAPPER_KEY = "data"


def build_metadata(
    payload: Any,
    wrapper: OutputWrapperConfig,
    source: Optional[SourceDescriptor],
    now: datetime,
) -> Dict[str, Any]:
    """Metadata block for the envelope, honoring the per-field toggles."""
    fields = wrapper.metadata_fields
    metadata: Dict[str, Any] = {}

    if fields.is_enabled("timestamp"):
        metadata["timestamp"] = iso_string(now)
    if fields.is_enabled("source") and source is not None:
        metadata["source"] = {"id": source.id, "name": source.name, "type": source.type}
    if fields.is_enabled("count"):
        metadata["count"] = len(payload) if isinstance(payload, list) else 1
    if fields.is_enabled("version"):
        metadata["version"] = OUTPUT_VERSION

    metadata.update(wrapper.custom_metadata)
    return metadata


def wrap_output(
    payload: Any,
    wrapper: Optional[OutputWrapperConfig],
    source: Optional[SourceDescriptor],
    now: datetime,
) -> Any:
    """
    Wrap payload as {"metadata": {...}, <wrapperKey>: payload}

    Returns payload untouched when the wrapper is absent or disabled.
    """
    if wrapper is None or not wrapper.enabled:
        return payload

    result: Dict[str, Any] = {}
    if wrapper.include_metadata:
        metadata = build_metadata(payload, wrapper, source, now)
        if metadata:
            result["metadata"] = metadata

    result[wrapper.wrapper_key or DEFAULT_WRAPPER_KEY] = payload
    return result
