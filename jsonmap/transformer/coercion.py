"""Value coercions shared by transformations and conditions."""
import json
import math
import re
from typing import Any, Optional, Union

Number = Union[int, float]

# Leading numeric prefix of a string: "12.5kg" -> 12.5
NUMBER_PREFIX_PATTERN = re.compile(
    r'^\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity))'
)

# Whole-string numeric literal: " 1e3 ", "-.5", "0x1F", "Infinity"
NUMERIC_LITERAL_PATTERN = re.compile(
    r'^[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity)$|^0[xX][0-9a-fA-F]+$|^0[oO][0-7]+$|^0[bB][01]+$'
)


def is_number(value: Any) -> bool:
    """True for int/float values, excluding booleans."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_number(value: Number) -> Number:
    """Collapse integral floats to int so JSON output stays tidy."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_number(value: Number) -> str:
    value = normalize_number(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
    return str(value)


def to_text(value: Any) -> str:
    """
    Render a JSON value as text

    Strings are returned as-is, booleans as "true"/"false", None as "",
    numbers without a trailing ".0" and containers as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def to_number(value: Any) -> Optional[Number]:
    """
    Parse the leading number of value

    Returns:
        The number, or None when value has no numeric reading
    """
    if isinstance(value, bool) or value is None:
        return None
    if is_number(value):
        return None if isinstance(value, float) and math.isnan(value) else value
    if not isinstance(value, str):
        return None

    match = NUMBER_PREFIX_PATTERN.match(value)
    if not match:
        return None
    token = match.group(1)
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    number = float(token)
    return normalize_number(number)


def to_int(value: Any, default: int = 0) -> int:
    """Truncate a numeric reading of value to int, or return default."""
    number = to_number(value)
    if number is None or math.isinf(number):
        return default
    return int(number)


def to_numeric(value: Any) -> Optional[Number]:
    """
    Read a whole value as a number, for comparisons

    Unlike to_number, trailing text makes the value non-numeric, while
    None, "" and booleans have numeric readings (0, 0, 0/1).

    Returns:
        The number, or None when value is not numeric
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, list):
        if not value:
            return 0
        if len(value) == 1 and not isinstance(value[0], (dict, list)):
            return to_numeric(to_text(value[0]))
        return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return 0
    if not NUMERIC_LITERAL_PATTERN.match(text):
        return None
    if text.endswith("Infinity"):
        return -math.inf if text.startswith("-") else math.inf
    if text[:2].lower() in ("0x", "0o", "0b"):
        return int(text, 0)
    return normalize_number(float(text))
