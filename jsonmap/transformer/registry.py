"""
Transformer Registry - Applies configured transformations to values

Every transformation is total: a failure inside a handler is logged and
the input value is returned unchanged.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable, Dict, Iterable, List, Optional

from jsonmap.exceptions import ExpressionError
from jsonmap.transformer.coercion import normalize_number, to_int, to_number, to_text
from jsonmap.transformer.dates import add_to_date, format_date, iso_string, parse_date
from jsonmap.transformer.expression import compile_expression, evaluate_expression
from jsonmap.transformer.specs import (
    CALCULATE_OPERATIONS,
    DATE_UNITS,
    CalculateConfig,
    ConcatenateConfig,
    CustomConfig,
    DateAddConfig,
    DateFormatConfig,
    LookupConfig,
    NumberFormatConfig,
    ReplaceConfig,
    SplitConfig,
    StringifyConfig,
    SubstringConfig,
    TransformationType,
    parse_transform_config,
)

logger = logging.getLogger(__name__)

REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
SUPPORTED_REGEX_FLAGS = set(REGEX_FLAGS) | {"g"}

# "$1", "$&" and "$$" references in regex replacement strings
REPLACEMENT_REFERENCE = re.compile(r'\$(\$|&|\d{1,2})')

# Enough digits for any finite float at 100 decimals
DECIMAL_PRECISION = 500


@dataclass
class TransformValidation:
    """Result of validating one transformation config"""

    valid: bool = True
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


def _text_transform(func: Callable[[str], str]) -> Callable[[Any, Any], Any]:
    def handler(value: Any, config: Any) -> Any:
        if value is None:
            return None
        return func(to_text(value))
    return handler


def _capitalize(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" ") if word)


def _substring(value: Any, config: SubstringConfig) -> Any:
    if value is None:
        return None
    text = to_text(value)
    start = max(config.start, 0)
    if config.length and config.length > 0:
        return text[start:start + config.length]
    return text[start:]


def _regex_replacement(replacement: str) -> str:
    def convert(match):
        token = match.group(1)
        if token == "$":
            return "$"
        if token == "&":
            return r"\g<0>"
        return rf"\g<{int(token)}>"

    return REPLACEMENT_REFERENCE.sub(convert, replacement.replace("\\", "\\\\"))


def _replace(value: Any, config: ReplaceConfig) -> Any:
    if value is None:
        return None
    text = to_text(value)
    if not config.regex:
        if not config.find:
            return text
        return text.replace(config.find, config.replace_with)

    flags = 0
    for flag in config.flags:
        flags |= REGEX_FLAGS.get(flag, 0)
    count = 0 if "g" in config.flags else 1
    pattern = re.compile(config.find, flags)
    return pattern.sub(_regex_replacement(config.replace_with), text, count=count)


def _concatenate(value: Any, config: ConcatenateConfig) -> str:
    parts = [to_text(value)]
    if config.prefix:
        parts.insert(0, config.prefix)
    if config.suffix:
        parts.append(config.suffix)
    return config.separator.join(parts)


def _split(value: Any, config: SplitConfig) -> Any:
    if value is None:
        return None
    parts = to_text(value).split(config.delimiter)
    if 0 <= config.index < len(parts):
        return parts[config.index]
    return ""


def _number_format(value: Any, config: NumberFormatConfig) -> Any:
    number = to_number(value)
    if number is None or not math.isfinite(number):
        return value

    decimals = min(max(config.decimals, 0), 100)
    # Ties round away from zero on the exact binary value
    with localcontext() as context:
        context.prec = DECIMAL_PRECISION
        rounded = Decimal(number).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)

    separator = config.thousand_separator
    if separator:
        formatted = format(rounded, ",f")
        if separator != ",":
            formatted = formatted.replace(",", separator)
    else:
        formatted = format(rounded, "f")

    return f"{config.prefix}{formatted}{config.suffix}"


def _calculate(value: Any, config: CalculateConfig) -> Any:
    number = to_number(value)
    if number is None:
        return value

    operand = to_number(config.operand) or 0
    operation = config.operation
    if operation == "add":
        result = number + operand
    elif operation == "subtract":
        result = number - operand
    elif operation == "multiply":
        result = number * operand
    elif operation == "divide":
        # Division by zero yields 0 rather than an error
        result = number / operand if operand != 0 else 0
    elif operation == "modulo":
        result = number % operand
    elif operation == "power":
        result = math.pow(number, operand)
    else:
        logger.warning(f"Unknown calculate operation: {operation}")
        result = number

    return normalize_number(result)


def _rounding(func: Callable[[float], int]) -> Callable[[Any, Any], Any]:
    def handler(value: Any, config: Any) -> Any:
        number = to_number(value)
        if number is None or not math.isfinite(number):
            return value
        return func(number)
    return handler


def _date_format(value: Any, config: DateFormatConfig) -> Any:
    moment = parse_date(value, config.input_format)
    if moment is None:
        return value
    return format_date(moment, config.output_format)


def _date_add(value: Any, config: DateAddConfig) -> Any:
    moment = parse_date(value)
    if moment is None:
        return value
    return iso_string(add_to_date(moment, to_int(config.amount), config.unit))


def _parse_json(value: Any, config: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        logger.debug(f"Value is not JSON, leaving as-is: {value[:50]!r}")
        return value


def _stringify(value: Any, config: StringifyConfig) -> str:
    if config.indent > 0:
        return json.dumps(value, ensure_ascii=False, indent=config.indent)
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _lookup(value: Any, config: LookupConfig) -> Any:
    fallback = value if config.default_value is None else config.default_value
    try:
        table = config.table()
    except ValueError as e:
        logger.warning(f"Invalid lookup table: {e}")
        return fallback

    key = value if isinstance(value, str) else to_text(value)
    found = table.get(key)
    return fallback if found is None else found


def _custom(value: Any, config: CustomConfig) -> Any:
    return evaluate_expression(config.expression, value)


class TransformerRegistry:
    """Registry of available transformers."""

    def __init__(self):
        """Initialize registry."""
        self.handlers: Dict[TransformationType, Callable[[Any, Any], Any]] = {
            TransformationType.UPPERCASE: _text_transform(str.upper),
            TransformationType.LOWERCASE: _text_transform(str.lower),
            TransformationType.CAPITALIZE: _text_transform(_capitalize),
            TransformationType.TRIM: _text_transform(str.strip),
            TransformationType.SUBSTRING: _substring,
            TransformationType.REPLACE: _replace,
            TransformationType.CONCATENATE: _concatenate,
            TransformationType.SPLIT: _split,
            TransformationType.NUMBER_FORMAT: _number_format,
            TransformationType.CALCULATE: _calculate,
            TransformationType.ROUND: _rounding(lambda number: math.floor(number + 0.5)),
            TransformationType.CEIL: _rounding(math.ceil),
            TransformationType.FLOOR: _rounding(math.floor),
            TransformationType.DATE_FORMAT: _date_format,
            TransformationType.DATE_ADD: _date_add,
            TransformationType.PARSE_JSON: _parse_json,
            TransformationType.STRINGIFY: _stringify,
            TransformationType.LOOKUP: _lookup,
            TransformationType.CUSTOM: _custom,
        }
        self.transformers: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str, func: Callable[..., Any]) -> None:
        """
        Register a named transformer

        Args:
            name: Transformer name used as the transformation type
            func: Callable taking (value, config)
        """
        if name in {kind.value for kind in TransformationType}:
            raise ValueError(f"Cannot override built-in transformation: {name}")
        self.transformers[name] = func

    def get(self, name: str) -> Optional[Callable[..., Any]]:
        """Get a registered transformer by name."""
        return self.transformers.get(name)

    def transform(self, value: Any, transformer_name: str, config: Optional[Dict[str, Any]] = None) -> Any:
        """Apply transformation by type name with its raw camelCase config."""
        config = config or {}
        try:
            kind = TransformationType(transformer_name)
        except ValueError:
            transformer = self.get(transformer_name)
            if transformer is None:
                logger.warning(f"Unknown transformer: {transformer_name}")
                return value
            try:
                return transformer(value, config)
            except Exception as e:
                logger.error(f"Error applying transformer {transformer_name}: {e}")
                return value

        try:
            typed = parse_transform_config(kind, config)
            return self.handlers[kind](value, typed)
        except Exception as e:
            logger.error(f"Error applying transformer {transformer_name}: {e}")
            return value

    def apply(self, value: Any, transformation: Any) -> Any:
        """Apply a MappingTransformation."""
        return self.transform(value, transformation.type, transformation.config)

    def apply_all(self, value: Any, transformations: Iterable[Any]) -> Any:
        """Fold transformations left to right."""
        for transformation in transformations:
            value = self.apply(value, transformation)
        return value


default_registry = TransformerRegistry()


def apply_transformation(value: Any, transformation: Any) -> Any:
    """Apply one transformation with the default registry."""
    return default_registry.apply(value, transformation)


def apply_transformations(value: Any, transformations: Iterable[Any]) -> Any:
    """Apply transformations in order, each output feeding the next."""
    return default_registry.apply_all(value, transformations)


def validate_transform_config(transform_type: str, config: Optional[Dict[str, Any]]) -> TransformValidation:
    """
    Check a transformation config before use

    Validation is stricter than execution: a divide-by-zero calculate is
    an error here although it evaluates to 0 at runtime.

    Args:
        transform_type: Transformation type name
        config: Raw camelCase config

    Returns:
        TransformValidation with every problem found
    """
    errors: List[str] = []
    config = config or {}
    if not isinstance(config, dict):
        return TransformValidation(valid=False, errors=["Transformation config must be an object"])

    try:
        kind = TransformationType(transform_type)
    except ValueError:
        if transform_type not in default_registry.transformers:
            errors.append(f"Unknown transformation type: {transform_type}")
        return TransformValidation(valid=not errors, errors=errors)

    if kind == TransformationType.SUBSTRING:
        start = to_number(config.get("start"))
        length = to_number(config.get("length"))
        if start is not None and start < 0:
            errors.append("Start index must be non-negative")
        if length is not None and length < 0:
            errors.append("Length must be positive")

    elif kind == TransformationType.REPLACE:
        if not config.get("find"):
            errors.append("Find pattern is required")
        elif config.get("regex"):
            unknown = set(config.get("flags") or "") - SUPPORTED_REGEX_FLAGS
            if unknown:
                errors.append(f"Unsupported regex flags: {''.join(sorted(unknown))}")
            try:
                re.compile(str(config["find"]))
            except re.error as e:
                errors.append(f"Invalid regular expression: {e}")

    elif kind == TransformationType.SPLIT:
        index = to_number(config.get("index"))
        if index is not None and index < 0:
            errors.append("Index must be non-negative")

    elif kind == TransformationType.NUMBER_FORMAT:
        decimals = to_number(config.get("decimals"))
        if decimals is not None and not 0 <= decimals <= 100:
            errors.append("Decimals must be between 0 and 100")

    elif kind == TransformationType.CALCULATE:
        operation = config.get("operation") or "add"
        if operation not in CALCULATE_OPERATIONS:
            errors.append(f"Unknown operation: {operation}")
        if operation == "divide" and to_number(config.get("value")) == 0:
            errors.append("Cannot divide by zero")

    elif kind == TransformationType.DATE_ADD:
        unit = config.get("unit") or "days"
        if unit not in DATE_UNITS:
            errors.append(f"Unknown date unit: {unit}")

    elif kind == TransformationType.LOOKUP:
        table = config.get("lookupTable")
        if table:
            try:
                LookupConfig(lookup_table=table).table()
            except json.JSONDecodeError:
                errors.append("Invalid lookup table JSON")
            except ValueError:
                errors.append("Lookup table must be a valid object")

    elif kind == TransformationType.CUSTOM:
        expression = config.get("expression")
        if not expression:
            errors.append("Expression is required")
        else:
            try:
                compile_expression(str(expression))
            except ExpressionError as e:
                errors.append(str(e))

    return TransformValidation(valid=not errors, errors=errors)
