"""
Transformation Specs - Typed configuration for each transformation type

Raw configs arrive as camelCase dictionaries from stored mapping configs;
parse_transform_config() turns them into one frozen dataclass per type.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from jsonmap.transformer.coercion import to_number


class TransformationType(str, Enum):
    """Supported transformation types"""

    # Text
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    CAPITALIZE = "capitalize"
    TRIM = "trim"
    SUBSTRING = "substring"
    REPLACE = "replace"
    CONCATENATE = "concatenate"
    SPLIT = "split"

    # Number
    NUMBER_FORMAT = "number_format"
    CALCULATE = "calculate"
    ROUND = "round"
    CEIL = "ceil"
    FLOOR = "floor"

    # Date
    DATE_FORMAT = "date_format"
    DATE_ADD = "date_add"

    # Advanced
    PARSE_JSON = "parse_json"
    STRINGIFY = "stringify"
    LOOKUP = "lookup"
    CUSTOM = "custom"

    @property
    def category(self) -> str:
        return CATEGORIES[self]


CATEGORIES = {
    TransformationType.UPPERCASE: "text",
    TransformationType.LOWERCASE: "text",
    TransformationType.CAPITALIZE: "text",
    TransformationType.TRIM: "text",
    TransformationType.SUBSTRING: "text",
    TransformationType.REPLACE: "text",
    TransformationType.CONCATENATE: "text",
    TransformationType.SPLIT: "text",
    TransformationType.NUMBER_FORMAT: "number",
    TransformationType.CALCULATE: "number",
    TransformationType.ROUND: "number",
    TransformationType.CEIL: "number",
    TransformationType.FLOOR: "number",
    TransformationType.DATE_FORMAT: "date",
    TransformationType.DATE_ADD: "date",
    TransformationType.PARSE_JSON: "advanced",
    TransformationType.STRINGIFY: "advanced",
    TransformationType.LOOKUP: "advanced",
    TransformationType.CUSTOM: "advanced",
}

CALCULATE_OPERATIONS = ("add", "subtract", "multiply", "divide", "modulo", "power")
DATE_UNITS = ("days", "months", "years", "hours", "minutes")


@dataclass(frozen=True)
class NoConfig:
    """Config for transformations without parameters"""


@dataclass(frozen=True)
class SubstringConfig:
    start: int = 0
    length: Optional[int] = None


@dataclass(frozen=True)
class ReplaceConfig:
    find: str = ""
    replace_with: str = ""
    regex: bool = False
    flags: str = "g"


@dataclass(frozen=True)
class ConcatenateConfig:
    separator: str = ""
    prefix: Optional[str] = None
    suffix: Optional[str] = None


@dataclass(frozen=True)
class SplitConfig:
    delimiter: str = ","
    index: int = 0


@dataclass(frozen=True)
class NumberFormatConfig:
    decimals: int = 2
    thousand_separator: Optional[str] = None
    prefix: str = ""
    suffix: str = ""


@dataclass(frozen=True)
class CalculateConfig:
    operation: str = "add"
    operand: Any = 0


@dataclass(frozen=True)
class DateFormatConfig:
    input_format: Optional[str] = None
    output_format: str = "ISO"


@dataclass(frozen=True)
class DateAddConfig:
    amount: Any = 0
    unit: str = "days"


@dataclass(frozen=True)
class StringifyConfig:
    indent: int = 0


@dataclass(frozen=True)
class LookupConfig:
    lookup_table: Any = None
    default_value: Any = None

    def table(self) -> Dict[str, Any]:
        """
        Decode the lookup table

        Raises:
            ValueError: If the table is not an object (or JSON text of one)
        """
        table = self.lookup_table
        if table is None:
            return {}
        if isinstance(table, str):
            table = json.loads(table)
        if not isinstance(table, dict):
            raise ValueError("Lookup table must be an object")
        return table


@dataclass(frozen=True)
class CustomConfig:
    expression: str = ""


TransformConfig = Union[
    NoConfig,
    SubstringConfig,
    ReplaceConfig,
    ConcatenateConfig,
    SplitConfig,
    NumberFormatConfig,
    CalculateConfig,
    DateFormatConfig,
    DateAddConfig,
    StringifyConfig,
    LookupConfig,
    CustomConfig,
]


def _optional_int(value: Any) -> Optional[int]:
    number = to_number(value)
    return None if number is None else int(number)


def _thousand_separator(value: Any) -> Optional[str]:
    if value is True:
        return ","
    if isinstance(value, str) and value:
        return value
    return None


def parse_transform_config(transform_type: Union[str, TransformationType], raw: Optional[Dict[str, Any]]) -> TransformConfig:
    """
    Build the typed config for a transformation type

    Args:
        transform_type: Transformation type name
        raw: camelCase config dictionary (None means empty)

    Returns:
        The config dataclass for that type

    Raises:
        ValueError: If the type is unknown
    """
    kind = TransformationType(transform_type)
    raw = raw or {}

    if kind == TransformationType.SUBSTRING:
        return SubstringConfig(
            start=_optional_int(raw.get("start")) or 0,
            length=_optional_int(raw.get("length")),
        )
    if kind == TransformationType.REPLACE:
        replace_with = raw.get("replaceWith", raw.get("replace"))
        return ReplaceConfig(
            find="" if raw.get("find") is None else str(raw["find"]),
            replace_with="" if replace_with is None else str(replace_with),
            regex=bool(raw.get("regex", False)),
            flags=raw.get("flags") or "g",
        )
    if kind == TransformationType.CONCATENATE:
        return ConcatenateConfig(
            separator=raw.get("separator") or "",
            prefix=raw.get("prefix") or None,
            suffix=raw.get("suffix") or None,
        )
    if kind == TransformationType.SPLIT:
        index = _optional_int(raw.get("index"))
        return SplitConfig(
            delimiter=raw.get("delimiter") or ",",
            index=index or 0,
        )
    if kind == TransformationType.NUMBER_FORMAT:
        decimals = _optional_int(raw.get("decimals"))
        return NumberFormatConfig(
            decimals=2 if decimals is None else decimals,
            thousand_separator=_thousand_separator(raw.get("thousandSeparator")),
            prefix=raw.get("prefix") or "",
            suffix=raw.get("suffix") or "",
        )
    if kind == TransformationType.CALCULATE:
        return CalculateConfig(
            operation=raw.get("operation") or "add",
            operand=raw.get("value", 0),
        )
    if kind == TransformationType.DATE_FORMAT:
        return DateFormatConfig(
            input_format=raw.get("inputFormat") or None,
            output_format=raw.get("outputFormat") or "ISO",
        )
    if kind == TransformationType.DATE_ADD:
        return DateAddConfig(
            amount=raw.get("amount", 0),
            unit=raw.get("unit") or "days",
        )
    if kind == TransformationType.STRINGIFY:
        return StringifyConfig(indent=_optional_int(raw.get("indent")) or 0)
    if kind == TransformationType.LOOKUP:
        return LookupConfig(
            lookup_table=raw.get("lookupTable"),
            default_value=raw.get("defaultValue"),
        )
    if kind == TransformationType.CUSTOM:
        return CustomConfig(expression=raw.get("expression") or "")

    return NoConfig()
