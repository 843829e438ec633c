"""Conditional overrides evaluated against a source item."""
import logging
import re
from typing import Any, Callable

from jsonmap.introspection.field_extractor import value_type
from jsonmap.mapper.mapping import MappingCondition
from jsonmap.transformer.coercion import to_numeric, to_text

logger = logging.getLogger(__name__)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that never equates values of different JSON types (True != 1)."""
    return value_type(left) == value_type(right) and left == right


def _compare_numbers(left: Any, right: Any, compare: Callable[[Any, Any], bool]) -> bool:
    left_number, right_number = to_numeric(left), to_numeric(right)
    if left_number is None or right_number is None:
        return False
    return compare(left_number, right_number)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _matches(value: Any, pattern: Any) -> bool:
    try:
        return re.search(to_text(pattern), to_text(value)) is not None
    except re.error as e:
        logger.warning(f"Invalid condition pattern {pattern!r}: {e}")
        return False


OPERATORS = {
    "equals": strict_equals,
    "not_equals": lambda value, expected: not strict_equals(value, expected),
    "contains": lambda value, expected: to_text(expected) in to_text(value),
    "starts_with": lambda value, expected: to_text(value).startswith(to_text(expected)),
    "ends_with": lambda value, expected: to_text(value).endswith(to_text(expected)),
    "greater_than": lambda value, expected: _compare_numbers(value, expected, lambda a, b: a > b),
    "less_than": lambda value, expected: _compare_numbers(value, expected, lambda a, b: a < b),
    "greater_than_or_equal": lambda value, expected: _compare_numbers(value, expected, lambda a, b: a >= b),
    "less_than_or_equal": lambda value, expected: _compare_numbers(value, expected, lambda a, b: a <= b),
    "in": lambda value, expected: isinstance(expected, list) and any(strict_equals(value, e) for e in expected),
    "not_in": lambda value, expected: isinstance(expected, list) and not any(strict_equals(value, e) for e in expected),
    "regex": _matches,
    "exists": lambda value, expected: value is not None,
    "not_exists": lambda value, expected: value is None,
    "is_empty": lambda value, expected: _is_empty(value),
    "is_not_empty": lambda value, expected: not _is_empty(value),
}


def evaluate_condition(value: Any, operator: str, expected: Any = None) -> bool:
    """
    Test value against expected with a named operator

    Unknown operators evaluate to False.
    """
    test = OPERATORS.get(operator)
    if test is None:
        logger.warning(f"Unknown condition operator: {operator}")
        return False
    return test(value, expected)


def apply_condition(condition: MappingCondition, resolve: Callable[[str], Any]) -> Any:
    """
    Pick the condition's then/else value

    Args:
        condition: Conditional override
        resolve: Looks up a path in the current source item

    Returns:
        condition.then when the test passes, otherwise condition.else_
    """
    actual = resolve(condition.when)
    if evaluate_condition(actual, condition.operator, condition.value):
        return condition.then
    return condition.else_
