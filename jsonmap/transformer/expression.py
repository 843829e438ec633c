"""
Expression Sandbox - Evaluates single custom expressions over one value

Expressions are parsed with Python's ast in "eval" mode and interpreted
node by node against a whitelist:
- literals, list/tuple/dict displays and f-strings
- the single name `value`
- arithmetic, comparison, boolean and conditional expressions
- subscripts and slices
- a fixed set of builtins and string/list/dict methods

Anything else (attribute access, imports, lambdas, comprehensions, other
names) is rejected before evaluation.
"""

import ast
import logging
import operator
import re
from functools import lru_cache
from typing import Any, Callable, Dict

from jsonmap.exceptions import ExpressionError

logger = logging.getLogger(__name__)

BOUND_NAME = "value"
MAX_EXPRESSION_LENGTH = 1000
MAX_POWER_EXPONENT = 100
MAX_SEQUENCE_LENGTH = 10000

SAFE_BUILTINS: Dict[str, Callable] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "round": round,
    "abs": abs,
    "min": min,
    "max": max,
    "sum": sum,
    "sorted": sorted,
}

SAFE_METHODS = {
    str: {
        "upper", "lower", "strip", "lstrip", "rstrip", "title", "capitalize",
        "replace", "split", "join", "startswith", "endswith", "find", "count",
        "zfill", "ljust", "rjust", "center", "isdigit", "isalpha", "isalnum",
    },
    list: {"index", "count"},
    dict: {"get", "keys", "values", "items"},
}

PADDING_METHODS = {"zfill", "ljust", "rjust", "center"}

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

COMPARE_OPERATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


class _Validator(ast.NodeVisitor):
    """Rejects any node outside the whitelist"""

    ALLOWED = (
        ast.Expression, ast.Constant, ast.Name, ast.Load,
        ast.BinOp, ast.UnaryOp, ast.BoolOp, ast.Compare, ast.IfExp,
        ast.Subscript, ast.Slice, ast.List, ast.Tuple, ast.Dict,
        ast.Call, ast.Attribute, ast.keyword,
        ast.JoinedStr, ast.FormattedValue,
        ast.And, ast.Or,
    ) + tuple(BINARY_OPERATORS) + tuple(UNARY_OPERATORS) + tuple(COMPARE_OPERATORS)

    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, self.ALLOWED) and type(node).__name__ != "Index":
            raise ExpressionError(f"Syntax not allowed: {type(node).__name__}")
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id != BOUND_NAME and node.id not in SAFE_BUILTINS:
            raise ExpressionError(f"Unknown name: {node.id}")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        # Attributes only appear as method calls, checked in visit_Call
        raise ExpressionError(f"Attribute access not allowed: {node.attr}")

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        if isinstance(func, ast.Name):
            if func.id not in SAFE_BUILTINS:
                raise ExpressionError(f"Function not allowed: {func.id}")
        elif isinstance(func, ast.Attribute):
            allowed = set().union(*SAFE_METHODS.values())
            if func.attr not in allowed or func.attr.startswith("_"):
                raise ExpressionError(f"Method not allowed: {func.attr}")
            self.visit(func.value)
        else:
            raise ExpressionError("Only named functions and methods may be called")

        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise ExpressionError("Argument unpacking not allowed")
            self.visit(arg)
        for keyword in node.keywords:
            if keyword.arg is None:
                raise ExpressionError("Keyword unpacking not allowed")
            self.visit(keyword.value)


@lru_cache(maxsize=256)
def compile_expression(expression: str) -> ast.Expression:
    """
    Parse and whitelist-check an expression

    Raises:
        ExpressionError: If the expression is empty, too long, not valid
            Python expression syntax, or uses disallowed syntax
    """
    if not expression or not expression.strip():
        raise ExpressionError("Expression is required")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError(f"Expression longer than {MAX_EXPRESSION_LENGTH} characters")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression: {e.msg}") from e

    _Validator().visit(tree)
    return tree


def _check_length(length: int) -> None:
    if length > MAX_SEQUENCE_LENGTH:
        raise ExpressionError(f"Result longer than {MAX_SEQUENCE_LENGTH} items")


def _check_size(result: Any) -> Any:
    if isinstance(result, (str, list, tuple)):
        _check_length(len(result))
    return result


def _check_format_spec(spec: str) -> None:
    # Widths and precisions are the only numbers in a format spec
    for digits in re.findall(r"\d+", spec):
        _check_length(int(digits))


def _check_method_call(receiver: Any, method_name: str, args: list, kwargs: dict) -> None:
    """Reject string calls whose result would be too long, before making them"""
    if not isinstance(receiver, str):
        return
    if method_name in PADDING_METHODS:
        width = args[0] if args else kwargs.get("width")
        if isinstance(width, int):
            _check_length(width)
    elif method_name == "join" and args and isinstance(args[0], (list, tuple)):
        parts = args[0]
        size = sum(len(part) for part in parts if isinstance(part, str))
        _check_length(size + len(receiver) * max(len(parts) - 1, 0))
    elif method_name == "replace" and len(args) >= 2 and isinstance(args[0], str) and isinstance(args[1], str):
        old, new = args[0], args[1]
        count = receiver.count(old) if old else len(receiver) + 1
        if len(args) > 2 and isinstance(args[2], int) and args[2] >= 0:
            count = min(count, args[2])
        _check_length(len(receiver) + count * (len(new) - len(old)))


def _binary(op: ast.operator, left: Any, right: Any) -> Any:
    if isinstance(op, ast.Pow) and isinstance(right, (int, float)) and abs(right) > MAX_POWER_EXPONENT:
        raise ExpressionError(f"Exponent larger than {MAX_POWER_EXPONENT}")
    if isinstance(op, ast.Mult):
        for seq, count in ((left, right), (right, left)):
            if isinstance(seq, (str, list, tuple)) and isinstance(count, int):
                if len(seq) * count > MAX_SEQUENCE_LENGTH:
                    raise ExpressionError(f"Result longer than {MAX_SEQUENCE_LENGTH} items")
    return _check_size(BINARY_OPERATORS[type(op)](left, right))


class _Interpreter:
    """Walks a validated tree with `value` bound"""

    def __init__(self, value: Any):
        self.value = value

    def eval(self, node: ast.AST) -> Any:
        method = getattr(self, f"eval_{type(node).__name__}", None)
        if method is None:
            raise ExpressionError(f"Syntax not allowed: {type(node).__name__}")
        return method(node)

    def eval_Expression(self, node: ast.Expression) -> Any:
        return self.eval(node.body)

    def eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def eval_Name(self, node: ast.Name) -> Any:
        if node.id == BOUND_NAME:
            return self.value
        raise ExpressionError(f"{node.id} can only be called")

    def eval_Index(self, node: Any) -> Any:
        return self.eval(node.value)

    def eval_BinOp(self, node: ast.BinOp) -> Any:
        return _binary(node.op, self.eval(node.left), self.eval(node.right))

    def eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return UNARY_OPERATORS[type(node.op)](self.eval(node.operand))

    def eval_BoolOp(self, node: ast.BoolOp) -> Any:
        result = None
        for operand in node.values:
            result = self.eval(operand)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def eval_Compare(self, node: ast.Compare) -> bool:
        left = self.eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.eval(comparator)
            if not COMPARE_OPERATORS[type(op)](left, right):
                return False
            left = right
        return True

    def eval_IfExp(self, node: ast.IfExp) -> Any:
        return self.eval(node.body) if self.eval(node.test) else self.eval(node.orelse)

    def eval_Subscript(self, node: ast.Subscript) -> Any:
        return self.eval(node.value)[self.eval(node.slice)]

    def eval_Slice(self, node: ast.Slice) -> slice:
        def bound(part):
            return None if part is None else self.eval(part)
        return slice(bound(node.lower), bound(node.upper), bound(node.step))

    def eval_List(self, node: ast.List) -> list:
        return [self.eval(element) for element in node.elts]

    def eval_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.eval(element) for element in node.elts)

    def eval_Dict(self, node: ast.Dict) -> dict:
        if any(key is None for key in node.keys):
            raise ExpressionError("Dict unpacking not allowed")
        return {self.eval(key): self.eval(val) for key, val in zip(node.keys, node.values)}

    def eval_JoinedStr(self, node: ast.JoinedStr) -> str:
        return _check_size("".join(str(self.eval(part)) for part in node.values))

    def eval_FormattedValue(self, node: ast.FormattedValue) -> str:
        result = self.eval(node.value)
        if node.format_spec is not None:
            spec = self.eval(node.format_spec)
            _check_format_spec(spec)
            return format(result, spec)
        return str(result)

    def eval_Call(self, node: ast.Call) -> Any:
        args = [self.eval(arg) for arg in node.args]
        kwargs = {keyword.arg: self.eval(keyword.value) for keyword in node.keywords}

        if isinstance(node.func, ast.Name):
            return _check_size(SAFE_BUILTINS[node.func.id](*args, **kwargs))

        receiver = self.eval(node.func.value)
        method_name = node.func.attr
        allowed = SAFE_METHODS.get(type(receiver), set())
        if method_name not in allowed:
            raise ExpressionError(f"{type(receiver).__name__}.{method_name} is not allowed")
        _check_method_call(receiver, method_name, args, kwargs)
        result = getattr(receiver, method_name)(*args, **kwargs)
        if method_name in ("keys", "values", "items"):
            result = list(result)
        return _check_size(result)


def evaluate_expression(expression: str, value: Any) -> Any:
    """
    Evaluate expression with `value` bound

    Example:
        evaluate_expression("value * 2", 21) == 42

    Raises:
        ExpressionError: If the expression is rejected or evaluation fails
    """
    tree = compile_expression(expression)
    try:
        return _Interpreter(value).eval(tree)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Expression failed: {e}") from e
