"""
Calculation expressions for `calculate` actions.

Grammar (a side-effect-free subset of Python arithmetic):

    expr     := expr (+ | - | * | / | % | **) expr
              | (+ | -) expr
              | ( expr )
              | number
              | field_ref
              | CONSTANT
              | FUNCTION ( expr [, expr ...] )

    field_ref := identifier | { any-field-id }
    CONSTANT  := PI | E
    FUNCTION  := sqrt | abs | ceil | floor | round | min | max | pow
               | log | log10 | exp

Examples:
    "price * quantity"
    "round({unit-price} * qty * 1.2, 2)"
    "max(0, budget - spent)"

Expressions are parsed once, at compile time, with the `ast` module and a
node whitelist; anything outside the grammar is an ExpressionParseError. Bare
identifiers that collide with a CONSTANT or FUNCTION name resolve to the
constant/function; use the brace form to reference such a field.

Evaluation never raises. Division by zero, an empty or non-numeric operand,
or a math domain error yield an ExpressionOutcome with value None and a
ReasonCode explaining why.
"""

from __future__ import annotations

import ast
import math
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from formlogic.core.results import ReasonCode
from formlogic.utils.values import is_empty_value, to_number


class ExpressionParseError(ValueError):
    """Expression is outside the calculation grammar."""


FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sqrt": math.sqrt,
    "abs": abs,
    "ceil": math.ceil,
    "floor": math.floor,
    "round": round,
    "min": min,
    "max": max,
    "pow": math.pow,
    "log": math.log,
    "log10": math.log10,
    "exp": math.exp,
}

CONSTANTS: Dict[str, float] = {
    "PI": math.pi,
    "E": math.e,
}

_BINARY_OPS: Dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[type, Callable[[float], float]] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_BRACED_REF = re.compile(r"\{([^{}]+)\}")
_PLACEHOLDER = "__ref{}__"


class _Unset(Exception):
    """Internal: stop evaluation, result is unset for `reason`."""

    def __init__(self, reason: ReasonCode, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class ExpressionOutcome:
    value: Optional[float]
    reason: ReasonCode = ReasonCode.OK
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason == ReasonCode.OK


@dataclass(frozen=True)
class CompiledExpression:
    """
    A parsed, validated calculation expression.

    Attributes:
        source: Original expression text.
        field_refs: Field ids the expression reads.
    """

    source: str
    field_refs: FrozenSet[str]
    _tree: ast.Expression = field(compare=False, repr=False)
    _aliases: Mapping[str, str] = field(compare=False, repr=False)

    def evaluate(
        self,
        values: Mapping[str, Any],
        decimal_places: Optional[int] = None,
    ) -> ExpressionOutcome:
        """
        Evaluate against current field values.

        Args:
            values: field id -> current value.
            decimal_places: Round the result; None leaves it unrounded.

        Returns:
            ExpressionOutcome; value is None whenever reason is not OK.
        """
        try:
            result = self._eval(self._tree.body, values)
        except _Unset as unset:
            return ExpressionOutcome(None, unset.reason, unset.message)
        except ZeroDivisionError:
            return ExpressionOutcome(
                None, ReasonCode.DIVISION_BY_ZERO, f"Division by zero in '{self.source}'"
            )
        except (ArithmeticError, ValueError, TypeError) as exc:
            return ExpressionOutcome(
                None, ReasonCode.CALCULATION_ERROR, f"Cannot evaluate '{self.source}': {exc}"
            )

        if isinstance(result, complex) or math.isnan(result) or math.isinf(result):
            return ExpressionOutcome(
                None, ReasonCode.CALCULATION_ERROR, f"'{self.source}' has no finite result"
            )
        if decimal_places is not None:
            result = round(result, decimal_places)
        if float(result).is_integer():
            result = int(result)
        return ExpressionOutcome(result)

    def _eval(self, node: ast.AST, values: Mapping[str, Any]) -> float:
        if isinstance(node, ast.Constant):
            return float(node.value)
        if isinstance(node, ast.Name):
            if node.id in CONSTANTS:
                return CONSTANTS[node.id]
            return self._resolve(self._aliases.get(node.id, node.id), values)
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand, values))
        if isinstance(node, ast.BinOp):
            left = self._eval(node.left, values)
            right = self._eval(node.right, values)
            return _BINARY_OPS[type(node.op)](left, right)
        if isinstance(node, ast.Call):
            args = [self._eval(arg, values) for arg in node.args]
            if node.func.id == "round" and len(args) == 2:
                args[1] = int(args[1])
            return float(FUNCTIONS[node.func.id](*args))
        # Unreachable: the tree was validated at parse time
        raise _Unset(ReasonCode.INTERNAL_ERROR, f"Unsupported node {type(node).__name__}")

    def _resolve(self, field_id: str, values: Mapping[str, Any]) -> float:
        raw = values.get(field_id)
        if is_empty_value(raw):
            raise _Unset(ReasonCode.EMPTY_OPERAND, f"Field '{field_id}' has no value")
        number = to_number(raw)
        if number is None:
            raise _Unset(ReasonCode.NOT_NUMERIC, f"Field '{field_id}' is not numeric: {raw!r}")
        return number


def parse_expression(source: Optional[str]) -> CompiledExpression:
    """
    Parse and validate a calculation expression.

    Raises:
        ExpressionParseError: If the text is empty or outside the grammar.
    """
    if source is None or not str(source).strip():
        raise ExpressionParseError("Expression is empty")

    aliases: Dict[str, str] = {}

    def _brace(match: "re.Match[str]") -> str:
        name = _PLACEHOLDER.format(len(aliases))
        aliases[name] = match.group(1).strip()
        return name

    text = _BRACED_REF.sub(_brace, str(source).strip())
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise ExpressionParseError(f"Invalid syntax in '{source}': {exc.msg}") from None

    call_targets = {id(node.func) for node in ast.walk(tree) if isinstance(node, ast.Call)}
    refs = set()
    for node in ast.walk(tree):
        _check_node(node, source)
        if not isinstance(node, ast.Name) or id(node) in call_targets or node.id in CONSTANTS:
            continue
        if node.id in FUNCTIONS:
            raise ExpressionParseError(f"Function '{node.id}' used without arguments in '{source}'")
        refs.add(aliases.get(node.id, node.id))

    return CompiledExpression(
        source=str(source),
        field_refs=frozenset(refs),
        _tree=tree,
        _aliases=dict(aliases),
    )


def _check_node(node: ast.AST, source: str) -> None:
    if isinstance(node, (ast.Expression, ast.Load)):
        return
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ExpressionParseError(f"Only numeric literals are allowed in '{source}'")
        return
    if isinstance(node, ast.BinOp):
        if type(node.op) not in _BINARY_OPS:
            raise ExpressionParseError(f"Operator {type(node.op).__name__} not allowed in '{source}'")
        return
    if isinstance(node, ast.UnaryOp):
        if type(node.op) not in _UNARY_OPS:
            raise ExpressionParseError(f"Operator {type(node.op).__name__} not allowed in '{source}'")
        return
    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise ExpressionParseError(f"Unknown function in '{source}'")
        if node.keywords:
            raise ExpressionParseError(f"Keyword arguments are not allowed in '{source}'")
        if not node.args:
            raise ExpressionParseError(f"{node.func.id}() needs arguments in '{source}'")
        return
    if isinstance(node, ast.Name):
        return
    if isinstance(node, (ast.operator, ast.unaryop)):
        return
    raise ExpressionParseError(f"{type(node).__name__} is not allowed in '{source}'")


__all__ = [
    "ExpressionParseError",
    "ExpressionOutcome",
    "CompiledExpression",
    "parse_expression",
    "FUNCTIONS",
    "CONSTANTS",
]
