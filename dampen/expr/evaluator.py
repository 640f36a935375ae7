"""
Evaluates binding expressions against a model.

Evaluation is pure: it only reads through the `ModelAccess` capability and
never mutates anything. Every failure is raised as an `EvalError` carrying the
span of the offending sub-expression; choosing a fallback value is left to the
caller.
"""

import math
from typing import Callable, Dict, List, Optional, Sequence

from ..config import INT_MAX, INT_MIN, SHARED_ROOT
from ..diagnostics import closest_match
from ..exceptions import EvalError, EvalErrorKind
from ..markup.classes import AttributeValue, Binding, Interpolated, InterpolationPart, LiteralPart, Static
from ..model import ModelAccess
from ..spans import Span
from .classes import (
    ARITHMETIC_OPERATORS,
    EQUALITY_OPERATORS,
    LOGICAL_OPERATORS,
    BinaryOp,
    BinaryOperator,
    Conditional,
    Expression,
    FieldAccess,
    Index,
    Literal,
    MethodCall,
    ModelRoot,
    UnaryOp,
    UnaryOperator,
)
from .methods import call_method
from .values import BindingValue, BoolValue, FloatValue, IntValue, ListValue, ObjectValue, StringValue, is_numeric, values_equal

ORDERING = {
    BinaryOperator.LT: lambda a, b: a < b,
    BinaryOperator.LE: lambda a, b: a <= b,
    BinaryOperator.GT: lambda a, b: a > b,
    BinaryOperator.GE: lambda a, b: a >= b,
}


def _truncating_div(a: int, b: int) -> int:
    """Integer division rounding toward zero (Python's `//` rounds toward negative infinity)."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def _truncating_mod(a: int, b: int) -> int:
    """Remainder matching `_truncating_div`: takes the sign of the dividend."""
    return a - b * _truncating_div(a, b)


INT_ARITHMETIC: Dict[BinaryOperator, Callable[[int, int], int]] = {
    BinaryOperator.ADD: lambda a, b: a + b,
    BinaryOperator.SUB: lambda a, b: a - b,
    BinaryOperator.MUL: lambda a, b: a * b,
    BinaryOperator.DIV: _truncating_div,
    BinaryOperator.MOD: _truncating_mod,
}

FLOAT_ARITHMETIC: Dict[BinaryOperator, Callable[[float, float], float]] = {
    BinaryOperator.ADD: lambda a, b: a + b,
    BinaryOperator.SUB: lambda a, b: a - b,
    BinaryOperator.MUL: lambda a, b: a * b,
    BinaryOperator.DIV: lambda a, b: a / b,
    BinaryOperator.MOD: math.fmod,
}


def _checked_int(value: int, op: str, span: Span) -> IntValue:
    if not INT_MIN <= value <= INT_MAX:
        raise EvalError(EvalErrorKind.INTEGER_OVERFLOW, span=span, op=op)
    return IntValue(value=value)


def _type_mismatch(span: Span, details: str) -> EvalError:
    return EvalError(EvalErrorKind.TYPE_MISMATCH, span=span, details=details)


class Evaluator:
    """
    Walks an expression tree and produces its value.

    `model` resolves paths rooted at the local model; `shared`, when given,
    resolves paths starting with `shared.`.
    """

    def __init__(self, model: ModelAccess, shared: Optional[ModelAccess] = None):
        self.model = model
        self.shared = shared
        self._dispatch = {
            Literal: self._eval_literal,
            FieldAccess: self._eval_field_access,
            Index: self._eval_index,
            MethodCall: self._eval_method_call,
            UnaryOp: self._eval_unary,
            BinaryOp: self._eval_binary,
            Conditional: self._eval_conditional,
        }

    def evaluate(self, node: Expression) -> BindingValue:
        handler = self._dispatch.get(type(node))
        if handler is None:
            raise TypeError(f"Cannot evaluate a node of type '{type(node).__name__}'.")
        return handler(node)

    # --- Leaves & Paths ---
    def _eval_literal(self, node: Literal) -> BindingValue:
        return node.value

    def _eval_field_access(self, node: FieldAccess) -> BindingValue:
        if isinstance(node.base, ModelRoot):
            if node.base.shared:
                return self._read_shared(node)
            return self._read_model(self.model, node.segments, node.span, display_prefix="")

        current = self.evaluate(node.base)
        for i, segment in enumerate(node.segments):
            if not isinstance(current, ObjectValue):
                raise _type_mismatch(node.span, f"Cannot read field '{segment}' of a value of type '{current.type_name}'.")
            value = current.get_field(segment)
            if value is None:
                path = ".".join(node.segments[: i + 1])
                raise EvalError(EvalErrorKind.UNKNOWN_FIELD, span=node.span, suggestion=closest_match(segment, current.entries), path=path)
            current = value
        return current

    def _read_shared(self, node: FieldAccess) -> BindingValue:
        if self.shared is None:
            # Widgets rendered without a shared context show shared values as empty text.
            return StringValue(value="")
        return self._read_model(self.shared, node.segments, node.span, display_prefix=f"{SHARED_ROOT}.")

    def _read_model(self, model: ModelAccess, segments: Sequence[str], span: Span, display_prefix: str) -> BindingValue:
        value = model.get_field(list(segments))
        if value is not None:
            return value
        suggestion = self._suggest_field(model, segments)
        raise EvalError(EvalErrorKind.UNKNOWN_FIELD, span=span, suggestion=suggestion, path=display_prefix + ".".join(segments))

    def _suggest_field(self, model: ModelAccess, segments: Sequence[str]) -> Optional[str]:
        """Suggests a sibling of the first segment of `segments` that does not resolve."""
        depth = 0
        parent = None
        while depth < len(segments) - 1:
            found = model.get_field(list(segments[: depth + 1]))
            if found is None:
                break
            parent = found
            depth += 1

        missing = segments[depth]
        if isinstance(parent, ObjectValue):
            return closest_match(missing, parent.entries)

        prefix = ".".join(segments[:depth])
        siblings = []
        for path in model.list_fields():
            head, _, name = path.rpartition(".")
            if head == prefix:
                siblings.append(name)
        return closest_match(missing, siblings)

    def _eval_index(self, node: Index) -> BindingValue:
        base = self.evaluate(node.base)
        index = self.evaluate(node.index)

        if isinstance(base, ListValue) and isinstance(index, IntValue):
            if not 0 <= index.value < len(base.items):
                raise EvalError(EvalErrorKind.INDEX_OUT_OF_RANGE, span=node.span, index=index.value, length=len(base.items))
            return base.items[index.value]

        if isinstance(base, ObjectValue) and isinstance(index, StringValue):
            value = base.get_field(index.value)
            if value is None:
                raise EvalError(EvalErrorKind.UNKNOWN_FIELD, span=node.span, suggestion=closest_match(index.value, base.entries), path=index.value)
            return value

        raise _type_mismatch(node.span, f"Cannot index a value of type '{base.type_name}' with a value of type '{index.type_name}'.")

    def _eval_method_call(self, node: MethodCall) -> BindingValue:
        receiver = self.evaluate(node.base)
        args: List[BindingValue] = [self.evaluate(arg) for arg in node.args]
        return call_method(receiver, node.method, args, node.span)

    # --- Operators ---
    def _eval_unary(self, node: UnaryOp) -> BindingValue:
        operand = self.evaluate(node.operand)
        if node.op == UnaryOperator.NOT:
            if not isinstance(operand, BoolValue):
                raise _type_mismatch(node.span, f"Operator '!' requires a bool, but got a {operand.type_name}.")
            return BoolValue(value=not operand.value)

        if isinstance(operand, IntValue):
            return _checked_int(-operand.value, "-", node.span)
        if isinstance(operand, FloatValue):
            return FloatValue(value=-operand.value)
        raise _type_mismatch(node.span, f"Operator '-' requires a number, but got a {operand.type_name}.")

    def _eval_binary(self, node: BinaryOp) -> BindingValue:
        if node.op in LOGICAL_OPERATORS:
            return self._eval_logical(node)

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if node.op in EQUALITY_OPERATORS:
            equal = values_equal(left, right)
            return BoolValue(value=equal if node.op == BinaryOperator.EQ else not equal)
        if node.op in ARITHMETIC_OPERATORS:
            return self._eval_arithmetic(node, left, right)
        return self._eval_ordering(node, left, right)

    def _eval_logical(self, node: BinaryOp) -> BindingValue:
        symbol = node.op.value
        left = self.evaluate(node.left)
        if not isinstance(left, BoolValue):
            raise _type_mismatch(node.left.span, f"Operator '{symbol}' requires bool operands, but got a {left.type_name}.")
        # Short-circuit: the right operand is only evaluated when it decides the result.
        if node.op == BinaryOperator.AND and not left.value:
            return left
        if node.op == BinaryOperator.OR and left.value:
            return left
        right = self.evaluate(node.right)
        if not isinstance(right, BoolValue):
            raise _type_mismatch(node.right.span, f"Operator '{symbol}' requires bool operands, but got a {right.type_name}.")
        return right

    def _eval_arithmetic(self, node: BinaryOp, left: BindingValue, right: BindingValue) -> BindingValue:
        symbol = node.op.value
        if isinstance(left, StringValue) or isinstance(right, StringValue):
            if node.op == BinaryOperator.ADD and isinstance(left, StringValue) and isinstance(right, StringValue):
                return StringValue(value=left.value + right.value)
            raise _type_mismatch(node.span, f"Operator '{symbol}' cannot combine a {left.type_name} with a {right.type_name}.")

        if not (is_numeric(left) and is_numeric(right)):
            raise _type_mismatch(node.span, f"Operator '{symbol}' requires numbers, but got a {left.type_name} and a {right.type_name}.")

        if node.op in (BinaryOperator.DIV, BinaryOperator.MOD) and right.value == 0:
            raise EvalError(EvalErrorKind.DIVISION_BY_ZERO, span=node.span, op=symbol)

        if isinstance(left, IntValue) and isinstance(right, IntValue):
            return _checked_int(INT_ARITHMETIC[node.op](left.value, right.value), symbol, node.span)
        return FloatValue(value=float(FLOAT_ARITHMETIC[node.op](float(left.value), float(right.value))))

    def _eval_ordering(self, node: BinaryOp, left: BindingValue, right: BindingValue) -> BindingValue:
        compare = ORDERING[node.op]
        if is_numeric(left) and is_numeric(right):
            return BoolValue(value=compare(left.value, right.value))
        if isinstance(left, StringValue) and isinstance(right, StringValue):
            return BoolValue(value=compare(left.value, right.value))
        raise _type_mismatch(node.span, f"Cannot compare a {left.type_name} with a {right.type_name} using '{node.op.value}'.")

    def _eval_conditional(self, node: Conditional) -> BindingValue:
        cond = self.evaluate(node.cond)
        if not isinstance(cond, BoolValue):
            raise _type_mismatch(node.cond.span, f"The condition must be a bool, but got a {cond.type_name}.")
        return self.evaluate(node.then_branch if cond.value else node.else_branch)


# --- Public Entry Points ---


def evaluate(node: Expression, model: ModelAccess, shared: Optional[ModelAccess] = None) -> BindingValue:
    """Evaluates one expression tree against `model`."""
    return Evaluator(model, shared).evaluate(node)


def evaluate_formatted(parts: Sequence[InterpolationPart], model: ModelAccess, shared: Optional[ModelAccess] = None) -> str:
    """Renders an interpolated attribute: literal parts verbatim, expressions by their display string."""
    evaluator = Evaluator(model, shared)
    out = []
    for part in parts:
        if isinstance(part, LiteralPart):
            out.append(part.text)
        else:
            out.append(evaluator.evaluate(part.expr).to_display_string())
    return "".join(out)


def resolve_attribute(value: AttributeValue, model: ModelAccess, shared: Optional[ModelAccess] = None) -> BindingValue:
    """Resolves any attribute value to a runtime value; static and interpolated attributes become strings."""
    if isinstance(value, Static):
        return StringValue(value=value.text)
    if isinstance(value, Binding):
        return evaluate(value.expr, model, shared)
    if isinstance(value, Interpolated):
        return StringValue(value=evaluate_formatted(value.parts, model, shared))
    raise TypeError(f"Cannot resolve an attribute value of type '{type(value).__name__}'.")
