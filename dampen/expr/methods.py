"""
Signatures for the methods that may be called on a value inside a binding,
e.g. `{items.len()}` or `{name.trim().to_upper()}`.

Every entry maps a receiver type name to the function implementing the method
for that receiver. The argument types are checked before the function runs, so
implementations can assume well-typed arguments.
"""

import math
from typing import List

from ..exceptions import EvalError, EvalErrorKind
from ..spans import Span
from .values import BindingValue, BoolValue, FloatValue, IntValue, ListValue, StringValue, values_equal


def _round_half_away_from_zero(x: float) -> float:
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _float_op(op):
    """Applies `op` to a float receiver; integer receivers are already whole and pass through."""

    def impl(receiver, args):
        if isinstance(receiver, IntValue):
            return receiver
        if not math.isfinite(receiver.value):
            return receiver
        return FloatValue(value=float(op(receiver.value)))

    return impl


def _contains_in_list(receiver: ListValue, args: List[BindingValue]) -> BindingValue:
    return BoolValue(value=any(values_equal(item, args[0]) for item in receiver.items))


def _to_string(receiver, args):
    return StringValue(value=receiver.to_display_string())


_upper = {"string": lambda r, args: StringValue(value=r.value.upper())}
_lower = {"string": lambda r, args: StringValue(value=r.value.lower())}


SIGNATURES = {
    # --- Size & Membership ---
    "len": {
        "arg_types": [],
        "receivers": {
            "string": lambda r, args: IntValue(value=len(r.value)),
            "list": lambda r, args: IntValue(value=len(r.items)),
            "object": lambda r, args: IntValue(value=len(r.entries)),
        },
    },
    "is_empty": {
        "arg_types": [],
        "receivers": {
            "string": lambda r, args: BoolValue(value=r.value == ""),
            "list": lambda r, args: BoolValue(value=len(r.items) == 0),
            "object": lambda r, args: BoolValue(value=len(r.entries) == 0),
        },
    },
    "contains": {
        "arg_types": ["any"],
        "receivers": {
            "string": lambda r, args: BoolValue(value=isinstance(args[0], StringValue) and args[0].value in r.value),
            "list": _contains_in_list,
            "object": lambda r, args: BoolValue(value=isinstance(args[0], StringValue) and args[0].value in r.entries),
        },
    },
    # --- String Operations ---
    "to_upper": {"arg_types": [], "receivers": _upper},
    "to_uppercase": {"arg_types": [], "receivers": _upper},
    "to_lower": {"arg_types": [], "receivers": _lower},
    "to_lowercase": {"arg_types": [], "receivers": _lower},
    "trim": {"arg_types": [], "receivers": {"string": lambda r, args: StringValue(value=r.value.strip())}},
    "starts_with": {"arg_types": ["string"], "receivers": {"string": lambda r, args: BoolValue(value=r.value.startswith(args[0].value))}},
    "ends_with": {"arg_types": ["string"], "receivers": {"string": lambda r, args: BoolValue(value=r.value.endswith(args[0].value))}},
    # --- Conversions ---
    "to_string": {
        "arg_types": [],
        "receivers": {"none": _to_string, "bool": _to_string, "int": _to_string, "float": _to_string, "string": _to_string},
    },
    # --- Numeric Rounding ---
    "round": {"arg_types": [], "receivers": {"int": _float_op(_round_half_away_from_zero), "float": _float_op(_round_half_away_from_zero)}},
    "floor": {"arg_types": [], "receivers": {"int": _float_op(math.floor), "float": _float_op(math.floor)}},
    "ceil": {"arg_types": [], "receivers": {"int": _float_op(math.ceil), "float": _float_op(math.ceil)}},
}


def call_method(receiver: BindingValue, method: str, args: List[BindingValue], span: Span) -> BindingValue:
    """Dispatches `receiver.method(args)`, raising EvalError for anything outside the allow-list."""
    signature = SIGNATURES.get(method)
    if signature is None or receiver.type_name not in signature["receivers"]:
        raise EvalError(EvalErrorKind.UNKNOWN_METHOD, span=span, method=method, type_name=receiver.type_name)

    expected = signature["arg_types"]
    if len(args) != len(expected):
        raise EvalError(
            EvalErrorKind.TYPE_MISMATCH,
            span=span,
            details=f"Method '{method}' expects {len(expected)} argument(s), but got {len(args)}.",
        )
    for i, (arg, expected_type) in enumerate(zip(args, expected)):
        if expected_type != "any" and arg.type_name != expected_type:
            raise EvalError(
                EvalErrorKind.TYPE_MISMATCH,
                span=span,
                details=f"Argument {i + 1} of '{method}' must be a {expected_type}, but got a {arg.type_name}.",
            )

    return signature["receivers"][receiver.type_name](receiver, args)
