"""
End-to-end checks: markup text in, rendered attribute values out.
"""

import pytest

from dampen.exceptions import EvalError, EvalErrorKind
from dampen.expr.evaluator import evaluate, resolve_attribute
from dampen.expr.parser import parse_expression
from dampen.expr.values import *
from dampen.markup.attributes import classify_attribute
from dampen.markup.classes import Binding, Interpolated, Static
from dampen.markup.parser import parse_document
from dampen.model import PythonModel

from tests.utils.assertion_helper import assert_asts_equal
from tests.utils.factory_helpers import *


@pytest.mark.parametrize(
    "raw",
    [
        pytest.param("plain text", id="words"),
        pytest.param("50%", id="symbols"),
        pytest.param("a } b", id="stray_brace"),
        pytest.param("", id="empty"),
    ],
)
def test_text_without_braces_is_static_and_unchanged(raw):
    value = classify_attribute(raw)
    assert isinstance(value, Static)
    assert value.text == raw


def test_single_binding_and_interpolation_shapes():
    assert_asts_equal(classify_attribute("{count}"), get_binding(get_field("count")))
    assert_asts_equal(classify_attribute("Count: {count}"), get_interpolated("Count: ", get_field("count")))


def test_arithmetic_binding(model):
    value = classify_attribute("{1 + 2 * 3}")
    assert isinstance(value, Binding)
    assert evaluate(value.expr, model) == IntValue(value=7)


@pytest.mark.parametrize(
    "data, expected",
    [
        pytest.param({"a": 5, "b": 3}, "yes", id="condition_true"),
        pytest.param({"a": 1, "b": 3}, "no", id="condition_false"),
    ],
)
def test_conditional_binding(data, expected):
    value = classify_attribute("{a > b ? 'yes' : 'no'}")
    assert resolve_attribute(value, PythonModel(data)) == StringValue(value=expected)


def test_untaken_branch_is_never_evaluated():
    value = classify_attribute("{a > b ? 'yes' : missing.field}")
    assert resolve_attribute(value, PythonModel({"a": 5, "b": 3})) == StringValue(value="yes")


def test_nested_field_and_suggestion():
    model = PythonModel({"user": {"name": "Alice"}})
    assert resolve_attribute(classify_attribute("{user.name}"), model) == StringValue(value="Alice")

    with pytest.raises(EvalError) as excinfo:
        resolve_attribute(classify_attribute("{user.nme}"), model)
    assert excinfo.value.kind == EvalErrorKind.UNKNOWN_FIELD
    assert excinfo.value.suggestion == "name"


def test_short_circuit_avoids_division_by_zero(model):
    value = classify_attribute("{false && (1/0 > 0)}")
    assert resolve_attribute(value, model) == BoolValue(value=False)


def test_parsing_twice_yields_equal_trees():
    source = "<column><text value='Count: {count}' size='{count > 10 ? 24 : 16}'/><button on_click='inc:{count + 1}'/></column>"
    assert parse_document(source).roots == parse_document(source).roots


def test_one_malformed_binding_does_not_hide_valid_widgets():
    document = parse_document("<column><text value='{count +}'/><text value='{count}'/></column>")

    assert len(document.diagnostics) == 1
    assert len(document.root.children) == 2
    assert "value" not in document.root.children[0].attributes
    assert "value" in document.root.children[1].attributes


@pytest.mark.parametrize(
    "literal, expected",
    [
        pytest.param("0", IntValue(value=0), id="zero"),
        pytest.param("9223372036854775807", IntValue(value=9223372036854775807), id="int_max"),
        pytest.param("-9223372036854775808", IntValue(value=-9223372036854775808), id="int_min"),
        pytest.param("0.5", FloatValue(value=0.5), id="float"),
        pytest.param("-2.25", FloatValue(value=-2.25), id="negative_float"),
        pytest.param("1e-05", FloatValue(value=1e-05), id="float_repr_exponent"),
        pytest.param("'quote \\' inside'", StringValue(value="quote ' inside"), id="string_with_escape"),
        pytest.param('""', StringValue(value=""), id="empty_string"),
        pytest.param("true", BoolValue(value=True), id="true"),
        pytest.param("false", BoolValue(value=False), id="false"),
        pytest.param("null", NoneValue(), id="null"),
    ],
)
def test_literals_round_trip_through_parse_and_evaluate(model, literal, expected):
    expr = parse_expression(literal)
    assert expr.value == expected
    assert evaluate(expr, model) == expected


def test_render_loop_with_caller_fallback():
    document = parse_document(
        "<column>"
        "<text value='Hello, {user.name}!'/>"
        "<text value='{user.missing}'/>"
        "<text value='{items.len()} items'/>"
        "</column>"
    )
    model = PythonModel({"user": {"name": "Ada"}, "items": [1, 2]})

    rendered = []
    for node in document.root.children:
        try:
            rendered.append(resolve_attribute(node.attributes["value"], model).to_display_string())
        except EvalError:
            rendered.append("<error>")

    assert rendered == ["Hello, Ada!", "<error>", "2 items"]
    assert isinstance(document.root.children[2].attributes["value"], Interpolated)
