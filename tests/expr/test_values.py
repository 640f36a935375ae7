import pydantic
import pytest

from dampen.expr.values import *
from dampen.expr.values import _Value, to_binding_value, values_equal


@pytest.mark.parametrize(
    "value, expected",
    [
        pytest.param(NoneValue(), "", id="none"),
        pytest.param(BoolValue(value=True), "true", id="bool_true"),
        pytest.param(BoolValue(value=False), "false", id="bool_false"),
        pytest.param(IntValue(value=-12), "-12", id="int"),
        pytest.param(FloatValue(value=3.0), "3", id="integral_float"),
        pytest.param(FloatValue(value=0.25), "0.25", id="fractional_float"),
        pytest.param(FloatValue(value=float("inf")), "inf", id="infinity"),
        pytest.param(StringValue(value="text"), "text", id="string"),
        pytest.param(ListValue(items=(IntValue(value=1), IntValue(value=2))), "[2 items]", id="list"),
        pytest.param(ObjectValue(entries={"a": NoneValue()}), "{Object with 1 fields}", id="object"),
    ],
)
def test_display_string(value, expected):
    assert value.to_display_string() == expected


@pytest.mark.parametrize(
    "obj, expected",
    [
        pytest.param(None, NoneValue(), id="none"),
        pytest.param(True, BoolValue(value=True), id="bool_before_int"),
        pytest.param(3, IntValue(value=3), id="int"),
        pytest.param(1.5, FloatValue(value=1.5), id="float"),
        pytest.param("s", StringValue(value="s"), id="string"),
        pytest.param([1, "a"], ListValue(items=(IntValue(value=1), StringValue(value="a"))), id="list"),
        pytest.param({"k": [True]}, ObjectValue(entries={"k": ListValue(items=(BoolValue(value=True),))}), id="nested_mapping"),
    ],
)
def test_to_binding_value(obj, expected):
    assert to_binding_value(obj) == expected


@pytest.mark.parametrize(
    "obj",
    [
        pytest.param(None, id="none"),
        pytest.param(-3, id="int"),
        pytest.param("text", id="string"),
        pytest.param({"user": {"name": "Ada", "tags": ["a", "b"], "score": 1.5, "active": False}}, id="nested"),
    ],
)
def test_to_python_inverts_to_binding_value(obj):
    assert to_binding_value(obj).to_python() == obj


def test_value_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        _Value()


def test_to_binding_value_rejects_unknown_types():
    with pytest.raises(TypeError):
        to_binding_value(object())


def test_int_value_is_limited_to_64_bits():
    with pytest.raises(pydantic.ValidationError):
        IntValue(value=2**63)


def test_values_are_immutable():
    value = IntValue(value=1)
    with pytest.raises(pydantic.ValidationError):
        value.value = 2


@pytest.mark.parametrize(
    "a, b, expected",
    [
        pytest.param(1, 1.0, True, id="int_float_numeric"),
        pytest.param(1, True, False, id="int_bool_differ"),
        pytest.param("a", "a", True, id="same_string"),
        pytest.param([1, 2], [1.0, 2], True, id="lists_compare_numerically"),
        pytest.param([1], [1, 2], False, id="lists_of_different_length"),
        pytest.param({"a": 1}, {"a": 1.0}, True, id="objects_compare_numerically"),
        pytest.param({"a": 1}, {"b": 1}, False, id="objects_with_different_keys"),
        pytest.param(None, None, True, id="none"),
    ],
)
def test_values_equal(a, b, expected):
    assert values_equal(to_binding_value(a), to_binding_value(b)) is expected
