import pytest

from dampen.exceptions import EvalError, EvalErrorKind
from dampen.expr.evaluator import Evaluator, evaluate, evaluate_formatted, resolve_attribute
from dampen.expr.parser import parse_expression
from dampen.expr.values import *
from dampen.markup.attributes import classify_attribute
from dampen.model import PythonModel


def run(text, model, shared=None):
    return evaluate(parse_expression(text), model, shared)


@pytest.mark.parametrize(
    "text, expected",
    [
        # --- Literals & Paths ---
        pytest.param("42", IntValue(value=42), id="int_literal"),
        pytest.param("'hi'", StringValue(value="hi"), id="string_literal"),
        pytest.param("null", NoneValue(), id="null_literal"),
        pytest.param("count", IntValue(value=42), id="field"),
        pytest.param("user.name", StringValue(value="Alice"), id="nested_field"),
        pytest.param("nothing", NoneValue(), id="none_field"),
        pytest.param("items[1]", StringValue(value="b"), id="list_index"),
        pytest.param("user['age']", IntValue(value=30), id="object_index"),
        pytest.param("user.tags[0]", StringValue(value="admin"), id="index_on_nested_path"),
        pytest.param("(user).name", StringValue(value="Alice"), id="parenthesized_path"),
        # --- Arithmetic ---
        pytest.param("1 + 2 * 3", IntValue(value=7), id="precedence"),
        pytest.param("7 / 2", IntValue(value=3), id="int_division_truncates"),
        pytest.param("-7 / 2", IntValue(value=-3), id="int_division_truncates_toward_zero"),
        pytest.param("-7 % 2", IntValue(value=-1), id="remainder_takes_dividend_sign"),
        pytest.param("7 % -2", IntValue(value=1), id="remainder_negative_divisor"),
        pytest.param("7.0 / 2", FloatValue(value=3.5), id="float_division"),
        pytest.param("count + price", FloatValue(value=51.5), id="mixed_int_float"),
        pytest.param("5.5 % 2", FloatValue(value=1.5), id="float_remainder"),
        pytest.param("'a' + 'b'", StringValue(value="ab"), id="string_concat"),
        pytest.param("-count", IntValue(value=-42), id="negate_int"),
        pytest.param("-price", FloatValue(value=-9.5), id="negate_float"),
        pytest.param("-1.5.floor()", FloatValue(value=-1.0), id="negate_after_method_on_literal"),
        pytest.param("-9223372036854775808", IntValue(value=-9223372036854775808), id="int_min_literal"),
        # --- Comparison & Equality ---
        pytest.param("a > b", BoolValue(value=True), id="greater"),
        pytest.param("a <= b", BoolValue(value=False), id="less_equal"),
        pytest.param("1 == 1.0", BoolValue(value=True), id="int_float_equal"),
        pytest.param("2 < 2.5", BoolValue(value=True), id="int_float_ordering"),
        pytest.param("'apple' < 'banana'", BoolValue(value=True), id="string_ordering"),
        pytest.param("1 == '1'", BoolValue(value=False), id="mismatched_types_not_equal"),
        pytest.param("1 != '1'", BoolValue(value=True), id="mismatched_types_different"),
        pytest.param("nothing == null", BoolValue(value=True), id="none_equals_null"),
        pytest.param("items == items", BoolValue(value=True), id="list_equality"),
        # --- Logic & Conditionals ---
        pytest.param("!enabled", BoolValue(value=False), id="not"),
        pytest.param("enabled && a > b", BoolValue(value=True), id="and"),
        pytest.param("false || enabled", BoolValue(value=True), id="or"),
        pytest.param("false && (1 / 0 > 0)", BoolValue(value=False), id="and_short_circuits"),
        pytest.param("true || missing", BoolValue(value=True), id="or_short_circuits"),
        pytest.param("a > b ? 'yes' : 'no'", StringValue(value="yes"), id="conditional_then"),
        pytest.param("a < b ? 'yes' : 'no'", StringValue(value="no"), id="conditional_else"),
        pytest.param("true ? 1 : missing", IntValue(value=1), id="untaken_branch_not_evaluated"),
        pytest.param("if enabled then 'on' else 'off'", StringValue(value="on"), id="keyword_conditional"),
        # --- Methods ---
        pytest.param("items.len()", IntValue(value=3), id="method_len"),
        pytest.param("name.to_upper()", StringValue(value="ALICE"), id="method_chain_target"),
        pytest.param("items.contains('b')", BoolValue(value=True), id="method_with_argument"),
    ],
)
def test_evaluates(model, text, expected):
    assert run(text, model) == expected


@pytest.mark.parametrize(
    "text, kind",
    [
        pytest.param("missing", EvalErrorKind.UNKNOWN_FIELD, id="unknown_root_field"),
        pytest.param("user.email", EvalErrorKind.UNKNOWN_FIELD, id="unknown_nested_field"),
        pytest.param("rows[0].email", EvalErrorKind.UNKNOWN_FIELD, id="unknown_field_on_expression"),
        pytest.param("user['email']", EvalErrorKind.UNKNOWN_FIELD, id="unknown_object_key"),
        pytest.param("items[3]", EvalErrorKind.INDEX_OUT_OF_RANGE, id="index_too_large"),
        pytest.param("items[-1]", EvalErrorKind.INDEX_OUT_OF_RANGE, id="negative_index"),
        pytest.param("items['a']", EvalErrorKind.TYPE_MISMATCH, id="list_indexed_by_string"),
        pytest.param("count[0]", EvalErrorKind.TYPE_MISMATCH, id="index_on_int"),
        pytest.param("items[0].x", EvalErrorKind.TYPE_MISMATCH, id="field_on_string"),
        pytest.param("count.frobnicate()", EvalErrorKind.UNKNOWN_METHOD, id="unknown_method"),
        pytest.param("count.len()", EvalErrorKind.UNKNOWN_METHOD, id="method_on_wrong_type"),
        pytest.param("!count", EvalErrorKind.TYPE_MISMATCH, id="not_on_int"),
        pytest.param("-name", EvalErrorKind.TYPE_MISMATCH, id="negate_string"),
        pytest.param("-3.to_string()", EvalErrorKind.TYPE_MISMATCH, id="negate_method_result_string"),
        pytest.param("'a' + 1", EvalErrorKind.TYPE_MISMATCH, id="string_plus_int"),
        pytest.param("1 + 'a'", EvalErrorKind.TYPE_MISMATCH, id="int_plus_string"),
        pytest.param("'a' * 2", EvalErrorKind.TYPE_MISMATCH, id="string_times_int"),
        pytest.param("true + 1", EvalErrorKind.TYPE_MISMATCH, id="bool_plus_int"),
        pytest.param("1 < 'a'", EvalErrorKind.TYPE_MISMATCH, id="ordering_across_types"),
        pytest.param("count && true", EvalErrorKind.TYPE_MISMATCH, id="and_on_int"),
        pytest.param("true && count", EvalErrorKind.TYPE_MISMATCH, id="and_right_operand_on_int"),
        pytest.param("count ? 1 : 2", EvalErrorKind.TYPE_MISMATCH, id="non_bool_condition"),
        pytest.param("1 / 0", EvalErrorKind.DIVISION_BY_ZERO, id="int_division_by_zero"),
        pytest.param("1 % 0", EvalErrorKind.DIVISION_BY_ZERO, id="int_remainder_by_zero"),
        pytest.param("1.5 / 0.0", EvalErrorKind.DIVISION_BY_ZERO, id="float_division_by_zero"),
        pytest.param("9223372036854775807 + 1", EvalErrorKind.INTEGER_OVERFLOW, id="add_overflow"),
        pytest.param("-9223372036854775808 / -1", EvalErrorKind.INTEGER_OVERFLOW, id="division_overflow"),
        pytest.param("-(-9223372036854775808)", EvalErrorKind.INTEGER_OVERFLOW, id="negation_overflow"),
    ],
)
def test_evaluation_errors(model, text, kind):
    with pytest.raises(EvalError) as excinfo:
        run(text, model)

    assert excinfo.value.kind == kind
    assert excinfo.value.span is not None


@pytest.mark.parametrize(
    "text, suggestion",
    [
        pytest.param("user.nme", "name", id="nested_typo"),
        pytest.param("cont", "count", id="root_typo"),
        pytest.param("rows[0].titel", "title", id="typo_on_expression_base"),
        pytest.param("user.zzzzzzz", None, id="nothing_close_enough"),
    ],
)
def test_unknown_field_suggestions(model, text, suggestion):
    with pytest.raises(EvalError) as excinfo:
        run(text, model)

    assert excinfo.value.kind == EvalErrorKind.UNKNOWN_FIELD
    assert excinfo.value.suggestion == suggestion


def test_unknown_field_message_names_full_path(model):
    with pytest.raises(EvalError) as excinfo:
        run("user.nme", model)

    assert excinfo.value.message == "Field 'user.nme' not found."
    assert "did you mean 'name'?" in excinfo.value.render()


def test_error_span_points_at_failing_subexpression(model):
    expr = classify_attribute("Total: {count + missing}").parts[1].expr
    with pytest.raises(EvalError) as excinfo:
        evaluate(expr, model)

    assert (excinfo.value.span.start_col, excinfo.value.span.end_col) == (17, 24)


# --- Shared Context ---


def test_shared_field(model, shared_model):
    assert run("shared.theme", model, shared_model) == StringValue(value="dark")


def test_shared_and_local_fields_together(model, shared_model):
    assert run("count + shared.user_count", model, shared_model) == IntValue(value=45)


def test_shared_without_context_is_empty_string(model):
    assert run("shared.theme", model) == StringValue(value="")


def test_unknown_shared_field(model, shared_model):
    with pytest.raises(EvalError) as excinfo:
        run("shared.them", model, shared_model)

    assert excinfo.value.message == "Field 'shared.them' not found."
    assert excinfo.value.suggestion == "theme"


# --- Interpolation & Attribute Resolution ---


def test_evaluate_formatted(model):
    value = classify_attribute("Count: {count}, price {price}, {enabled} {nothing}|")
    assert evaluate_formatted(value.parts, model) == "Count: 42, price 9.5, true |"


def test_evaluate_formatted_display_strings():
    model = PythonModel({"whole": 3.0, "items": [1, 2], "obj": {"a": 1}})
    value = classify_attribute("{whole} {items} {obj}")
    assert evaluate_formatted(value.parts, model) == "3 [2 items] {Object with 1 fields}"


@pytest.mark.parametrize(
    "raw, expected",
    [
        pytest.param("plain", StringValue(value="plain"), id="static"),
        pytest.param("{count * 2}", IntValue(value=84), id="binding_keeps_type"),
        pytest.param("n={count}", StringValue(value="n=42"), id="interpolated_is_string"),
    ],
)
def test_resolve_attribute(model, raw, expected):
    assert resolve_attribute(classify_attribute(raw), model) == expected


def test_evaluation_does_not_mutate_model():
    data = {"items": [1, 2, 3], "user": {"name": "Bob"}}
    model = PythonModel(data)
    evaluator = Evaluator(model)
    for text in ["items.len()", "user.name.to_upper()", "items[0] + 1"]:
        evaluator.evaluate(parse_expression(text))

    assert data == {"items": [1, 2, 3], "user": {"name": "Bob"}}


def test_works_with_any_model_access_implementation():
    class CountingModel:
        def __init__(self):
            self.reads = []

        def get_field(self, path):
            self.reads.append(tuple(path))
            return IntValue(value=10) if list(path) == ["x"] else None

        def list_fields(self):
            return ["x"]

    model = CountingModel()
    assert run("x * 2", model) == IntValue(value=20)
    assert model.reads == [("x",)]
