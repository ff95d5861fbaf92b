import pytest

from app.bizadmin.dynamic.schema import (
    DependsOn,
    FormField,
    ValidationRule,
    custom,
    email,
    max_length,
    maximum,
    min_length,
    minimum,
    pattern,
    required,
)
from app.bizadmin.dynamic.validation import is_empty, is_visible, validate_field, validate_values


def test_is_empty():
    assert is_empty(None)
    assert is_empty("")
    assert is_empty([])
    assert not is_empty(0)
    assert not is_empty(False)
    assert not is_empty(" ")


@pytest.mark.parametrize(
    "operator,target,current,expected",
    [
        ("eq", "approved", "approved", True),
        ("eq", "approved", "pending", False),
        ("neq", "", "5", True),
        ("neq", "", "", False),
        ("gt", 10, 11, True),
        ("gt", 10, "11", False),
        ("lt", 10, 9.5, True),
        ("contains", "a", ["a", "b"], True),
        ("contains", "a", "abc", False),
    ],
)
def test_dependency_operators(operator, target, current, expected):
    f = FormField("child", "Child", depends_on=DependsOn("parent", operator, target))
    assert is_visible(f, {"parent": current}) is expected


def test_dependency_on_missing_field_hides():
    f = FormField("child", "Child", depends_on=DependsOn("parent", "neq", "x"))
    assert not is_visible(f, {})


def test_unknown_operator_rejected():
    with pytest.raises(ValueError):
        DependsOn("parent", "between", 1)


def test_unknown_rule_rejected():
    with pytest.raises(ValueError):
        ValidationRule("luhn", "bad card")


def test_required_flag_expands_into_first_rule():
    f = FormField("name", "Name", required=True, validation=(min_length(3, "Too short"),))
    assert validate_field(f, "", {}) == "Name is required"
    assert validate_field(f, "ab", {}) == "Too short"
    assert validate_field(f, "abc", {}) is None


def test_first_failing_rule_wins():
    f = FormField(
        "code",
        "Code",
        validation=(
            min_length(4, "At least 4"),
            pattern(r"^[A-Z]+$", "Uppercase only"),
            max_length(6, "At most 6"),
        ),
    )
    assert validate_field(f, "ab", {}) == "At least 4"
    assert validate_field(f, "abcd", {}) == "Uppercase only"
    assert validate_field(f, "ABCDEFG", {}) == "At most 6"


def test_optional_rules_skip_empty_values():
    f = FormField("email", "Email", validation=(email("Bad email"), min_length(5, "Short")))
    assert validate_field(f, "", {}) is None
    assert validate_field(f, "nope", {}) == "Bad email"
    assert validate_field(f, "a@b.co", {}) is None


def test_number_bounds_only_apply_to_numbers():
    f = FormField("qty", "Qty", "number", validation=(minimum(1, "Min 1"), maximum(10, "Max 10")))
    assert validate_field(f, 0, {}) == "Min 1"
    assert validate_field(f, 11, {}) == "Max 10"
    assert validate_field(f, 5, {}) is None
    assert validate_field(f, "abc", {}) is None


def test_custom_rule_sees_all_values():
    f = FormField("confirm", "Confirm", validation=(custom(lambda v, values: v == values.get("password"), "Mismatch"),))
    assert validate_field(f, "x", {"password": "y"}) == "Mismatch"
    assert validate_field(f, "y", {"password": "y"}) is None


def test_required_rule_with_validator():
    f = FormField("terms", "Terms", "checkbox", validation=(required("Accept the terms", lambda v, values: v is True),))
    assert validate_field(f, False, {}) == "Accept the terms"
    assert validate_field(f, True, {}) is None


def test_hidden_fields_are_not_validated():
    fields = (
        FormField("status", "Status"),
        FormField("reason", "Reason", required=True, depends_on=DependsOn("status", "eq", "rejected")),
    )
    assert validate_values(fields, {"status": "approved", "reason": ""}) == {}
    assert validate_values(fields, {"status": "rejected", "reason": ""}) == {"reason": "Reason is required"}
