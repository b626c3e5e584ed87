"""Tests for condition evaluation."""
from clinicflow.rules.conditions import (
    MISSING,
    evaluate_condition,
    evaluate_conditions,
    get_nested_value,
    match_conditions,
)
from clinicflow.rules.models import RuleCondition


def cond(field, operator, value=None, logical_operator=None):
    return RuleCondition(field=field, operator=operator, value=value, logical_operator=logical_operator)


def test_nested_value_resolution():
    data = {"patient": {"age": 70, "tags": ["vip", "new"]}, "empty": None}
    assert get_nested_value(data, "patient.age") == 70
    assert get_nested_value(data, "patient.tags.1") == "new"
    assert get_nested_value(data, "empty") is None
    assert get_nested_value(data, "patient.missing") is MISSING
    assert get_nested_value(data, "patient.age.value") is MISSING
    assert get_nested_value(data, "patient.tags.5") is MISSING


def test_equals_is_strict():
    data = {"flag": True, "count": 1, "name": "Cardiology"}
    assert evaluate_condition(cond("name", "equals", "Cardiology"), data)
    assert not evaluate_condition(cond("name", "equals", "cardiology"), data)
    assert not evaluate_condition(cond("flag", "equals", 1), data)
    assert not evaluate_condition(cond("count", "equals", True), data)
    assert not evaluate_condition(cond("count", "equals", "1"), data)
    assert evaluate_condition(cond("count", "equals", 1.0), data)


def test_not_equals_on_missing_field():
    assert evaluate_condition(cond("nope", "not_equals", "x"), {})
    assert not evaluate_condition(cond("nope", "equals", None), {})


def test_contains_is_case_insensitive():
    data = {"file": {"name": "CBC_Lab_Results.pdf"}}
    assert evaluate_condition(cond("file.name", "contains", "lab"), data)
    assert not evaluate_condition(cond("file.name", "not_contains", "LAB"), data)


def test_contains_with_missing_or_null_field():
    data = {"file": {"name": None}}
    assert not evaluate_condition(cond("file.name", "contains", "lab"), data)
    assert evaluate_condition(cond("file.name", "not_contains", "lab"), data)
    assert not evaluate_condition(cond("file.size", "contains", "1"), data)
    assert evaluate_condition(cond("file.size", "not_contains", "1"), data)


def test_numeric_comparisons_coerce():
    data = {"vitals": {"systolic": "150", "blank": "", "text": "high"}}
    assert evaluate_condition(cond("vitals.systolic", "greater_than", 140), data)
    assert evaluate_condition(cond("vitals.systolic", "less_than", "200"), data)
    assert not evaluate_condition(cond("vitals.blank", "less_than", 10), data)
    assert not evaluate_condition(cond("vitals.blank", "greater_than", -10), data)
    assert not evaluate_condition(cond("vitals.text", "greater_than", 0), data)
    assert not evaluate_condition(cond("vitals.missing", "less_than", 1000), data)


def test_between_is_inclusive():
    data = {"patient": {"age": 65}}
    assert evaluate_condition(cond("patient.age", "between", [65, 70]), data)
    assert evaluate_condition(cond("patient.age", "between", [60, 65]), data)
    assert not evaluate_condition(cond("patient.age", "between", [66, 70]), data)
    assert not evaluate_condition(cond("patient.age", "between", [60, 64]), data)
    assert not evaluate_condition(cond("patient.age", "between", [60]), data)
    assert not evaluate_condition(cond("patient.age", "between", 65), data)


def test_in_list_uses_strict_membership():
    data = {"appointment": {"department": "Cardiology", "room": 3}}
    assert evaluate_condition(cond("appointment.department", "in_list", ["Cardiology", "Neurology"]), data)
    assert not evaluate_condition(cond("appointment.room", "in_list", ["3"]), data)
    assert not evaluate_condition(cond("appointment.department", "in_list", "Cardiology"), data)


def test_empty_checks():
    data = {"a": None, "b": "", "c": [], "d": {}, "e": 0, "f": False, "g": "x"}
    for field in ("a", "b", "c", "d", "missing"):
        assert evaluate_condition(cond(field, "is_empty"), data), field
    for field in ("e", "f", "g"):
        assert evaluate_condition(cond(field, "is_not_empty"), data), field


def test_blank_field_is_false():
    assert not evaluate_condition(cond("  ", "is_empty"), {})


def test_empty_condition_list_qualifies():
    assert evaluate_conditions([], {}) is True


def test_fold_is_left_to_right_without_precedence():
    # (false AND false) OR true -> true
    conditions = [
        cond("a", "equals", 1),
        cond("b", "equals", 1, logical_operator="AND"),
        cond("c", "equals", 1, logical_operator="OR"),
    ]
    assert evaluate_conditions(conditions, {"a": 0, "b": 0, "c": 1})

    # (true OR false) AND false -> false
    conditions = [
        cond("a", "equals", 1),
        cond("b", "equals", 1, logical_operator="OR"),
        cond("c", "equals", 1, logical_operator="AND"),
    ]
    assert not evaluate_conditions(conditions, {"a": 1, "b": 0, "c": 0})


def test_first_logical_operator_is_ignored():
    conditions = [cond("a", "equals", 1, logical_operator="OR")]
    assert not evaluate_conditions(conditions, {"a": 2})


def test_match_conditions_reports_each():
    conditions = [cond("a", "equals", 1), cond("b", "equals", 2, logical_operator="OR")]
    assert match_conditions(conditions, {"a": 1, "b": 3}) == [True, False]
