"""Condition evaluation over event payloads.

Conditions are folded strictly left-to-right: each condition combines with
the running result of everything before it using its own logical operator
(AND when unset). There is no precedence or grouping, so ``A AND B OR C``
evaluates as ``(A AND B) OR C``. Rule authors rely on this, keep it.
"""
import math
import structlog
from typing import Any, Sequence
from .models import RuleCondition, ConditionOperator, LogicalOperator

log = structlog.get_logger()


class _Missing:
    """Marker for a path that does not resolve (distinct from a null value)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def get_nested_value(data: Any, path: str) -> Any:
    """
    Resolve a dotted path against nested dicts/lists.

    Args:
        data: Event payload
        path: Dotted path (e.g. "patient.age" or "items.0.name")

    Returns:
        The value found, or MISSING if any segment does not resolve
    """
    current = data
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.lstrip("-").isdigit():
            try:
                current = current[int(key)]
            except IndexError:
                return MISSING
        else:
            return MISSING
    return current


def to_text(value: Any) -> str:
    """String form used by contains/not_contains and template rendering."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> float | None:
    """Numeric coercion; None when the value cannot be coerced."""
    if value is None or value is MISSING:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (booleans never equal numbers)."""
    if left is MISSING or right is MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def is_empty(value: Any) -> bool:
    """Missing, None, "" and empty collections are empty; 0 and False are not."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def evaluate_condition(condition: RuleCondition, data: Any) -> bool:
    """
    Evaluate one condition against the event payload.

    Malformed fields and values that cannot be compared evaluate to False.
    """
    if not isinstance(condition.field, str) or not condition.field.strip():
        log.warning("condition.malformed_field", condition_id=condition.id, field=condition.field)
        return False

    field_value = get_nested_value(data, condition.field.strip())
    operator = condition.operator
    target = condition.value

    try:
        if operator == ConditionOperator.EQUALS:
            return strict_equals(field_value, target)
        elif operator == ConditionOperator.NOT_EQUALS:
            return not strict_equals(field_value, target)
        elif operator == ConditionOperator.CONTAINS:
            if field_value is MISSING or field_value is None:
                return False
            return to_text(target).lower() in to_text(field_value).lower()
        elif operator == ConditionOperator.NOT_CONTAINS:
            if field_value is MISSING or field_value is None:
                return True
            return to_text(target).lower() not in to_text(field_value).lower()
        elif operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
            left = to_number(field_value)
            right = to_number(target)
            if left is None or right is None:
                return False
            if operator == ConditionOperator.GREATER_THAN:
                return left > right
            return left < right
        elif operator == ConditionOperator.BETWEEN:
            if not isinstance(target, (list, tuple)) or len(target) != 2:
                return False
            number = to_number(field_value)
            low, high = to_number(target[0]), to_number(target[1])
            if number is None or low is None or high is None:
                return False
            return low <= number <= high
        elif operator == ConditionOperator.IN_LIST:
            if not isinstance(target, (list, tuple)):
                return False
            return any(strict_equals(field_value, item) for item in target)
        elif operator == ConditionOperator.IS_EMPTY:
            return is_empty(field_value)
        elif operator == ConditionOperator.IS_NOT_EMPTY:
            return not is_empty(field_value)
    except (TypeError, ValueError) as e:
        log.debug("condition.comparison_failed", condition_id=condition.id, error=str(e))
        return False

    return False


def evaluate_conditions(conditions: Sequence[RuleCondition], data: Any) -> bool:
    """
    Fold a rule's conditions left-to-right into a single result.

    Args:
        conditions: Ordered conditions of one rule
        data: Event payload

    Returns:
        True if the rule qualifies (always True for an empty list)
    """
    if not conditions:
        return True

    result = evaluate_condition(conditions[0], data)
    for condition in conditions[1:]:
        value = evaluate_condition(condition, data)
        if condition.logical_operator == LogicalOperator.OR:
            result = result or value
        else:
            result = result and value
    return result


def match_conditions(conditions: Sequence[RuleCondition], data: Any) -> list[bool]:
    """Individual truth value of each condition (used for dry runs)."""
    return [evaluate_condition(condition, data) for condition in conditions]
