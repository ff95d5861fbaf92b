from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from app.bizadmin.dynamic.schema import FormField, ValidationRule

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_MISSING = object()


def is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, (list, tuple)) and len(value) == 0


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def is_visible(field: FormField, values: dict[str, Any]) -> bool:
    """Evaluate the field's dependency predicate against the current values."""
    dep = field.depends_on
    if dep is None:
        return True
    current = values.get(dep.field, _MISSING)
    if current is _MISSING:
        return False
    if dep.operator == "neq":
        return current != dep.value
    if dep.operator == "gt":
        return _is_number(current) and _is_number(dep.value) and current > dep.value
    if dep.operator == "lt":
        return _is_number(current) and _is_number(dep.value) and current < dep.value
    if dep.operator == "contains":
        return isinstance(current, (list, tuple)) and isinstance(dep.value, str) and dep.value in current
    return current == dep.value


def _rule_fails(rule: ValidationRule, value: Any, values: dict[str, Any]) -> bool:
    if rule.type == "minLength":
        return isinstance(value, str) and len(value) < rule.value
    if rule.type == "maxLength":
        return isinstance(value, str) and len(value) > rule.value
    if rule.type == "pattern":
        return isinstance(value, str) and re.search(rule.value, value) is None
    if rule.type == "email":
        return isinstance(value, str) and _EMAIL_RE.match(value) is None
    if rule.type == "min":
        return _is_number(value) and value < rule.value
    if rule.type == "max":
        return _is_number(value) and value > rule.value
    if rule.type == "custom":
        return rule.validator is not None and not rule.validator(value, values)
    return False


def validate_field(field: FormField, value: Any, values: dict[str, Any]) -> str | None:
    """
    Run the field's rules in declaration order; the first failing rule's message wins.
    Rules other than `required` never fire on an empty value.
    """
    for rule in field.rules:
        if rule.type == "required":
            if is_empty(value) or (rule.validator is not None and not rule.validator(value, values)):
                return rule.message
            continue
        if is_empty(value):
            continue
        if _rule_fails(rule, value, values):
            return rule.message
    return None


def validate_values(fields: Iterable[FormField], values: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field in fields:
        if not is_visible(field, values):
            continue
        message = validate_field(field, values.get(field.name), values)
        if message:
            errors[field.name] = message
    return errors
