from __future__ import annotations

from datetime import date, datetime
from typing import Any

from app.bizadmin.dynamic.schema import FieldOption

EMPTY = "-"


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1]
        try:
            return datetime.fromisoformat(s).date()
        except ValueError:
            return None
    return None


def format_date(value: Any) -> str:
    d = _as_date(value)
    return d.isoformat() if d else EMPTY


def format_reference(value: Any) -> str:
    """Populated reference → `name (email)`; a bare id is shown as-is."""
    if isinstance(value, dict):
        name = value.get("name") or value.get("title") or value.get("_id")
        if not name:
            return EMPTY
        if value.get("email"):
            return f"{name} ({value['email']})"
        return str(name)
    if value is None or value == "":
        return EMPTY
    return str(value)


def format_number(value: Any) -> str:
    if value is None or value == "":
        return EMPTY
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def format_cell(value: Any, column_type: str = "text") -> str:
    if column_type == "date":
        return format_date(value)
    if column_type == "status":
        return "Active" if value == "active" or value is True else "Inactive"
    if column_type == "boolean":
        return "Yes" if value else "No"
    if column_type == "reference":
        return format_reference(value)
    if column_type == "number":
        return format_number(value)
    if isinstance(value, dict):
        return format_reference(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(format_reference(v) for v in value) or EMPTY
    if value is None or value == "":
        return EMPTY
    return str(value)


def option_label(options: list[FieldOption] | tuple[FieldOption, ...], value: Any) -> str | None:
    for opt in options:
        if str(opt.value) == str(value):
            return opt.label
    return None


def display_value(value: Any, field_type: str, options: list[FieldOption] | tuple[FieldOption, ...] = ()) -> str:
    """Read-only rendering of a field value (view modals)."""
    if field_type in ("select", "radio"):
        if isinstance(value, dict):
            return format_reference(value)
        label = option_label(options, value)
        if label is not None:
            return label
    if field_type == "multiselect" and isinstance(value, (list, tuple)):
        labels = []
        for v in value:
            if isinstance(v, dict):
                labels.append(format_reference(v))
            else:
                labels.append(option_label(options, v) or str(v))
        return ", ".join(labels) or EMPTY
    if field_type in ("checkbox", "switch"):
        return "Yes" if value else "No"
    if field_type == "date":
        return format_date(value)
    if field_type == "number":
        return format_number(value)
    if field_type == "password":
        return "••••••" if value else EMPTY
    return format_cell(value)
