"""
Declarative descriptors consumed by the form, table and modal engines.

Screens build these once per request; the engines never mutate them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

FIELD_TYPES = frozenset(
    {
        "text",
        "email",
        "password",
        "number",
        "tel",
        "textarea",
        "select",
        "date",
        "checkbox",
        "radio",
        "multiselect",
        "file",
        "switch",
        "hidden",
    }
)

RULE_TYPES = frozenset({"required", "minLength", "maxLength", "min", "max", "pattern", "email", "custom"})

DEPENDENCY_OPERATORS = frozenset({"eq", "neq", "gt", "lt", "contains"})

COLUMN_TYPES = frozenset({"text", "number", "date", "email", "phone", "status", "boolean", "reference", "custom"})

FILTER_TYPES = frozenset({"text", "select", "number", "date", "numberRange", "dateRange"})

MODAL_TYPES = frozenset({"view", "edit", "delete", "custom"})

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

Validator = Callable[[Any, dict[str, Any]], bool]


@dataclass(frozen=True)
class FieldOption:
    label: str
    value: Any
    disabled: bool = False


@dataclass(frozen=True)
class ValidationRule:
    type: str
    message: str
    value: Any = None
    validator: Validator | None = None

    def __post_init__(self) -> None:
        if self.type not in RULE_TYPES:
            raise ValueError(f"Unknown validation rule: {self.type}")


def required(message: str, validator: Validator | None = None) -> ValidationRule:
    return ValidationRule("required", message, validator=validator)


def min_length(n: int, message: str) -> ValidationRule:
    return ValidationRule("minLength", message, n)


def max_length(n: int, message: str) -> ValidationRule:
    return ValidationRule("maxLength", message, n)


def minimum(n: float, message: str) -> ValidationRule:
    return ValidationRule("min", message, n)


def maximum(n: float, message: str) -> ValidationRule:
    return ValidationRule("max", message, n)


def pattern(regex: str, message: str) -> ValidationRule:
    return ValidationRule("pattern", message, regex)


def email(message: str) -> ValidationRule:
    return ValidationRule("email", message)


def custom(validator: Validator, message: str) -> ValidationRule:
    return ValidationRule("custom", message, validator=validator)


@dataclass(frozen=True)
class DependsOn:
    field: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.operator not in DEPENDENCY_OPERATORS:
            raise ValueError(f"Unknown dependency operator: {self.operator}")


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    type: str = "text"
    placeholder: str | None = None
    rows: int = 3
    options: tuple[FieldOption, ...] = ()
    validation: tuple[ValidationRule, ...] = ()
    depends_on: DependsOn | None = None
    disabled: bool = False
    read_only: bool = False
    default: Any = None
    accept: str | None = None
    multiple: bool = False
    required: bool = False
    description: str | None = None
    # option lists loaded from the API: value = item["_id"], label = item[option_label_key]
    options_endpoint: str | None = None
    option_label_key: str = "name"
    # read-only renderer used by view modals: (value, record) -> str
    render: Callable[[Any, dict[str, Any]], str] | None = None

    def __post_init__(self) -> None:
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unknown field type: {self.type}")

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        """Declared rules, with `required=True` expanded into a leading required rule."""
        if self.required and not any(r.type == "required" for r in self.validation):
            return (required(f"{self.label} is required"),) + self.validation
        return self.validation

    @property
    def is_required(self) -> bool:
        return any(r.type == "required" for r in self.rules)


@dataclass(frozen=True)
class FormConfig:
    fields: tuple[FormField, ...]
    endpoint: str
    title: str | None = None
    subtitle: str | None = None
    method: str = "POST"
    submit_text: str = "Submit"
    cancel_text: str = "Cancel"
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[str], None] | None = None
    reset_after_submit: bool = True
    enc_type: str = "application/json"
    headers: dict[str, str] = field(default_factory=dict)
    # rewrites the JSON body right before it is sent
    transform: Callable[[dict[str, Any]], dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        if self.method not in HTTP_METHODS:
            raise ValueError(f"Unsupported method: {self.method}")


@dataclass(frozen=True)
class TableColumn:
    key: str
    label: str
    type: str = "text"
    sortable: bool = True
    render: Callable[[Any, dict[str, Any]], str] | None = None

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            raise ValueError(f"Unknown column type: {self.type}")


@dataclass(frozen=True)
class FilterField:
    key: str
    label: str
    type: str = "text"
    placeholder: str | None = None
    options: tuple[FieldOption, ...] = ()

    def __post_init__(self) -> None:
        if self.type not in FILTER_TYPES:
            raise ValueError(f"Unknown filter type: {self.type}")


@dataclass(frozen=True)
class RowAction:
    key: str
    label: str
    # opaque to the engine; the admin views pass URL builders
    handler: Callable[[dict[str, Any]], Any] | None = None
    condition: Callable[[dict[str, Any]], bool] | None = None
    css: str = ""
    method: str = "GET"


@dataclass(frozen=True)
class TableActions:
    view: RowAction | None = None
    edit: RowAction | None = None
    delete: RowAction | None = None
    activate: RowAction | None = None
    custom: tuple[RowAction, ...] = ()

    def all(self) -> list[RowAction]:
        builtin = [a for a in (self.view, self.edit, self.delete, self.activate) if a is not None]
        return builtin + list(self.custom)


@dataclass(frozen=True)
class TableConfig:
    title: str
    endpoint: str
    columns: tuple[TableColumn, ...]
    description: str | None = None
    filters: tuple[FilterField, ...] = ()
    actions: TableActions = field(default_factory=TableActions)
    headers: dict[str, str] = field(default_factory=dict)
    page_size: int = 10
    # page/limit/filters go to the endpoint instead of being applied to the fetched list
    server_side: bool = False
    initial_sort: tuple[str, str] | None = None
    add_url: str | None = None
    delete_endpoint: str | None = None
    add_text: str = "Add"


@dataclass(frozen=True)
class ModalConfig:
    title: str
    type: str
    endpoint: str | None = None
    method: str | None = None
    fields: tuple[FormField, ...] = ()
    size: str = "md"
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[str], None] | None = None
    on_close: Callable[[], None] | None = None
    custom_content: str | None = None
    confirm_text: str = "Confirm"
    cancel_text: str = "Cancel"

    def __post_init__(self) -> None:
        if self.type not in MODAL_TYPES:
            raise ValueError(f"Unknown modal type: {self.type}")
        if self.method is not None and self.method not in HTTP_METHODS:
            raise ValueError(f"Unsupported method: {self.method}")
