"""
Admin screen registry.

A Screen bundles the table columns, filters and form fields of one record type; the
generic admin views turn it into Table/Form/Modal configurations for the dynamic engines.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.bizadmin.dynamic.schema import (
    FieldOption,
    FilterField,
    FormConfig,
    FormField,
    ModalConfig,
    TableActions,
    TableColumn,
    TableConfig,
)


def choice_options(values: Iterable[str]) -> tuple[FieldOption, ...]:
    return tuple(FieldOption(label=v.replace("-", " ").title(), value=v) for v in values)


ACTIVE_OPTIONS = (FieldOption("Active", "true"), FieldOption("Inactive", "false"))


def ref_select(
    name: str,
    label: str,
    endpoint: str,
    *,
    label_key: str = "name",
    required: bool = False,
    multiple: bool = False,
    description: str | None = None,
) -> FormField:
    """Select whose options come from an API list endpoint."""
    return FormField(
        name=name,
        label=label,
        type="multiselect" if multiple else "select",
        required=required,
        options_endpoint=endpoint,
        option_label_key=label_key,
        description=description,
    )


@dataclass(frozen=True)
class Screen:
    key: str
    title: str
    singular: str
    endpoint: str
    columns: tuple[TableColumn, ...]
    fields: tuple[FormField, ...]
    edit_fields: tuple[FormField, ...] | None = None
    view_fields: tuple[FormField, ...] | None = None
    filters: tuple[FilterField, ...] = ()
    description: str | None = None
    toggle_active: bool = False
    initial_sort: tuple[str, str] | None = None
    page_size: int = 10

    @property
    def detail_endpoint(self) -> str:
        return f"{self.endpoint}/detailes"

    def permission(self, action: str) -> str:
        return f"{self.key}.{action}"

    def table_config(self, actions: TableActions, **overrides: Any) -> TableConfig:
        kwargs: dict[str, Any] = dict(
            title=self.title,
            description=self.description,
            endpoint=self.endpoint,
            columns=self.columns,
            filters=self.filters,
            actions=actions,
            page_size=self.page_size,
            initial_sort=self.initial_sort,
            delete_endpoint=self.detail_endpoint,
            add_text=f"Add {self.singular}",
        )
        kwargs.update(overrides)
        return TableConfig(**kwargs)

    def form_config(self, **overrides: Any) -> FormConfig:
        kwargs: dict[str, Any] = dict(
            title=f"New {self.singular}",
            fields=self.fields,
            endpoint=self.endpoint,
            method="POST",
            submit_text=f"Create {self.singular}",
        )
        kwargs.update(overrides)
        return FormConfig(**kwargs)

    def modal_config(self, kind: str, **overrides: Any) -> ModalConfig:
        if kind == "view":
            kwargs: dict[str, Any] = dict(
                title=f"{self.singular} details",
                fields=self.view_fields or self.edit_fields or self.fields,
                cancel_text="Close",
            )
        elif kind == "edit":
            kwargs = dict(title=f"Edit {self.singular}", fields=self.edit_fields or self.fields, confirm_text="Save changes")
        elif kind == "delete":
            kwargs = dict(
                title=f"Delete {self.singular}",
                custom_content=f"Are you sure you want to delete this {self.singular.lower()}? This action cannot be undone.",
                confirm_text="Delete",
            )
        else:
            raise ValueError(f"Unknown modal kind: {kind}")
        kwargs.update(type=kind, endpoint=self.detail_endpoint)
        kwargs.update(overrides)
        return ModalConfig(**kwargs)


SCREENS: dict[str, Screen] = {}


def register(screen: Screen) -> Screen:
    SCREENS[screen.key] = screen
    return screen


def get_screen(key: str) -> Screen | None:
    return SCREENS.get(key)


# Module screens register themselves on import.
from app.bizadmin.modules.customers import screens as _customers  # noqa: E402,F401
from app.bizadmin.modules.projects import screens as _projects  # noqa: E402,F401
from app.bizadmin.modules.contracts import screens as _contracts  # noqa: E402,F401
from app.bizadmin.modules.services import screens as _services  # noqa: E402,F401
from app.bizadmin.modules.tasks import screens as _tasks  # noqa: E402,F401
from app.bizadmin.modules.teams import screens as _teams  # noqa: E402,F401
from app.bizadmin.modules.transactions import screens as _transactions  # noqa: E402,F401
from app.bizadmin.modules.users import screens as _users  # noqa: E402,F401
