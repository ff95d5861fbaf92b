from __future__ import annotations

import logging
from typing import Any

from werkzeug.datastructures import MultiDict

from app.bizadmin.dynamic.client import ApiClient, ApiRequestError
from app.bizadmin.dynamic.form import DynamicForm, default_for, load_field_options
from app.bizadmin.dynamic.formatting import display_value
from app.bizadmin.dynamic.schema import FieldOption, FormConfig, FormField, ModalConfig
from app.bizadmin.dynamic.validation import is_visible

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load item"
SAVE_ERROR = "An error occurred"


def _ref_id(v: Any) -> Any:
    return v.get("_id") if isinstance(v, dict) else v


def record_to_values(fields: tuple[FormField, ...], record: dict[str, Any]) -> dict[str, Any]:
    """Editable values for a fetched record: populated references collapse to ids, dates to YYYY-MM-DD."""
    values: dict[str, Any] = {}
    for f in fields:
        v = record.get(f.name)
        if v is None or f.type in ("password", "file"):
            values[f.name] = default_for(f)
        elif f.type == "multiselect":
            values[f.name] = [str(_ref_id(x)) for x in v] if isinstance(v, list) else []
        elif f.type == "date":
            values[f.name] = str(v)[:10]
        elif f.type in ("select", "radio"):
            values[f.name] = str(_ref_id(v))
        else:
            values[f.name] = v
    return values


class DynamicModal:
    def __init__(self, config: ModalConfig):
        self.config = config
        self.is_open = False
        self.item_id: str | None = None
        self.data: dict[str, Any] = {}
        self.loading = False
        self.error: str | None = None
        self.result: Any = None
        self.options: dict[str, list[FieldOption]] = {f.name: list(f.options) for f in config.fields}
        self.form = self._new_form({})

    def _new_form(self, values: dict[str, Any]) -> DynamicForm:
        cfg = FormConfig(
            fields=self.config.fields,
            endpoint=self.config.endpoint or "",
            method=self.method,
            reset_after_submit=False,
        )
        return DynamicForm(cfg, initial_values=values)

    @property
    def is_delete(self) -> bool:
        return self.config.type == "delete"

    @property
    def method(self) -> str:
        if self.config.method:
            return self.config.method
        return "DELETE" if self.is_delete else "PATCH"

    @property
    def values(self) -> dict[str, Any]:
        return self.form.values

    @property
    def errors(self) -> dict[str, str]:
        return self.form.errors

    def open(self, item_id: str | None = None, initial_data: dict[str, Any] | None = None) -> None:
        self.is_open = True
        self.item_id = str(item_id) if item_id is not None else None
        self.data = dict(initial_data or {})
        self.error = None
        self.result = None
        self.form = self._new_form(record_to_values(self.config.fields, self.data) if self.data else {})

    def load(self, client: ApiClient) -> bool:
        """Fetch option lists and, except for delete modals, the record itself."""
        if self.config.fields:
            self.options.update(load_field_options(client, self.config.fields))
        if self.is_delete or not self.config.endpoint or not self.item_id:
            return True

        self.loading = True
        self.error = None
        try:
            resp = client.get(self.config.endpoint, headers={"id": self.item_id})
        except ApiRequestError as e:
            logger.warning("Loading %s %s failed: %s", self.config.endpoint, self.item_id, e)
            self.error = LOAD_ERROR
            return False
        finally:
            self.loading = False

        if not resp.ok or not isinstance(resp.data, dict):
            self.error = resp.error_message(LOAD_ERROR)
            return False
        self.data = resp.data
        self.form = self._new_form(record_to_values(self.config.fields, self.data))
        return True

    def visible_fields(self) -> list[FormField]:
        if self.is_delete:
            return []
        return [f for f in self.config.fields if is_visible(f, self.form.values)]

    def set_value(self, name: str, value: Any) -> None:
        self.form.set_value(name, value)

    def load_form(self, form: MultiDict, files: MultiDict | None = None) -> None:
        self.form.load(form, files)

    def validate(self) -> bool:
        if self.config.type != "edit":
            return True
        return self.form.validate()

    def confirm(self, client: ApiClient) -> bool:
        if not self.item_id or not self.config.endpoint:
            return False
        if not self.validate():
            return False

        body = None if self.is_delete else dict(self.form.values)
        self.loading = True
        self.error = None
        try:
            resp = client.request(self.method, self.config.endpoint, headers={"id": self.item_id}, json_body=body)
        except ApiRequestError as e:
            logger.warning("%s %s failed: %s", self.method, self.config.endpoint, e)
            resp = None
        finally:
            self.loading = False

        if resp is None or not resp.ok:
            message = resp.error_message(SAVE_ERROR) if resp is not None else SAVE_ERROR
            self.error = message
            if self.config.on_error:
                self.config.on_error(message)
            return False

        self.result = resp.body
        if self.config.on_success:
            self.config.on_success(resp.body)
        self.close()
        return True

    def close(self) -> bool:
        if self.loading:
            return False
        self.is_open = False
        if self.config.on_close:
            self.config.on_close()
        return True

    def display_value(self, field: FormField) -> str:
        value = self.data.get(field.name)
        if field.render is not None:
            return field.render(value, self.data)
        return display_value(value, field.type, self.options.get(field.name, ()))
