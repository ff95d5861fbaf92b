from __future__ import annotations

import logging
from typing import Any

from werkzeug.datastructures import FileStorage, MultiDict

from app.bizadmin.dynamic.client import ApiClient, ApiRequestError
from app.bizadmin.dynamic.schema import FieldOption, FormConfig, FormField
from app.bizadmin.dynamic.validation import is_visible, validate_values
from app.bizadmin.utils import parse_number

logger = logging.getLogger(__name__)

GENERIC_SUBMIT_ERROR = "Form submission failed"

_TRUTHY = ("1", "true", "on", "yes")


def default_for(field: FormField) -> Any:
    if field.default is not None:
        return field.default
    if field.type in ("checkbox", "switch"):
        return False
    if field.type == "multiselect":
        return []
    if field.type == "file":
        return None
    return ""


def _is_file(v: Any) -> bool:
    return isinstance(v, FileStorage) or (
        isinstance(v, (list, tuple)) and any(isinstance(x, FileStorage) for x in v)
    )


class DynamicForm:
    """
    Holds the values and per-field errors of one form and submits it to the configured endpoint.
    """

    def __init__(self, config: FormConfig, initial_values: dict[str, Any] | None = None):
        self.config = config
        self.initial_values = dict(initial_values or {})
        self.options: dict[str, list[FieldOption]] = {f.name: list(f.options) for f in config.fields}
        self.values: dict[str, Any] = self._starting_values()
        self.errors: dict[str, str] = {}
        self.is_submitting = False
        self.submit_error: str | None = None
        self.result: Any = None

    @property
    def fields(self) -> tuple[FormField, ...]:
        return self.config.fields

    def field(self, name: str) -> FormField | None:
        for f in self.config.fields:
            if f.name == name:
                return f
        return None

    def default_values(self) -> dict[str, Any]:
        return {f.name: default_for(f) for f in self.config.fields}

    def _starting_values(self) -> dict[str, Any]:
        if self.initial_values:
            return dict(self.initial_values)
        return self.default_values()

    # ---------- values ----------
    def coerce(self, field: FormField, value: Any) -> Any:
        if field.type == "number":
            if value is None or value == "":
                return ""
            try:
                return parse_number(value)
            except ValueError:
                return value
        if field.type in ("checkbox", "switch"):
            if isinstance(value, str):
                return value.strip().lower() in _TRUTHY
            return bool(value)
        if field.type == "multiselect":
            if value is None or value == "":
                return []
            if isinstance(value, (list, tuple)):
                return [str(v) for v in value]
            return [str(value)]
        if field.type == "file":
            return value
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    def set_value(self, name: str, value: Any) -> None:
        field = self.field(name)
        self.values[name] = self.coerce(field, value) if field else value
        self.errors.pop(name, None)

    def load(self, form: MultiDict, files: MultiDict | None = None) -> None:
        """Take the values of a submitted HTML form."""
        for field in self.config.fields:
            if field.disabled:
                continue
            if field.type in ("checkbox", "switch"):
                self.set_value(field.name, field.name in form and form.get(field.name) != "")
            elif field.type == "multiselect":
                self.set_value(field.name, form.getlist(field.name) or form.getlist(f"{field.name}[]"))
            elif field.type == "file":
                uploads = [f for f in (files.getlist(field.name) if files else []) if f and f.filename]
                if field.multiple:
                    self.set_value(field.name, uploads or None)
                else:
                    self.set_value(field.name, uploads[0] if uploads else None)
            elif field.name in form:
                self.set_value(field.name, form.get(field.name))

    def visible_fields(self) -> list[FormField]:
        return [f for f in self.config.fields if is_visible(f, self.values)]

    def validate(self) -> bool:
        self.errors = validate_values(self.config.fields, self.values)
        return not self.errors

    def reset(self) -> None:
        self.values = self.default_values()
        self.errors = {}
        self.submit_error = None

    # ---------- submission ----------
    def has_files(self) -> bool:
        return any(_is_file(v) for v in self.values.values())

    def build_submission(self) -> tuple[dict[str, Any] | None, MultiDict | None]:
        """Returns (json_body, None) or (None, multipart_body)."""
        if not self.has_files() and self.config.enc_type != "multipart/form-data":
            body = dict(self.values)
            if self.config.transform:
                body = self.config.transform(body)
            return body, None

        form: MultiDict = MultiDict()
        for key, value in self.values.items():
            if value is None:
                continue
            field = self.field(key)
            if field is not None and field.type == "file":
                if isinstance(value, (list, tuple)):
                    for item in value:
                        form.add(key, item)
                elif isinstance(value, FileStorage):
                    form.add(key, value)
            elif isinstance(value, (list, tuple)):
                for item in value:
                    form.add(f"{key}[]", str(item))
            elif isinstance(value, bool):
                form.add(key, "true" if value else "false")
            else:
                form.add(key, str(value))
        return None, form

    def _fail(self, message: str) -> None:
        self.submit_error = message
        if self.config.on_error:
            self.config.on_error(message)

    def submit(self, client: ApiClient) -> bool:
        """
        Validate, then send exactly one request. Returns True on a 2xx response.
        Values are kept on failure so the user can retry.
        """
        if not self.validate():
            return False

        self.is_submitting = True
        self.submit_error = None
        try:
            json_body, form = self.build_submission()
            resp = client.request(
                self.config.method,
                self.config.endpoint,
                headers=self.config.headers,
                json_body=json_body,
                form=form,
            )
        except ApiRequestError as e:
            logger.warning("Form submit to %s failed: %s", self.config.endpoint, e)
            self._fail(GENERIC_SUBMIT_ERROR)
            return False
        finally:
            self.is_submitting = False

        if not resp.ok:
            self._fail(resp.error_message(GENERIC_SUBMIT_ERROR))
            return False

        self.result = resp.body
        if self.config.on_success:
            self.config.on_success(resp.body)
        if self.config.reset_after_submit:
            self.reset()
        return True

    def load_options(self, client: ApiClient) -> None:
        self.options.update(load_field_options(client, self.config.fields))


def load_field_options(client: ApiClient, fields: tuple[FormField, ...]) -> dict[str, list[FieldOption]]:
    """Option lists for fields that declare `options_endpoint`. Failures are logged and skipped."""
    loaded: dict[str, list[FieldOption]] = {}
    for field in fields:
        if not field.options_endpoint:
            continue
        try:
            resp = client.get(field.options_endpoint)
        except ApiRequestError as e:
            logger.warning("Failed to fetch options for %s: %s", field.name, e)
            continue
        if not resp.ok or not isinstance(resp.body, dict) or not resp.body.get("success"):
            logger.warning("Failed to fetch options for %s: HTTP %s", field.name, resp.status)
            continue
        items = resp.body.get("data") or []
        loaded[field.name] = list(field.options) + [
            FieldOption(label=str(item.get(field.option_label_key) or item.get("name") or item.get("_id")), value=item.get("_id"))
            for item in items
            if isinstance(item, dict)
        ]
    return loaded
