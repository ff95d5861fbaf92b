from werkzeug.datastructures import MultiDict

from app.bizadmin.dynamic.client import ApiRequestError
from app.bizadmin.dynamic.modal import LOAD_ERROR, SAVE_ERROR, DynamicModal, record_to_values
from app.bizadmin.dynamic.schema import FieldOption, FormField, ModalConfig

FIELDS = (
    FormField("name", "Name", required=True),
    FormField("teamId", "Team", "select", options_endpoint="/api/teams"),
    FormField("members", "Members", "multiselect"),
    FormField("startDate", "Start", "date"),
    FormField("password", "Password", "password"),
    FormField("isActive", "Active", "switch"),
)

RECORD = {
    "_id": "7",
    "name": "Launch",
    "teamId": {"_id": "3", "name": "Video"},
    "members": [{"_id": "1", "name": "Ann"}, "2"],
    "startDate": "2024-03-01T00:00:00Z",
    "password": "hash",
    "isActive": True,
}


def _modal(kind="edit", **overrides):
    kwargs = dict(title="Project", type=kind, endpoint="/api/projects/detailes", fields=FIELDS if kind != "delete" else ())
    kwargs.update(overrides)
    return DynamicModal(ModalConfig(**kwargs))


def test_record_to_values_collapses_references():
    values = record_to_values(FIELDS, RECORD)
    assert values == {
        "name": "Launch",
        "teamId": "3",
        "members": ["1", "2"],
        "startDate": "2024-03-01",
        "password": "",
        "isActive": True,
    }


def test_default_methods():
    assert _modal("edit").method == "PATCH"
    assert _modal("delete").method == "DELETE"
    assert _modal("edit", method="PUT").method == "PUT"


def test_load_fetches_record_with_id_header(api, transport):
    transport.on("GET", "/api/projects/detailes", 200, {"success": True, "data": RECORD})
    transport.on("GET", "/api/teams", 200, {"success": True, "data": [{"_id": "3", "name": "Video"}]})
    modal = _modal("view")
    modal.open("7")
    assert modal.load(api)

    detail = [c for c in transport.calls if c["path"] == "/api/projects/detailes"][0]
    assert detail["headers"]["id"] == "7"
    assert modal.values["teamId"] == "3"
    assert modal.options["teamId"] == [FieldOption("Video", "3")]
    assert modal.display_value(FIELDS[0]) == "Launch"
    assert modal.display_value(FIELDS[1]) == "Video"
    assert modal.display_value(FIELDS[5]) == "Yes"


def test_load_failure_sets_error(api, transport):
    transport.on("GET", "/api/projects/detailes", 404, {"success": False, "error": "Project not found"})
    modal = _modal("view", fields=())
    modal.open("7")
    assert modal.load(api) is False
    assert modal.error == "Project not found"


def test_load_network_failure(api, transport):
    transport.on("GET", "/api/projects/detailes", raises=ApiRequestError("down"))
    modal = _modal("view", fields=())
    modal.open("7")
    assert modal.load(api) is False
    assert modal.error == LOAD_ERROR
    assert modal.loading is False


def test_delete_modal_skips_fetch_and_sends_delete(api, transport):
    transport.on("DELETE", "/api/projects/detailes", 200, {"success": True, "data": {}})
    closed = []
    modal = _modal("delete", on_close=lambda: closed.append(True))
    modal.open("7")
    assert modal.load(api)
    assert transport.calls == []

    assert modal.confirm(api)
    call = transport.calls[0]
    assert call["method"] == "DELETE"
    assert call["headers"]["id"] == "7"
    assert call["json"] is None
    assert modal.is_open is False
    assert closed == [True]


def test_delete_modal_with_fields_renders_only_confirmation(api, transport):
    transport.on("DELETE", "/api/projects/detailes", 200, {"success": True, "data": {}})
    modal = _modal("delete", fields=FIELDS)
    modal.open("7", initial_data=RECORD)
    assert modal.load(api)
    assert modal.visible_fields() == []

    assert modal.confirm(api)
    assert [c["method"] for c in transport.calls] == ["DELETE"]
    assert transport.calls[0]["json"] is None


def test_edit_confirm_sends_form_values(api, transport):
    transport.on("GET", "/api/projects/detailes", 200, {"success": True, "data": RECORD})
    transport.on("PATCH", "/api/projects/detailes", 200, {"success": True, "data": {"_id": "7"}})
    modal = _modal("edit", fields=FIELDS[:1])
    modal.open("7")
    modal.load(api)
    modal.load_form(MultiDict({"name": "Relaunch"}))

    assert modal.confirm(api)
    patch = transport.calls[-1]
    assert patch["method"] == "PATCH"
    assert patch["json"] == {"name": "Relaunch"}
    assert modal.result == {"success": True, "data": {"_id": "7"}}


def test_invalid_edit_sends_nothing(api, transport):
    modal = _modal("edit", fields=FIELDS[:1])
    modal.open("7")
    modal.set_value("name", "")
    assert modal.confirm(api) is False
    assert modal.errors == {"name": "Name is required"}
    assert transport.calls == []


def test_confirm_requires_item_and_endpoint(api, transport):
    modal = _modal("delete")
    modal.open()
    assert modal.confirm(api) is False
    modal = _modal("delete", endpoint=None)
    modal.open("7")
    assert modal.confirm(api) is False
    assert transport.calls == []


def test_confirm_failure_keeps_modal_open(api, transport):
    transport.on("DELETE", "/api/projects/detailes", 409, {"success": False, "error": "Project has tasks"})
    errors = []
    modal = _modal("delete", on_error=errors.append)
    modal.open("7")
    assert modal.confirm(api) is False
    assert modal.error == "Project has tasks"
    assert errors == ["Project has tasks"]
    assert modal.is_open is True


def test_confirm_network_failure_uses_generic_message(api, transport):
    transport.on("DELETE", "/api/projects/detailes", raises=ApiRequestError("down"))
    modal = _modal("delete")
    modal.open("7")
    assert modal.confirm(api) is False
    assert modal.error == SAVE_ERROR


def test_close_refused_while_loading():
    modal = _modal("view")
    modal.open("7")
    modal.loading = True
    assert modal.close() is False
    assert modal.is_open is True
    modal.loading = False
    assert modal.close() is True
    assert modal.is_open is False


def test_open_with_initial_data_prefills_values():
    modal = _modal("edit")
    modal.open("7", initial_data=RECORD)
    assert modal.values["name"] == "Launch"
    assert modal.visible_fields() == list(FIELDS)
