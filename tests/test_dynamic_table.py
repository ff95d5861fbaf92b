import pytest
from werkzeug.datastructures import MultiDict

from app.bizadmin.dynamic.client import ApiRequestError
from app.bizadmin.dynamic.formatting import format_cell
from app.bizadmin.dynamic.schema import FilterField, RowAction, TableActions, TableColumn, TableConfig
from app.bizadmin.dynamic.table import (
    FETCH_ERROR,
    DynamicTable,
    SortState,
    build_query,
    extract_pagination,
    filter_rows,
    next_sort,
    sort_rows,
)

ROWS = [
    {"_id": "1", "name": "Alpha", "amount": 300, "isActive": True, "date": "2024-01-05T10:00:00Z", "customer": {"_id": "c1", "name": "Zed"}},
    {"_id": "2", "name": "beta", "amount": 50, "isActive": False, "date": "2024-02-10", "customer": {"_id": "c2", "name": "Amy"}},
    {"_id": "3", "name": "Gamma", "amount": None, "isActive": True, "date": None, "customer": None},
]


def _table(**overrides):
    kwargs = dict(
        title="Teams",
        endpoint="/api/teams",
        columns=(
            TableColumn("name", "Name"),
            TableColumn("amount", "Amount", "number"),
            TableColumn("notes", "Notes", sortable=False),
        ),
        filters=(FilterField("name", "Name"), FilterField("amount", "Amount", "numberRange")),
        page_size=2,
    )
    kwargs.update(overrides)
    return DynamicTable(TableConfig(**kwargs))


def test_sort_cycles_between_directions():
    s = next_sort(None, "name")
    assert s == SortState("name", "asc")
    s = next_sort(s, "name")
    assert s == SortState("name", "desc")
    assert next_sort(s, "name") == SortState("name", "asc")
    assert next_sort(s, "amount") == SortState("amount", "asc")


def test_missing_values_sort_last_both_ways():
    asc = sort_rows(ROWS, SortState("amount", "asc"))
    assert [r["_id"] for r in asc] == ["2", "1", "3"]
    desc = sort_rows(ROWS, SortState("amount", "desc"))
    assert [r["_id"] for r in desc] == ["1", "2", "3"]


def test_sort_by_populated_reference_uses_name():
    rows = sort_rows(ROWS, SortState("customer", "asc"))
    assert [r["_id"] for r in rows] == ["2", "1", "3"]


def test_sort_without_state_keeps_order():
    assert sort_rows(ROWS, None) == ROWS


def test_text_filter_is_case_insensitive_substring():
    fields = (FilterField("name", "Name"),)
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"name": "ALP"})] == ["1"]


def test_select_filter_matches_reference_id_and_booleans():
    fields = (FilterField("customer", "Customer", "select"), FilterField("isActive", "Active", "select"))
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"customer": "c2"})] == ["2"]
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"isActive": "true"})] == ["1", "3"]


def test_number_range_allows_open_bound():
    fields = (FilterField("amount", "Amount", "numberRange"),)
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": ("100", None)})] == ["1"]
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": (None, "100")})] == ["2"]
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": (None, None)})] == ["1", "2", "3"]


def test_number_range_includes_both_bounds():
    fields = (FilterField("amount", "Amount", "numberRange"),)
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": ("50", "300")})] == ["1", "2"]
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": ("300", "300")})] == ["1"]
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"amount": ("51", "299")})] == []


def test_date_filters():
    fields = (FilterField("date", "Date", "date"), FilterField("when", "When", "dateRange"))
    assert [r["_id"] for r in filter_rows(ROWS, fields, {"date": "2024-01-05"})] == ["1"]

    ranged = (FilterField("date", "Date", "dateRange"),)
    assert [r["_id"] for r in filter_rows(ROWS, ranged, {"date": ("2024-02-01", "2024-02-10")})] == ["2"]
    assert [r["_id"] for r in filter_rows(ROWS, ranged, {"date": (None, "2024-01-31")})] == ["1"]


def test_date_range_includes_the_whole_last_day():
    rows = [
        {"_id": "a", "date": "2024-02-10T23:59:59"},
        {"_id": "b", "date": "2024-02-11T00:00:00"},
        {"_id": "c", "date": "2024-02-01T00:00:00"},
        {"_id": "d", "date": "2024-01-31T23:59:59"},
    ]
    ranged = (FilterField("date", "Date", "dateRange"),)
    assert [r["_id"] for r in filter_rows(rows, ranged, {"date": ("2024-02-01", "2024-02-10")})] == ["a", "c"]


def test_build_query_maps_search_and_ranges():
    fields = (
        FilterField("name", "Name"),
        FilterField("status", "Status", "select"),
        FilterField("date", "Date", "dateRange"),
        FilterField("amount", "Amount", "numberRange"),
    )
    params = build_query(
        fields,
        {"name": "video", "status": "active", "date": ("2024-01-01", None), "amount": (None, "500")},
        page=2,
        limit=25,
    )
    assert params == {
        "search": "video",
        "status": "active",
        "dateFrom": "2024-01-01",
        "amountMax": "500",
        "page": 2,
        "limit": 25,
    }


@pytest.mark.parametrize(
    "body,expected",
    [
        ({"pagination": {"page": 2, "pages": 5, "total": 48, "limit": 10}}, (2, 5, 48, 10)),
        ({"meta": {"currentPage": 1, "totalPages": 3, "totalItems": 21, "itemsPerPage": 10}}, (1, 3, 21, 10)),
        ({"data": [], "page": 4, "totalPages": 4, "total": 31, "limit": 10}, (4, 4, 31, 10)),
    ],
)
def test_extract_pagination_locations(body, expected):
    p = extract_pagination(body)
    assert (p.page, p.pages, p.total, p.limit) == expected


def test_extract_pagination_absent():
    assert extract_pagination({"success": True, "data": []}) is None
    assert extract_pagination(None) is None


def test_fetch_populates_rows(api, transport):
    transport.on("GET", "/api/teams", 200, {"success": True, "data": ROWS})
    table = _table(headers={"customerId": "c1"})
    assert table.fetch(api)
    assert table.rows == ROWS
    assert table.error is None
    assert transport.calls[0]["headers"]["customerId"] == "c1"
    assert transport.calls[0]["params"] is None


def test_fetch_server_error_message(api, transport):
    transport.on("GET", "/api/teams", 403, {"success": False, "error": "Forbidden"})
    table = _table()
    assert table.fetch(api) is False
    assert table.error == "Forbidden"


def test_fetch_network_error(api, transport):
    transport.on("GET", "/api/teams", raises=ApiRequestError("refused"))
    table = _table()
    assert table.fetch(api) is False
    assert table.error == FETCH_ERROR
    assert table.loading is False


def test_server_side_fetch_sends_query_and_reads_pagination(api, transport):
    transport.on(
        "GET",
        "/api/teams",
        200,
        {"success": True, "data": ROWS[:2], "pagination": {"page": 1, "pages": 7, "total": 14, "limit": 2}},
    )
    table = _table(server_side=True)
    table.set_filter("name", "al")
    table.fetch(api)
    assert transport.calls[0]["params"] == {"search": "al", "page": 1, "limit": 2}
    assert table.total_pages == 7
    assert len(table.visible_rows()) == 2


def test_local_paging_and_clamp():
    table = _table()
    table.rows = list(ROWS)
    assert table.total_pages == 2
    assert [r["_id"] for r in table.visible_rows()] == ["1", "2"]
    table.set_page(9)
    assert table.page == 2
    assert [r["_id"] for r in table.visible_rows()] == ["3"]
    table.set_page(0)
    assert table.page == 1


def test_filter_change_resets_page():
    table = _table()
    table.rows = list(ROWS)
    table.set_page(2)
    table.set_filter("name", "a")
    assert table.page == 1


def test_toggle_sort_ignores_unsortable_columns():
    table = _table()
    table.toggle_sort("notes")
    assert table.sort is None
    table.toggle_sort("name")
    assert table.sort == SortState("name", "asc")


def test_load_filters_from_query_args():
    table = _table()
    table.load_filters(MultiDict({"name": "al", "amount_from": "10", "sort": "amount", "dir": "desc", "page": "3"}))
    assert table.filters == {"name": "al", "amount": ("10", None)}
    assert table.sort == SortState("amount", "desc")
    assert table.page == 3


def test_load_filters_ignores_unknown_sort_and_bad_page():
    table = _table()
    table.load_filters(MultiDict({"sort": "password", "page": "x"}))
    assert table.sort is None
    assert table.page == 1


def test_toggle_active_puts_inverse_then_refetches(api, transport):
    transport.on("PUT", "/api/teams", 200, {"success": True, "data": {}})
    transport.on("GET", "/api/teams", 200, {"success": True, "data": []})
    table = _table()
    assert table.toggle_active(api, ROWS[0])
    assert transport.calls[0]["method"] == "PUT"
    assert transport.calls[0]["json"] == {"id": "1", "isActive": False}
    assert transport.calls[1]["method"] == "GET"


def test_toggle_active_failure_keeps_rows(api, transport):
    transport.on("PUT", "/api/teams", 400, {"success": False, "error": "You cannot deactivate yourself"})
    table = _table()
    table.rows = list(ROWS)
    assert table.toggle_active(api, ROWS[0]) is False
    assert table.error == "You cannot deactivate yourself"
    assert table.rows == ROWS
    assert len(transport.calls) == 1


def test_delete_row_sends_id_header(api, transport):
    transport.on("DELETE", "/api/teams/detailes", 200, {"success": True, "data": {}})
    transport.on("GET", "/api/teams", 200, {"success": True, "data": []})
    table = _table()
    assert table.delete_row(api, ROWS[1])
    assert transport.calls[0]["headers"]["id"] == "2"


def test_actions_respect_conditions():
    actions = TableActions(
        view=RowAction("view", "View", lambda r: f"/v/{r['_id']}"),
        activate=RowAction("activate", "Toggle", lambda r: "t", condition=lambda r: r["isActive"]),
    )
    table = _table(actions=actions)
    assert [a.key for a in table.actions_for(ROWS[1])] == ["view"]
    assert table.dispatch("view", ROWS[1]) == "/v/2"
    with pytest.raises(KeyError):
        table.dispatch("activate", ROWS[1])


@pytest.mark.parametrize(
    "value,column_type,expected",
    [
        (1200, "number", "1,200"),
        (True, "boolean", "Yes"),
        (False, "boolean", "No"),
        (True, "status", "Active"),
        ("inactive", "status", "Inactive"),
        ({"name": "Ann", "email": "a@x.io"}, "reference", "Ann (a@x.io)"),
        ("2024-01-05T10:00:00Z", "date", "2024-01-05"),
        (None, "text", "-"),
    ],
)
def test_cell_formatting(value, column_type, expected):
    assert format_cell(value, column_type) == expected
