from __future__ import annotations

import functools
import logging
import math
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any

from app.bizadmin.dynamic.client import ApiClient, ApiRequestError
from app.bizadmin.dynamic.formatting import format_cell
from app.bizadmin.dynamic.schema import FilterField, RowAction, TableColumn, TableConfig
from app.bizadmin.dynamic.validation import is_empty
from app.bizadmin.utils import parse_date, parse_datetime, parse_number

logger = logging.getLogger(__name__)

FETCH_ERROR = "Failed to fetch data"
RANGE_FILTERS = ("numberRange", "dateRange")
SEARCH_KEYS = ("name", "description")


@dataclass(frozen=True)
class SortState:
    key: str
    direction: str = "asc"


def next_sort(current: SortState | None, key: str) -> SortState:
    if current is not None and current.key == key and current.direction == "asc":
        return SortState(key, "desc")
    return SortState(key, "asc")


def get_value(row: dict[str, Any], key: str) -> Any:
    """`customer.name` style keys walk into populated references."""
    value: Any = row
    for part in key.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _sortable(v: Any) -> Any:
    if isinstance(v, dict):
        return v.get("name") or v.get("title") or v.get("_id")
    return v


def _compare(a: Any, b: Any) -> int:
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def sort_rows(rows: list[dict[str, Any]], sort: SortState | None) -> list[dict[str, Any]]:
    """Stable sort; rows without a value for the key go last in both directions."""
    if sort is None:
        return list(rows)
    present, missing = [], []
    for row in rows:
        (missing if _sortable(get_value(row, sort.key)) is None else present).append(row)
    present.sort(
        key=functools.cmp_to_key(lambda x, y: _compare(_sortable(get_value(x, sort.key)), _sortable(get_value(y, sort.key)))),
        reverse=sort.direction == "desc",
    )
    return present + missing


def _range(value: Any) -> tuple[Any, Any]:
    if isinstance(value, dict):
        return value.get("min", value.get("from")), value.get("max", value.get("to"))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None, None


def filter_is_empty(field: FilterField, value: Any) -> bool:
    if field.type in RANGE_FILTERS:
        lo, hi = _range(value)
        return is_empty(lo) and is_empty(hi)
    return is_empty(value)


def row_matches(field: FilterField, row_value: Any, filter_value: Any) -> bool:
    if filter_is_empty(field, filter_value):
        return True
    if row_value is None:
        return False
    if isinstance(row_value, dict):
        row_value = row_value.get("_id") if field.type == "select" else _sortable(row_value)
    if isinstance(row_value, bool):
        row_value = "true" if row_value else "false"

    try:
        if field.type == "text":
            return str(filter_value).lower() in str(row_value).lower()
        if field.type == "select":
            return str(row_value) == str(filter_value)
        if field.type == "number":
            return parse_number(row_value) == parse_number(filter_value)
        if field.type == "numberRange":
            n = parse_number(row_value)
            lo, hi = (parse_number(v) for v in _range(filter_value))
            if n is None:
                return False
            return (lo is None or n >= lo) and (hi is None or n <= hi)
        if field.type == "date":
            d = parse_datetime(row_value)
            return d is not None and d.date() == parse_date(filter_value)
        if field.type == "dateRange":
            d = parse_datetime(row_value)
            lo, hi = (parse_date(v) for v in _range(filter_value))
            if d is None:
                return False
            if lo is not None and d < datetime.combine(lo, time.min):
                return False
            return hi is None or d <= datetime.combine(hi, time.max)
    except (TypeError, ValueError):
        return False
    return True


def filter_rows(
    rows: list[dict[str, Any]], fields: tuple[FilterField, ...], filters: dict[str, Any]
) -> list[dict[str, Any]]:
    active = [f for f in fields if not filter_is_empty(f, filters.get(f.key))]
    if not active:
        return list(rows)
    return [r for r in rows if all(row_matches(f, get_value(r, f.key), filters.get(f.key)) for f in active)]


def paginate_rows(rows: list[dict[str, Any]], page: int, page_size: int) -> list[dict[str, Any]]:
    start = (max(page, 1) - 1) * page_size
    return rows[start : start + page_size]


def build_query(
    fields: tuple[FilterField, ...], filters: dict[str, Any], page: int, limit: int
) -> dict[str, Any]:
    """Query parameters for a server-side paginated endpoint."""
    params: dict[str, Any] = {}
    search: list[str] = []
    for field in fields:
        value = filters.get(field.key)
        if filter_is_empty(field, value):
            continue
        if field.key in SEARCH_KEYS:
            search.append(str(value))
        elif field.type == "dateRange":
            lo, hi = _range(value)
            if not is_empty(lo):
                params["dateFrom"] = str(lo)
            if not is_empty(hi):
                params["dateTo"] = str(hi)
        elif field.type == "numberRange":
            lo, hi = _range(value)
            if not is_empty(lo):
                params[f"{field.key}Min"] = str(lo)
            if not is_empty(hi):
                params[f"{field.key}Max"] = str(hi)
        else:
            params[field.key] = value
    if search:
        params["search"] = " ".join(search)
    params["page"] = page
    params["limit"] = limit
    return params


@dataclass(frozen=True)
class Pagination:
    page: int
    pages: int
    total: int
    limit: int


def extract_pagination(body: Any) -> Pagination | None:
    """
    Backends disagree on where pagination lives: a `pagination` or `meta` object
    (page/pages/total/limit or currentPage/totalPages/totalItems/itemsPerPage), or
    the same keys at top level.
    """
    if not isinstance(body, dict):
        return None
    for source in (body.get("pagination"), body.get("meta"), body):
        if not isinstance(source, dict):
            continue
        pages = source.get("pages", source.get("totalPages"))
        if pages is None:
            continue
        try:
            return Pagination(
                page=int(source.get("page", source.get("currentPage")) or 1),
                pages=int(pages),
                total=int(source.get("total", source.get("totalItems")) or 0),
                limit=int(source.get("limit", source.get("itemsPerPage")) or 0),
            )
        except (TypeError, ValueError):
            return None
    return None


def row_id(row: dict[str, Any]) -> str | None:
    v = row.get("_id", row.get("id"))
    return str(v) if v is not None else None


class DynamicTable:
    """
    List state for one table screen: fetched rows, sort, filters and the current page.
    Sorting, filtering and paging happen locally unless `server_side` is set on the config.
    """

    def __init__(self, config: TableConfig):
        self.config = config
        self.rows: list[dict[str, Any]] = []
        self.loading = False
        self.error: str | None = None
        self.sort: SortState | None = SortState(*config.initial_sort) if config.initial_sort else None
        self.filters: dict[str, Any] = {}
        self.page = 1
        self.pagination: Pagination | None = None

    # ---------- fetching ----------
    def fetch(self, client: ApiClient) -> bool:
        params = None
        if self.config.server_side:
            params = build_query(self.config.filters, self.filters, self.page, self.config.page_size)

        self.loading = True
        self.error = None
        try:
            resp = client.get(self.config.endpoint, headers=self.config.headers, params=params)
        except ApiRequestError as e:
            logger.warning("Fetching %s failed: %s", self.config.endpoint, e)
            self.error = FETCH_ERROR
            return False
        finally:
            self.loading = False

        if not resp.ok or not isinstance(resp.body, dict) or not resp.body.get("success"):
            self.error = resp.error_message(FETCH_ERROR)
            return False

        data = resp.data
        if isinstance(data, dict):
            data = data.get("items") or data.get("data") or []
        self.rows = [r for r in (data or []) if isinstance(r, dict)]
        self.pagination = extract_pagination(resp.body) if self.config.server_side else None
        return True

    def refresh(self, client: ApiClient) -> bool:
        return self.fetch(client)

    # ---------- view state ----------
    def column(self, key: str) -> TableColumn | None:
        for c in self.config.columns:
            if c.key == key:
                return c
        return None

    def toggle_sort(self, key: str) -> None:
        col = self.column(key)
        if col is None or not col.sortable:
            return
        self.sort = next_sort(self.sort, key)

    def set_filter(self, key: str, value: Any) -> None:
        self.filters[key] = value
        self.page = 1

    def clear_filters(self) -> None:
        self.filters = {}
        self.page = 1

    def load_filters(self, args: Any) -> None:
        """Read filter values from query args; range filters use `<key>_from` / `<key>_to`."""
        for f in self.config.filters:
            if f.type in RANGE_FILTERS:
                value: Any = (args.get(f"{f.key}_from") or None, args.get(f"{f.key}_to") or None)
            else:
                value = args.get(f.key) or None
            if not filter_is_empty(f, value):
                self.filters[f.key] = value
        sort_key = args.get("sort")
        if sort_key and self.column(sort_key) is not None:
            direction = "desc" if args.get("dir") == "desc" else "asc"
            self.sort = SortState(sort_key, direction)
        try:
            self.page = max(int(args.get("page") or 1), 1)
        except ValueError:
            self.page = 1

    def filtered_rows(self) -> list[dict[str, Any]]:
        if self.config.server_side:
            return sort_rows(self.rows, self.sort)
        return filter_rows(sort_rows(self.rows, self.sort), self.config.filters, self.filters)

    @property
    def total_pages(self) -> int:
        if self.config.server_side and self.pagination is not None:
            return max(self.pagination.pages, 1)
        return max(math.ceil(len(self.filtered_rows()) / self.config.page_size), 1)

    def set_page(self, page: int) -> None:
        self.page = min(max(page, 1), self.total_pages)

    def visible_rows(self) -> list[dict[str, Any]]:
        rows = self.filtered_rows()
        if self.config.server_side:
            return rows
        return paginate_rows(rows, self.page, self.config.page_size)

    def cell(self, column: TableColumn, row: dict[str, Any]) -> str:
        value = get_value(row, column.key)
        if column.render is not None:
            return column.render(value, row)
        return format_cell(value, column.type)

    # ---------- row actions ----------
    def actions_for(self, row: dict[str, Any]) -> list[RowAction]:
        return [a for a in self.config.actions.all() if a.condition is None or a.condition(row)]

    def dispatch(self, action_key: str, row: dict[str, Any]) -> Any:
        for action in self.actions_for(row):
            if action.key == action_key and action.handler is not None:
                return action.handler(row)
        raise KeyError(action_key)

    def toggle_active(self, client: ApiClient, row: dict[str, Any]) -> bool:
        """PUT `{id, isActive: !isActive}` to the table endpoint, then refetch."""
        return self._mutate(
            client,
            "PUT",
            self.config.endpoint,
            headers=dict(self.config.headers),
            json_body={"id": row_id(row), "isActive": not bool(row.get("isActive"))},
            fallback="Failed to update status",
        )

    def delete_row(self, client: ApiClient, row: dict[str, Any]) -> bool:
        endpoint = self.config.delete_endpoint or f"{self.config.endpoint.rstrip('/')}/detailes"
        return self._mutate(
            client,
            "DELETE",
            endpoint,
            headers={**self.config.headers, "id": row_id(row) or ""},
            json_body=None,
            fallback="Failed to delete item",
        )

    def _mutate(self, client: ApiClient, method: str, path: str, *, headers, json_body, fallback: str) -> bool:
        try:
            resp = client.request(method, path, headers=headers, json_body=json_body)
        except ApiRequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            self.error = fallback
            return False
        if not resp.ok:
            self.error = resp.error_message(fallback)
            return False
        return self.fetch(client)
