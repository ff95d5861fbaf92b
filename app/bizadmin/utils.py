from __future__ import annotations

from datetime import date, datetime


def parse_date(s: str | date | None) -> date | None:
    """Parse a YYYY-MM-DD (or full ISO datetime) string."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    s = str(s).strip()
    if not s:
        return None
    if len(s) > 10:
        return parse_datetime(s).date()  # type: ignore[union-attr]
    return date.fromisoformat(s)


def parse_datetime(s: str | datetime | date | None) -> datetime | None:
    """Parse an ISO datetime; a trailing 'Z' is accepted and dropped (naive UTC)."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.replace(tzinfo=None)
    if isinstance(s, date):
        return datetime(s.year, s.month, s.day)
    s = str(s).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1]
    return datetime.fromisoformat(s).replace(tzinfo=None)


def parse_bool(v: object) -> bool | None:
    if v is None or v == "":
        return None
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    s = str(v).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Not a boolean: {v!r}")


def parse_number(v: object) -> int | float | None:
    """Numbers arrive as JSON numbers or as strings, possibly with thousands separators."""
    if v is None or v == "":
        return None
    if isinstance(v, bool):
        raise ValueError(f"Not a number: {v!r}")
    if isinstance(v, (int, float)):
        return v
    s = str(v).strip().replace(",", "")
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        return float(s)


def parse_page_args(args, default_limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    try:
        page = int(args.get("page") or "1")
    except ValueError:
        page = 1
    try:
        limit = int(args.get("limit") or str(default_limit))
    except ValueError:
        limit = default_limit
    return max(page, 1), min(max(limit, 1), max_limit)


def iso(v: date | datetime | None) -> str | None:
    if v is None:
        return None
    return v.isoformat()
