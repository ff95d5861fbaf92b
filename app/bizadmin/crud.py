"""
Shared plumbing for the record services: wire <-> column mapping, payload checks and
serialization into the camelCase JSON the API speaks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from app.bizadmin.utils import iso, parse_bool, parse_date, parse_datetime, parse_number


class PayloadError(ValueError):
    """Rejected create/update payload. `errors` holds one message per problem."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class ConflictError(ValueError):
    """A unique value (phone number, contract number, team name) is already taken."""


@dataclass(frozen=True)
class Field:
    wire: str
    attr: str
    kind: str = "str"  # str | int | float | bool | date | datetime | ref
    required: bool = False
    choices: tuple[str, ...] = ()
    minimum: float | None = None
    writable: bool = True
    # blank input on a NOT NULL column keeps the stored value (or the column default)
    nullable: bool = True


def _coerce(field: Field, raw: Any) -> Any:
    if field.kind == "str":
        if raw is None:
            return None
        return str(raw).strip() or None
    if field.kind in ("int", "float"):
        n = parse_number(raw)
        if n is None:
            return None
        return int(n) if field.kind == "int" else float(n)
    if field.kind == "bool":
        return parse_bool(raw)
    if field.kind == "date":
        return parse_date(raw)
    if field.kind == "datetime":
        return parse_datetime(raw)
    if field.kind == "ref":
        if isinstance(raw, dict):
            raw = raw.get("_id")
        if raw is None or raw == "":
            return None
        return int(str(raw).strip())
    raise ValueError(f"Unknown field kind: {field.kind}")


def validate_payload(payload: dict, fields: tuple[Field, ...], *, partial: bool = False) -> dict[str, Any]:
    """
    Coerce every known field present in `payload`. Unknown keys are ignored.
    Raises PayloadError listing every problem found.
    """
    errors: list[str] = []
    values: dict[str, Any] = {}
    for f in fields:
        if not f.writable:
            continue
        if f.wire not in payload:
            if f.required and not partial:
                errors.append(f"{f.wire} is required.")
            continue
        try:
            value = _coerce(f, payload.get(f.wire))
        except (TypeError, ValueError):
            errors.append(f"{f.wire} is invalid.")
            continue
        if value is None and f.required:
            errors.append(f"{f.wire} is required.")
            continue
        if value is None and (not f.nullable or f.kind == "bool"):
            continue
        if value is not None and f.choices and value not in f.choices:
            errors.append(f"Invalid {f.wire}. Must be one of: {', '.join(f.choices)}")
            continue
        if value is not None and f.minimum is not None and value < f.minimum:
            errors.append(f"{f.wire} must be at least {f.minimum:g}.")
            continue
        values[f.attr] = value
    if errors:
        raise PayloadError(errors)
    return values


def apply_values(obj: Any, values: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Assign coerced values; returns the changes for the audit trail."""
    changes: dict[str, dict[str, Any]] = {}
    for attr, new in values.items():
        old = getattr(obj, attr)
        if old != new:
            changes[attr] = {"old": _jsonable(old), "new": _jsonable(new)}
            setattr(obj, attr, new)
    if changes and hasattr(obj, "updated_at"):
        obj.updated_at = datetime.utcnow()
    return changes


def _jsonable(v: Any) -> Any:
    if isinstance(v, (date, datetime)):
        return iso(v)
    return v


def dump(obj: Any, fields: tuple[Field, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {"_id": str(obj.id)}
    for f in fields:
        v = getattr(obj, f.attr)
        if f.kind == "ref":
            out[f.wire] = str(v) if v is not None else None
        else:
            out[f.wire] = _jsonable(v)
    if hasattr(obj, "created_at"):
        out["createdAt"] = iso(obj.created_at)
    if hasattr(obj, "updated_at"):
        out["updatedAt"] = iso(obj.updated_at)
    return out


def ref_summary(obj: Any, *keys: str) -> dict[str, Any] | None:
    """Populated reference: `{_id, <keys>}` with snake_case attributes exposed camelCase."""
    if obj is None:
        return None
    out: dict[str, Any] = {"_id": str(obj.id)}
    for key in keys:
        out[key] = getattr(obj, _snake(key), None)
    return out


def _snake(name: str) -> str:
    return "".join("_" + c.lower() if c.isupper() else c for c in name)


def paginate(q: Query, page: int, limit: int) -> tuple[list[Any], dict[str, int]]:
    total = q.order_by(None).count()
    items = q.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if limit else 0
    return items, {"page": page, "limit": limit, "total": total, "pages": pages}


def get_or_none(s: Session, model: type, item_id: int | None) -> Any:
    if item_id is None:
        return None
    return s.get(model, item_id)


def apply_search(q: Query, term: str | None, *columns: Any) -> Query:
    term = (term or "").strip()
    if not term:
        return q
    like = f"%{term}%"
    return q.filter(or_(*[c.ilike(like) for c in columns]))


def ref_ids(raw: Any) -> list[int]:
    """Many-to-many payload: a list of ids (or populated refs), or one comma separated string."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        raw = [p for p in raw.split(",") if p.strip()]
    if not isinstance(raw, (list, tuple)):
        raw = [raw]
    out: list[int] = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("_id")
        try:
            out.append(int(str(item).strip()))
        except (TypeError, ValueError):
            raise PayloadError([f"Invalid id: {item!r}"])
    return out


def check_ref(s: Session, model: type, item_id: int | None, wire: str) -> Any:
    """Load a referenced row; an id that points nowhere is a payload error."""
    if item_id is None:
        return None
    obj = s.get(model, item_id)
    if obj is None:
        raise PayloadError([f"{wire} is invalid."])
    return obj
