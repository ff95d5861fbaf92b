from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from werkzeug.security import generate_password_hash

from app.bizadmin.audit import record_event
from app.bizadmin.crud import (
    ConflictError,
    Field,
    PayloadError,
    apply_values,
    check_ref,
    dump,
    ref_summary,
    validate_payload,
)
from app.bizadmin.models import USER_ROLES, User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


MIN_PASSWORD_LENGTH = 6

FIELDS = (
    Field("name", "name", required=True),
    Field("phoneNumber", "phone_number", required=True),
    Field("email", "email"),
    Field("role", "role", choices=USER_ROLES, nullable=False),
    Field("teamId", "team_id", "ref"),
    Field("permissions", "permissions"),
    Field("isActive", "is_active", "bool"),
)


def serialize_user(user: User) -> dict[str, Any]:
    out = dump(user, FIELDS)
    out["teamId"] = ref_summary(user.team, "name", "specialization")
    return out


def user_summary(user: User | None) -> dict[str, Any] | None:
    return ref_summary(user, "name", "email", "role")


def _password_hash(payload: dict, *, required: bool) -> str | None:
    raw = payload.get("password")
    if raw is None or str(raw) == "":
        if required:
            raise PayloadError(["password is required."])
        return None
    if len(str(raw)) < MIN_PASSWORD_LENGTH:
        raise PayloadError([f"password must be at least {MIN_PASSWORD_LENGTH} characters."])
    return generate_password_hash(str(raw))


def _ensure_unique(s: "Session", values: dict[str, Any], exclude_id: int | None = None) -> None:
    for attr, label in (("phone_number", "phone number"), ("email", "email")):
        if not values.get(attr):
            continue
        q = s.query(User).filter(getattr(User, attr) == values[attr])
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first() is not None:
            raise ConflictError(f"User with this {label} already exists")


def _ensure_team(s: "Session", values: dict[str, Any]) -> None:
    from app.bizadmin.modules.teams.models import Team

    check_ref(s, Team, values.get("team_id"), "teamId")


def create_user(s: "Session", payload: dict, actor: "Principal | None") -> User:
    values = validate_payload(payload, FIELDS)
    password_hash = _password_hash(payload, required=True)
    _ensure_unique(s, values)
    _ensure_team(s, values)
    now = datetime.utcnow()
    user = User(**values, password_hash=password_hash, created_at=now, updated_at=now)
    s.add(user)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="user.create",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"name": user.name, "role": user.role},
    )
    return user


def update_user(s: "Session", user: User, payload: dict, actor: "Principal") -> User:
    values = validate_payload(payload, FIELDS, partial=True)
    _ensure_unique(s, values, exclude_id=user.id)
    _ensure_team(s, values)
    if actor.is_staff and actor.id == str(user.id) and values.get("is_active") is False:
        raise PayloadError(["You cannot deactivate your own account."])
    changes = apply_values(user, values)
    password_hash = _password_hash(payload, required=False)
    if password_hash:
        user.password_hash = password_hash
        user.updated_at = datetime.utcnow()
        changes["password"] = {"old": "***", "new": "***"}
    record_event(
        s,
        actor=actor,
        action="user.edit",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"name": user.name, "changes": changes},
    )
    return user


def delete_user(s: "Session", user: User, actor: "Principal") -> None:
    if actor.is_staff and actor.id == str(user.id):
        raise PayloadError(["You cannot delete your own account."])
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"name": user.name, "role": user.role},
    )
    s.delete(user)
