from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import ConflictError, Field, apply_values, dump, validate_payload
from app.bizadmin.modules.teams.models import Team

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


FIELDS = (
    Field("name", "name", required=True),
    Field("specialization", "specialization"),
    Field("description", "description"),
    Field("amount", "amount", "float", minimum=0),
    Field("isActive", "is_active", "bool"),
)


def serialize_team(team: Team) -> dict[str, Any]:
    return dump(team, FIELDS)


def _ensure_unique_name(s: "Session", name: str, exclude_id: int | None = None) -> None:
    q = s.query(Team).filter(Team.name == name)
    if exclude_id is not None:
        q = q.filter(Team.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Team with this name already exists")


def create_team(s: "Session", payload: dict, actor: "Principal") -> Team:
    values = validate_payload(payload, FIELDS)
    _ensure_unique_name(s, values["name"])
    now = datetime.utcnow()
    team = Team(**values, created_at=now, updated_at=now)
    s.add(team)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="team.create",
        entity_type="Team",
        entity_id=str(team.id),
        metadata={"name": team.name},
    )
    return team


def update_team(s: "Session", team: Team, payload: dict, actor: "Principal") -> Team:
    values = validate_payload(payload, FIELDS, partial=True)
    if "name" in values:
        _ensure_unique_name(s, values["name"], exclude_id=team.id)
    changes = apply_values(team, values)
    record_event(
        s,
        actor=actor,
        action="team.edit",
        entity_type="Team",
        entity_id=str(team.id),
        metadata={"name": team.name, "changes": changes},
    )
    return team


def delete_team(s: "Session", team: Team, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="team.delete",
        entity_type="Team",
        entity_id=str(team.id),
        metadata={"name": team.name},
    )
    s.delete(team)
