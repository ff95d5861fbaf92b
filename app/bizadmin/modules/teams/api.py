from __future__ import annotations

from app.bizadmin.api import (
    body_id,
    bool_arg,
    bp,
    current_principal,
    get_or_404,
    header_id,
    list_response,
    ok,
    payload,
    require_token,
)
from app.bizadmin.db import db_session
from app.bizadmin.modules.teams.models import Team
from app.bizadmin.modules.teams.service import create_team, delete_team, serialize_team, update_team


@bp.get("/teams")
@require_token("user")
def teams_list():
    s = db_session()
    q = s.query(Team).order_by(Team.created_at.desc(), Team.id.desc())
    is_active = bool_arg("isActive")
    if is_active is not None:
        q = q.filter(Team.is_active == is_active)
    return list_response(q, serialize_team, Team.name, Team.specialization)


@bp.post("/teams")
@require_token("user")
def teams_create():
    s = db_session()
    team = create_team(s, payload(), current_principal())
    s.commit()
    return ok(serialize_team(team), 201)


@bp.put("/teams")
@require_token("user")
def teams_put():
    s = db_session()
    data = payload()
    team = get_or_404(Team, body_id(data), "Team")
    update_team(s, team, data, current_principal())
    s.commit()
    return ok(serialize_team(team))


@bp.get("/teams/detailes")
@require_token("user")
def teams_detail():
    return ok(serialize_team(get_or_404(Team, header_id(), "Team")))


@bp.patch("/teams/detailes")
@require_token("user")
def teams_patch():
    s = db_session()
    team = get_or_404(Team, header_id(), "Team")
    update_team(s, team, payload(), current_principal())
    s.commit()
    return ok(serialize_team(team))


@bp.delete("/teams/detailes")
@require_token("user")
def teams_delete():
    s = db_session()
    team = get_or_404(Team, header_id(), "Team")
    team_id = str(team.id)
    delete_team(s, team, current_principal())
    s.commit()
    return ok({"_id": team_id}, message="Team deleted")
