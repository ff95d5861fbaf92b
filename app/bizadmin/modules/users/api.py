from __future__ import annotations

from flask import request

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
from app.bizadmin.models import User
from app.bizadmin.modules.users.service import create_user, delete_user, serialize_user, update_user


@bp.get("/users")
@require_token("user")
def users_list():
    s = db_session()
    q = s.query(User).order_by(User.created_at.desc(), User.id.desc())
    role = (request.args.get("role") or "").strip()
    if role:
        q = q.filter(User.role == role)
    is_active = bool_arg("isActive")
    if is_active is not None:
        q = q.filter(User.is_active == is_active)
    team_id = (request.args.get("teamId") or "").strip()
    if team_id.isdigit():
        q = q.filter(User.team_id == int(team_id))
    return list_response(q, serialize_user, User.name, User.phone_number, User.email)


@bp.get("/users/admins")
@require_token("user")
def users_admins():
    s = db_session()
    q = (
        s.query(User)
        .filter(User.role.in_(("admin", "manager")), User.is_active.is_(True))
        .order_by(User.name.asc())
    )
    return list_response(q, serialize_user, User.name, User.phone_number)


@bp.post("/users")
@require_token("user")
def users_create():
    s = db_session()
    user = create_user(s, payload(), current_principal())
    s.commit()
    return ok(serialize_user(user), 201)


@bp.put("/users")
@require_token("user")
def users_put():
    s = db_session()
    data = payload()
    user = get_or_404(User, body_id(data), "User")
    update_user(s, user, data, current_principal())
    s.commit()
    return ok(serialize_user(user))


@bp.get("/users/detailes")
@require_token("user")
def users_detail():
    return ok(serialize_user(get_or_404(User, header_id(), "User")))


@bp.patch("/users/detailes")
@require_token("user")
def users_patch():
    s = db_session()
    user = get_or_404(User, header_id(), "User")
    update_user(s, user, payload(), current_principal())
    s.commit()
    return ok(serialize_user(user))


@bp.delete("/users/detailes")
@require_token("user")
def users_delete():
    s = db_session()
    user = get_or_404(User, header_id(), "User")
    user_id = str(user.id)
    delete_user(s, user, current_principal())
    s.commit()
    return ok({"_id": user_id}, message="User deleted")
