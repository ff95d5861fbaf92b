from __future__ import annotations

from flask import request

from app.bizadmin.api import (
    bp,
    current_principal,
    ensure_customer_scope,
    get_or_404,
    header_id,
    list_response,
    ok,
    payload,
    require_token,
)
from app.bizadmin.db import db_session
from app.bizadmin.modules.projects.models import Project
from app.bizadmin.modules.projects.service import create_project, delete_project, serialize_project, update_project


@bp.get("/projects")
@require_token("user")
def projects_list():
    s = db_session()
    q = s.query(Project).order_by(Project.created_at.desc(), Project.id.desc())
    for arg, column in (("status", Project.status), ("paymentStatus", Project.payment_status)):
        value = (request.args.get(arg) or "").strip()
        if value:
            q = q.filter(column == value)
    for arg, column in (("customerId", Project.customer_id), ("projectManagerId", Project.project_manager_id)):
        value = (request.args.get(arg) or "").strip()
        if value.isdigit():
            q = q.filter(column == int(value))
    return list_response(q, serialize_project, Project.title, Project.description)


@bp.post("/projects")
@require_token("user")
def projects_create():
    s = db_session()
    project = create_project(s, payload(), current_principal())
    s.commit()
    return ok(serialize_project(project), 201)


@bp.get("/projects/detailes")
@require_token("user")
def projects_detail():
    return ok(serialize_project(get_or_404(Project, header_id(), "Project")))


@bp.patch("/projects/detailes")
@require_token("user")
def projects_patch():
    s = db_session()
    project = get_or_404(Project, header_id(), "Project")
    update_project(s, project, payload(), current_principal())
    s.commit()
    return ok(serialize_project(project))


@bp.delete("/projects/detailes")
@require_token("user")
def projects_delete():
    s = db_session()
    project = get_or_404(Project, header_id(), "Project")
    project_id = str(project.id)
    delete_project(s, project, current_principal())
    s.commit()
    return ok({"_id": project_id}, message="Project deleted")


@bp.get("/projects/filterdByCustomer")
@require_token()
def projects_by_customer():
    customer_id = header_id("customerId")
    ensure_customer_scope(customer_id)
    s = db_session()
    q = s.query(Project).filter(Project.customer_id == customer_id).order_by(Project.created_at.desc())
    staff = current_principal().is_staff
    return ok([serialize_project(p, include_internal=staff) for p in q.all()])
