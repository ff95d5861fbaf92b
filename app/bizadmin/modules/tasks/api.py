from __future__ import annotations

from flask import request

from app.bizadmin.api import (
    ApiError,
    body_id,
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
from app.bizadmin.modules.services.models import ServiceRequest
from app.bizadmin.modules.tasks.models import Task
from app.bizadmin.modules.tasks.service import (
    SORTABLE,
    create_task,
    customer_owns_task,
    delete_task,
    review_task,
    serialize_task,
    update_task,
)


@bp.get("/tasks")
@require_token("user")
def tasks_list():
    s = db_session()
    q = s.query(Task)
    title = (request.args.get("title") or "").strip()
    if title:
        q = q.filter(Task.title.ilike(f"%{title}%"))
    for arg, column in (("status", Task.status), ("priority", Task.priority)):
        value = (request.args.get(arg) or "").strip()
        if value:
            q = q.filter(column == value)
    assigned = (request.args.get("assignedUserId") or "").strip()
    if assigned.isdigit():
        q = q.filter(Task.assigned_user_id == int(assigned))

    column = SORTABLE.get((request.args.get("sortBy") or "").strip(), Task.created_at)
    if (request.args.get("sortOrder") or "desc").strip().lower() == "asc":
        q = q.order_by(column.asc(), Task.id.asc())
    else:
        q = q.order_by(column.desc(), Task.id.desc())
    return list_response(q, serialize_task, Task.title, Task.description)


@bp.get("/tasks/byUsers")
@require_token("user")
def tasks_by_user():
    s = db_session()
    user_id = header_id()
    q = s.query(Task).filter(Task.assigned_user_id == user_id).order_by(Task.due_date.asc(), Task.id.asc())
    return ok([serialize_task(t) for t in q.all()])


@bp.post("/tasks")
@require_token("user")
def tasks_create():
    s = db_session()
    task = create_task(s, payload(), current_principal())
    s.commit()
    return ok(serialize_task(task), 201)


@bp.put("/tasks")
@require_token("user")
def tasks_put():
    s = db_session()
    data = payload()
    task = get_or_404(Task, body_id(data), "Task")
    update_task(s, task, data, current_principal())
    s.commit()
    return ok(serialize_task(task))


@bp.get("/tasks/detailes")
@require_token("user")
def tasks_detail():
    return ok(serialize_task(get_or_404(Task, header_id(), "Task")))


@bp.patch("/tasks/detailes")
@require_token("user")
def tasks_patch():
    s = db_session()
    task = get_or_404(Task, header_id(), "Task")
    update_task(s, task, payload(), current_principal())
    s.commit()
    return ok(serialize_task(task))


@bp.delete("/tasks/detailes")
@require_token("user")
def tasks_delete():
    s = db_session()
    task = get_or_404(Task, header_id(), "Task")
    task_id = str(task.id)
    delete_task(s, task, current_principal())
    s.commit()
    return ok({"_id": task_id}, message="Task deleted")


@bp.get("/customer-tasks")
@require_token()
def customer_tasks_list():
    customer_id = header_id("customerId", required=False)
    if customer_id is None:
        raw = (request.args.get("customer") or "").strip()
        customer_id = int(raw) if raw.isdigit() else None
    if customer_id is None:
        raise ApiError("customerId header is required", 400)
    ensure_customer_scope(customer_id)

    s = db_session()
    q = (
        s.query(Task)
        .join(ServiceRequest, Task.service_request_id == ServiceRequest.id)
        .filter(ServiceRequest.requested_by_id == customer_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return list_response(q, serialize_task, Task.title)


@bp.put("/customer-tasks")
@require_token()
def customer_tasks_review():
    s = db_session()
    data = payload()
    try:
        task_id = int(str(data.get("taskId") or "").strip())
    except ValueError:
        raise ApiError("Valid taskId required", 400) from None
    task = get_or_404(Task, task_id, "Task")
    principal = current_principal()
    if principal.is_customer and not customer_owns_task(task, principal.id):
        raise ApiError("Forbidden", 403)
    action = str(data.get("action") or "").strip()
    review_task(s, task, action, data.get("rejectionReason"), principal)
    s.commit()
    verb = "approved" if action == "approve" else "rejected"
    return ok(serialize_task(task), message=f"Task {verb} successfully")
