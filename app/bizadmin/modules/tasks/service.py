from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import Field, PayloadError, apply_values, check_ref, dump, ref_summary, validate_payload
from app.bizadmin.models import User
from app.bizadmin.modules.services.models import ServiceRequest
from app.bizadmin.modules.tasks.models import TASK_PRIORITIES, TASK_STATUSES, Task
from app.bizadmin.modules.users.service import user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


FIELDS = (
    Field("title", "title", required=True),
    Field("description", "description"),
    Field("serviceRequestId", "service_request_id", "ref"),
    Field("assignedUserId", "assigned_user_id", "ref"),
    Field("status", "status", choices=TASK_STATUSES, nullable=False),
    Field("priority", "priority", choices=TASK_PRIORITIES, nullable=False),
    Field("startDate", "start_date", "date"),
    Field("dueDate", "due_date", "date"),
    Field("completedDate", "completed_date", "date"),
    Field("notes", "notes"),
    Field("deliverables", "deliverables"),
    Field("attachedVideo", "attached_video"),
)

SORTABLE = {
    "title": Task.title,
    "status": Task.status,
    "priority": Task.priority,
    "startDate": Task.start_date,
    "dueDate": Task.due_date,
    "createdAt": Task.created_at,
}


def serialize_task(task: Task) -> dict[str, Any]:
    out = dump(task, FIELDS)
    out["serviceRequestId"] = ref_summary(task.service_request, "title", "status")
    out["assignedUserId"] = user_summary(task.assigned_user)
    return out


def _check(s: "Session", task: Task | None, values: dict[str, Any]) -> None:
    check_ref(s, ServiceRequest, values.get("service_request_id"), "serviceRequestId")
    user = check_ref(s, User, values.get("assigned_user_id"), "assignedUserId")
    if user is not None and not user.is_active:
        raise PayloadError(["assignedUserId refers to an inactive user."])
    start = values.get("start_date", task.start_date if task else None)
    due = values.get("due_date", task.due_date if task else None)
    if start and due and due < start:
        raise PayloadError(["dueDate must be on or after startDate."])


def _stamp_completion(task: Task) -> None:
    if task.status == "completed" and task.completed_date is None:
        task.completed_date = date.today()


def create_task(s: "Session", payload: dict, actor: "Principal") -> Task:
    values = validate_payload(payload, FIELDS)
    _check(s, None, values)
    now = datetime.utcnow()
    task = Task(**values, created_at=now, updated_at=now)
    _stamp_completion(task)
    s.add(task)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="task.create",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"title": task.title, "assigned_user_id": task.assigned_user_id},
    )
    return task


def update_task(s: "Session", task: Task, payload: dict, actor: "Principal") -> Task:
    values = validate_payload(payload, FIELDS, partial=True)
    _check(s, task, values)
    changes = apply_values(task, values)
    _stamp_completion(task)
    record_event(
        s,
        actor=actor,
        action="task.edit",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"title": task.title, "changes": changes},
    )
    return task


def delete_task(s: "Session", task: Task, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="task.delete",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"title": task.title},
    )
    s.delete(task)


REVIEW_ACTIONS = ("approve", "reject")


def customer_owns_task(task: Task, customer_id: str) -> bool:
    sr = task.service_request
    return sr is not None and str(sr.requested_by_id) == customer_id


def review_task(s: "Session", task: Task, action: str, reason: str | None, actor: "Principal") -> Task:
    """
    Customer sign-off on delivered work. Only tasks in `accepted` can be reviewed:
    approving completes the task, rejecting sends it back to `review` with the reason
    appended to the notes.
    """
    if action not in REVIEW_ACTIONS:
        raise PayloadError(["Invalid action. Use 'approve' or 'reject'."])
    if task.status != "accepted":
        raise PayloadError(["Task must be in 'accepted' status to approve or reject."])

    reason = (reason or "").strip()
    if action == "approve":
        task.status = "completed"
        task.completed_date = date.today()
    else:
        if not reason:
            raise PayloadError(["Rejection reason is required."])
        task.status = "review"
        note = f"Customer rejected: {reason}"
        task.notes = f"{task.notes}\n\n{note}" if task.notes else note
    task.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=actor,
        action=f"task.customer_{action}",
        entity_type="Task",
        entity_id=str(task.id),
        reason=reason or None,
        metadata={"title": task.title, "status": task.status},
    )
    return task
