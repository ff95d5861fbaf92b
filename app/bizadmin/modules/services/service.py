from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import Field, PayloadError, apply_values, check_ref, dump, ref_ids, ref_summary, validate_payload
from app.bizadmin.models import User
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import customer_summary
from app.bizadmin.modules.services.models import REQUEST_PRIORITIES, REQUEST_STATUSES, Service, ServiceRequest
from app.bizadmin.modules.teams.models import Team
from app.bizadmin.modules.users.service import user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


SERVICE_FIELDS = (
    Field("name", "name", required=True),
    Field("description", "description"),
    Field("basePrice", "base_price", "float", required=True, minimum=0),
    Field("teamId", "team_id", "ref"),
    Field("isActive", "is_active", "bool"),
    Field("isVip", "is_vip", "bool"),
)

REQUEST_FIELDS = (
    Field("title", "title", required=True),
    Field("serviceId", "service_id", "ref", required=True),
    Field("quantity", "quantity", "int", minimum=1, nullable=False),
    Field("priority", "priority", choices=REQUEST_PRIORITIES, nullable=False),
    Field("status", "status", choices=REQUEST_STATUSES, nullable=False),
    Field("requestedDate", "requested_date", "date"),
    Field("scheduledDate", "scheduled_date", "date"),
    Field("requirements", "requirements"),
    Field("notes", "notes"),
    Field("requestedBy", "requested_by_id", "ref"),
    Field("approvedBy", "approved_by_id", "ref"),
    Field("approvedAt", "approved_at", "datetime"),
)

# fields a customer may set on their own request
CUSTOMER_REQUEST_KEYS = ("title", "serviceId", "quantity", "priority", "requestedDate", "requirements", "notes")


# ---------- services ----------
def serialize_service(service: Service) -> dict[str, Any]:
    out = dump(service, SERVICE_FIELDS)
    out["teamId"] = ref_summary(service.team, "name", "specialization")
    return out


def service_summary(service: Service | None) -> dict[str, Any] | None:
    return ref_summary(service, "name", "basePrice")


def create_service(s: "Session", payload: dict, actor: "Principal") -> Service:
    values = validate_payload(payload, SERVICE_FIELDS)
    check_ref(s, Team, values.get("team_id"), "teamId")
    now = datetime.utcnow()
    service = Service(**values, created_at=now, updated_at=now)
    s.add(service)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="service.create",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"name": service.name, "base_price": service.base_price},
    )
    return service


def update_service(s: "Session", service: Service, payload: dict, actor: "Principal") -> Service:
    values = validate_payload(payload, SERVICE_FIELDS, partial=True)
    check_ref(s, Team, values.get("team_id"), "teamId")
    changes = apply_values(service, values)
    record_event(
        s,
        actor=actor,
        action="service.edit",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"name": service.name, "changes": changes},
    )
    return service


def delete_service(s: "Session", service: Service, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="service.delete",
        entity_type="Service",
        entity_id=str(service.id),
        metadata={"name": service.name},
    )
    s.delete(service)


def services_for_customer(s: "Session", customer_id: int) -> list[Service]:
    """Services attached to any of the customer's projects, each once."""
    from app.bizadmin.modules.projects.models import Project

    seen: dict[int, Service] = {}
    for project in s.query(Project).filter(Project.customer_id == customer_id).order_by(Project.id.asc()).all():
        for service in project.services:
            seen.setdefault(service.id, service)
    return list(seen.values())


# ---------- service requests ----------
def serialize_request(req: ServiceRequest) -> dict[str, Any]:
    out = dump(req, REQUEST_FIELDS)
    out["serviceId"] = service_summary(req.service)
    out["requestedBy"] = customer_summary(req.requested_by)
    out["approvedBy"] = user_summary(req.approved_by)
    out["asiginedto"] = [user_summary(u) for u in req.assignees]
    return out


def _assignees(s: "Session", payload: dict) -> list[User] | None:
    if "asiginedto" not in payload:
        return None
    users = []
    for user_id in ref_ids(payload.get("asiginedto")):
        users.append(check_ref(s, User, user_id, "asiginedto"))
    return users


def _check_request_refs(s: "Session", values: dict[str, Any]) -> None:
    if "service_id" in values:
        service = check_ref(s, Service, values["service_id"], "serviceId")
        if service is not None and not service.is_active:
            raise PayloadError(["serviceId refers to an inactive service."])
    check_ref(s, Customer, values.get("requested_by_id"), "requestedBy")
    check_ref(s, User, values.get("approved_by_id"), "approvedBy")


def _stamp_approval(req: ServiceRequest, actor: "Principal") -> None:
    if req.status != "approved":
        return
    if req.approved_by_id is None and actor.is_staff:
        req.approved_by_id = int(actor.id)
    if req.approved_at is None:
        req.approved_at = datetime.utcnow()


def create_request(s: "Session", payload: dict, actor: "Principal") -> ServiceRequest:
    if actor.is_customer:
        payload = {k: payload[k] for k in CUSTOMER_REQUEST_KEYS if k in payload}
        payload["requestedBy"] = actor.id
        payload["status"] = "pending"
    values = validate_payload(payload, REQUEST_FIELDS)
    _check_request_refs(s, values)
    assignees = _assignees(s, payload)

    now = datetime.utcnow()
    values.setdefault("requested_date", None)
    if values["requested_date"] is None:
        values["requested_date"] = date.today()
    req = ServiceRequest(**values, created_at=now, updated_at=now)
    if assignees is not None:
        req.assignees = assignees
    s.add(req)
    _stamp_approval(req, actor)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="service_request.create",
        entity_type="ServiceRequest",
        entity_id=str(req.id),
        metadata={"title": req.title, "service_id": req.service_id, "status": req.status},
    )
    return req


def update_request(s: "Session", req: ServiceRequest, payload: dict, actor: "Principal") -> ServiceRequest:
    values = validate_payload(payload, REQUEST_FIELDS, partial=True)
    _check_request_refs(s, values)
    assignees = _assignees(s, payload)
    changes = apply_values(req, values)
    if assignees is not None:
        old_ids = sorted(u.id for u in req.assignees)
        new_ids = sorted(u.id for u in assignees)
        if old_ids != new_ids:
            changes["asiginedto"] = {"old": old_ids, "new": new_ids}
            req.assignees = assignees
            req.updated_at = datetime.utcnow()
    _stamp_approval(req, actor)
    record_event(
        s,
        actor=actor,
        action="service_request.edit",
        entity_type="ServiceRequest",
        entity_id=str(req.id),
        metadata={"title": req.title, "changes": changes},
    )
    return req


def delete_request(s: "Session", req: ServiceRequest, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="service_request.delete",
        entity_type="ServiceRequest",
        entity_id=str(req.id),
        metadata={"title": req.title},
    )
    s.delete(req)
