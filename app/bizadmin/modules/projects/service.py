from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import Field, PayloadError, apply_values, check_ref, dump, ref_ids, validate_payload
from app.bizadmin.models import User
from app.bizadmin.modules.contracts.models import Contract
from app.bizadmin.modules.contracts.service import contract_summary
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import customer_summary
from app.bizadmin.modules.projects.models import PAYMENT_STATUSES, PROJECT_STATUSES, Project
from app.bizadmin.modules.services.models import Service
from app.bizadmin.modules.services.service import service_summary
from app.bizadmin.modules.users.service import user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


FIELDS = (
    Field("title", "title", required=True),
    Field("description", "description"),
    Field("customerId", "customer_id", "ref", required=True),
    Field("contractId", "contract_id", "ref"),
    Field("projectManagerId", "project_manager_id", "ref"),
    Field("status", "status", choices=PROJECT_STATUSES, nullable=False),
    Field("startDate", "start_date", "date"),
    Field("expectedEndDate", "expected_end_date", "date"),
    Field("actualEndDate", "actual_end_date", "date"),
    Field("paymentStatus", "payment_status", choices=PAYMENT_STATUSES, nullable=False),
    Field("totalPrice", "total_price", "float", minimum=0),
    Field("discount", "discount", "float", minimum=0),
    Field("finalPrice", "final_price", "float", minimum=0),
    Field("paidAmount", "paid_amount", "float", minimum=0),
    Field("notes", "notes"),
    Field("internalNotes", "internal_notes"),
)


def serialize_project(project: Project, *, include_internal: bool = True) -> dict[str, Any]:
    out = dump(project, FIELDS)
    out["customerId"] = customer_summary(project.customer)
    out["contractId"] = contract_summary(project.contract)
    out["projectManagerId"] = user_summary(project.project_manager)
    out["services"] = [service_summary(svc) for svc in project.services]
    if not include_internal:
        out.pop("internalNotes", None)
    return out


def _services(s: "Session", payload: dict) -> list[Service] | None:
    if "services" not in payload:
        return None
    return [check_ref(s, Service, sid, "services") for sid in ref_ids(payload.get("services"))]


def _check(s: "Session", project: Project | None, values: dict[str, Any]) -> None:
    if "customer_id" in values:
        check_ref(s, Customer, values["customer_id"], "customerId")
    check_ref(s, User, values.get("project_manager_id"), "projectManagerId")
    contract = check_ref(s, Contract, values.get("contract_id"), "contractId")
    customer_id = values.get("customer_id", project.customer_id if project else None)
    if contract is not None and contract.customer_id != customer_id:
        raise PayloadError(["contractId does not belong to this customer."])

    start = values.get("start_date", project.start_date if project else None)
    expected_end = values.get("expected_end_date", project.expected_end_date if project else None)
    if start and expected_end and expected_end < start:
        raise PayloadError(["expectedEndDate must be on or after startDate."])


def _price_final(project: Project, values: dict[str, Any]) -> None:
    """finalPrice follows totalPrice - discount unless it was sent explicitly."""
    if "final_price" in values:
        return
    if "total_price" not in values and "discount" not in values:
        return
    total = values.get("total_price", project.total_price)
    if total is None:
        return
    discount = values.get("discount", project.discount) or 0
    values["final_price"] = max(total - discount, 0)


def create_project(s: "Session", payload: dict, actor: "Principal") -> Project:
    values = validate_payload(payload, FIELDS)
    _check(s, None, values)
    services = _services(s, payload)
    now = datetime.utcnow()
    project = Project(created_at=now, updated_at=now)
    _price_final(project, values)
    for attr, value in values.items():
        setattr(project, attr, value)
    if services is not None:
        project.services = services
    s.add(project)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="project.create",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title, "customer_id": project.customer_id},
    )
    return project


def update_project(s: "Session", project: Project, payload: dict, actor: "Principal") -> Project:
    values = validate_payload(payload, FIELDS, partial=True)
    _check(s, project, values)
    services = _services(s, payload)
    _price_final(project, values)
    changes = apply_values(project, values)
    if services is not None:
        old_ids = sorted(svc.id for svc in project.services)
        new_ids = sorted(svc.id for svc in services)
        if old_ids != new_ids:
            changes["services"] = {"old": old_ids, "new": new_ids}
            project.services = services
            project.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="project.edit",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title, "changes": changes},
    )
    return project


def delete_project(s: "Session", project: Project, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="project.delete",
        entity_type="Project",
        entity_id=str(project.id),
        metadata={"title": project.title},
    )
    s.delete(project)
