from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from werkzeug.security import check_password_hash, generate_password_hash

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
from app.bizadmin.models import User
from app.bizadmin.modules.customers.models import BUSINESS_SCALES, Customer

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


MIN_PASSWORD_LENGTH = 6

FIELDS = (
    Field("name", "name", required=True),
    Field("phoneNumber", "phone_number", required=True),
    Field("email", "email"),
    Field("businessName", "business_name"),
    Field("businessScale", "business_scale", choices=BUSINESS_SCALES),
    Field("address", "address"),
    Field("website", "website"),
    Field("isActive", "is_active", "bool"),
    Field("isVip", "is_vip", "bool"),
    Field("verifiedBy", "verified_by_id", "ref"),
    Field("verifiedAt", "verified_at", "datetime"),
)


def serialize_customer(customer: Customer) -> dict[str, Any]:
    out = dump(customer, FIELDS)
    out["verifiedBy"] = ref_summary(customer.verified_by, "name", "email")
    return out


def customer_summary(customer: Customer | None) -> dict[str, Any] | None:
    return ref_summary(customer, "name", "email", "phoneNumber", "businessName")


def _password_hash(payload: dict, *, required: bool) -> str | None:
    raw = payload.get("password")
    if raw is None or str(raw) == "":
        if required:
            raise PayloadError(["password is required."])
        return None
    if len(str(raw)) < MIN_PASSWORD_LENGTH:
        raise PayloadError([f"password must be at least {MIN_PASSWORD_LENGTH} characters."])
    return generate_password_hash(str(raw))


def _ensure_unique_phone(s: "Session", phone_number: str | None, exclude_id: int | None = None) -> None:
    if not phone_number:
        return
    q = s.query(Customer).filter(Customer.phone_number == phone_number)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Customer with this phone number already exists")


def _stamp_verification(values: dict[str, Any]) -> None:
    if values.get("verified_by_id") is not None and values.get("verified_at") is None:
        values["verified_at"] = datetime.utcnow()


def create_customer(
    s: "Session", payload: dict, actor: "Principal | None", *, require_password: bool = False
) -> Customer:
    values = validate_payload(payload, FIELDS)
    password_hash = _password_hash(payload, required=require_password)
    _ensure_unique_phone(s, values["phone_number"])
    check_ref(s, User, values.get("verified_by_id"), "verifiedBy")
    _stamp_verification(values)
    now = datetime.utcnow()
    customer = Customer(**values, password_hash=password_hash, created_at=now, updated_at=now)
    s.add(customer)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="customer.create",
        entity_type="Customer",
        entity_id=str(customer.id),
        metadata={"name": customer.name, "phone_number": customer.phone_number},
    )
    return customer


def update_customer(s: "Session", customer: Customer, payload: dict, actor: "Principal") -> Customer:
    values = validate_payload(payload, FIELDS, partial=True)
    _ensure_unique_phone(s, values.get("phone_number"), exclude_id=customer.id)
    check_ref(s, User, values.get("verified_by_id"), "verifiedBy")
    if "verified_by_id" in values and customer.verified_at is None:
        _stamp_verification(values)
    changes = apply_values(customer, values)
    password_hash = _password_hash(payload, required=False)
    if password_hash:
        customer.password_hash = password_hash
        customer.updated_at = datetime.utcnow()
        changes["password"] = {"old": "***", "new": "***"}
    record_event(
        s,
        actor=actor,
        action="customer.edit",
        entity_type="Customer",
        entity_id=str(customer.id),
        metadata={"name": customer.name, "changes": changes},
    )
    return customer


def delete_customer(s: "Session", customer: Customer, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="customer.delete",
        entity_type="Customer",
        entity_id=str(customer.id),
        metadata={"name": customer.name, "phone_number": customer.phone_number},
    )
    s.delete(customer)


def authenticate_customer(s: "Session", phone_number: str, password: str) -> Customer | None:
    customer = s.query(Customer).filter(Customer.phone_number == phone_number).one_or_none()
    if customer is None or not customer.password_hash:
        return None
    if not check_password_hash(customer.password_hash, password):
        return None
    return customer
