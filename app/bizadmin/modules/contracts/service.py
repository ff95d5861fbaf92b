from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import ConflictError, Field, PayloadError, apply_values, check_ref, dump, validate_payload
from app.bizadmin.models import User
from app.bizadmin.modules.contracts.models import CONTRACT_STATUSES, CONTRACT_TYPES, Contract
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import customer_summary
from app.bizadmin.modules.users.service import user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


FIELDS = (
    Field("customerId", "customer_id", "ref", required=True),
    Field("contractNumber", "contract_number", required=True),
    Field("status", "status", choices=CONTRACT_STATUSES, nullable=False),
    Field("contractType", "contract_type", choices=CONTRACT_TYPES, nullable=False),
    Field("signedDate", "signed_date", "date"),
    Field("expiryDate", "expiry_date", "date"),
    Field("terms", "terms"),
    Field("verifier", "verifier_id", "ref"),
)


def serialize_contract(contract: Contract) -> dict[str, Any]:
    out = dump(contract, FIELDS)
    out["customerId"] = customer_summary(contract.customer)
    out["verifier"] = user_summary(contract.verifier)
    return out


def contract_summary(contract: Contract | None) -> dict[str, Any] | None:
    if contract is None:
        return None
    return {"_id": str(contract.id), "contractNumber": contract.contract_number, "status": contract.status}


def _check(s: "Session", contract: Contract | None, values: dict[str, Any]) -> None:
    if "customer_id" in values:
        check_ref(s, Customer, values["customer_id"], "customerId")
    check_ref(s, User, values.get("verifier_id"), "verifier")

    if "contract_number" in values:
        q = s.query(Contract).filter(Contract.contract_number == values["contract_number"])
        if contract is not None:
            q = q.filter(Contract.id != contract.id)
        if q.first() is not None:
            raise ConflictError("Contract with this number already exists")

    signed = values.get("signed_date", contract.signed_date if contract else None)
    expiry = values.get("expiry_date", contract.expiry_date if contract else None)
    if signed and expiry and expiry < signed:
        raise PayloadError(["expiryDate must be on or after signedDate."])


def create_contract(s: "Session", payload: dict, actor: "Principal") -> Contract:
    values = validate_payload(payload, FIELDS)
    _check(s, None, values)
    now = datetime.utcnow()
    contract = Contract(**values, created_at=now, updated_at=now)
    s.add(contract)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="contract.create",
        entity_type="Contract",
        entity_id=str(contract.id),
        metadata={"contract_number": contract.contract_number, "customer_id": contract.customer_id},
    )
    return contract


def update_contract(s: "Session", contract: Contract, payload: dict, actor: "Principal") -> Contract:
    values = validate_payload(payload, FIELDS, partial=True)
    _check(s, contract, values)
    changes = apply_values(contract, values)
    record_event(
        s,
        actor=actor,
        action="contract.edit",
        entity_type="Contract",
        entity_id=str(contract.id),
        metadata={"contract_number": contract.contract_number, "changes": changes},
    )
    return contract


def delete_contract(s: "Session", contract: Contract, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="contract.delete",
        entity_type="Contract",
        entity_id=str(contract.id),
        metadata={"contract_number": contract.contract_number},
    )
    s.delete(contract)
