from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bizadmin.audit import record_event
from app.bizadmin.crud import Field, apply_values, check_ref, dump, validate_payload
from app.bizadmin.models import User
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import customer_summary
from app.bizadmin.modules.transactions.models import TRANSACTION_TYPES, Transaction
from app.bizadmin.modules.users.service import user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bizadmin.tokens import Principal


FIELDS = (
    Field("date", "date", "date", required=True),
    Field("subject", "subject", required=True),
    Field("paid", "paid", "float", minimum=0, nullable=False),
    Field("received", "received", "float", minimum=0, nullable=False),
    Field("type", "type", choices=TRANSACTION_TYPES, nullable=False),
    Field("users", "user_id", "ref"),
    Field("customer", "customer_id", "ref"),
)


def serialize_transaction(tx: Transaction) -> dict[str, Any]:
    out = dump(tx, FIELDS)
    out["users"] = user_summary(tx.user)
    out["customer"] = customer_summary(tx.customer)
    return out


def summarize(rows: list[Transaction]) -> dict[str, float]:
    paid = sum(t.paid or 0 for t in rows)
    received = sum(t.received or 0 for t in rows)
    return {"totalPaid": paid, "totalReceived": received, "balance": received - paid}


def _check(s: "Session", values: dict[str, Any]) -> None:
    check_ref(s, User, values.get("user_id"), "users")
    check_ref(s, Customer, values.get("customer_id"), "customer")


def create_transaction(s: "Session", payload: dict, actor: "Principal") -> Transaction:
    values = validate_payload(payload, FIELDS)
    _check(s, values)
    now = datetime.utcnow()
    tx = Transaction(**values, created_at=now, updated_at=now)
    s.add(tx)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="transaction.create",
        entity_type="Transaction",
        entity_id=str(tx.id),
        metadata={"subject": tx.subject, "paid": tx.paid, "received": tx.received, "type": tx.type},
    )
    return tx


def update_transaction(s: "Session", tx: Transaction, payload: dict, actor: "Principal") -> Transaction:
    values = validate_payload(payload, FIELDS, partial=True)
    _check(s, values)
    changes = apply_values(tx, values)
    record_event(
        s,
        actor=actor,
        action="transaction.edit",
        entity_type="Transaction",
        entity_id=str(tx.id),
        metadata={"subject": tx.subject, "changes": changes},
    )
    return tx


def delete_transaction(s: "Session", tx: Transaction, actor: "Principal") -> None:
    record_event(
        s,
        actor=actor,
        action="transaction.delete",
        entity_type="Transaction",
        entity_id=str(tx.id),
        metadata={"subject": tx.subject, "paid": tx.paid, "received": tx.received},
    )
    s.delete(tx)
