from __future__ import annotations

from flask import request

from app.bizadmin.api import (
    ApiError,
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
from app.bizadmin.modules.transactions.models import Transaction
from app.bizadmin.modules.transactions.service import (
    create_transaction,
    delete_transaction,
    serialize_transaction,
    summarize,
    update_transaction,
)
from app.bizadmin.utils import parse_date


def _date_arg(name: str):
    try:
        return parse_date(request.args.get(name))
    except ValueError:
        raise ApiError(f"Invalid {name}", 400) from None


@bp.get("/transactions")
@require_token("user")
def transactions_list():
    s = db_session()
    q = s.query(Transaction).order_by(Transaction.date.desc(), Transaction.id.desc())
    tx_type = (request.args.get("type") or "").strip()
    if tx_type:
        q = q.filter(Transaction.type == tx_type)
    date_from = _date_arg("dateFrom")
    if date_from:
        q = q.filter(Transaction.date >= date_from)
    date_to = _date_arg("dateTo")
    if date_to:
        q = q.filter(Transaction.date <= date_to)
    return list_response(q, serialize_transaction, Transaction.subject)


@bp.post("/transactions")
@require_token("user")
def transactions_create():
    s = db_session()
    tx = create_transaction(s, payload(), current_principal())
    s.commit()
    return ok(serialize_transaction(tx), 201)


@bp.get("/transactions/detailes")
@require_token("user")
def transactions_detail():
    return ok(serialize_transaction(get_or_404(Transaction, header_id(), "Transaction")))


@bp.patch("/transactions/detailes")
@require_token("user")
def transactions_patch():
    s = db_session()
    tx = get_or_404(Transaction, header_id(), "Transaction")
    update_transaction(s, tx, payload(), current_principal())
    s.commit()
    return ok(serialize_transaction(tx))


@bp.delete("/transactions/detailes")
@require_token("user")
def transactions_delete():
    s = db_session()
    tx = get_or_404(Transaction, header_id(), "Transaction")
    tx_id = str(tx.id)
    delete_transaction(s, tx, current_principal())
    s.commit()
    return ok({"_id": tx_id}, message="Transaction deleted")


@bp.get("/transactions/byCustomer")
@require_token()
def transactions_by_customer():
    customer_id = header_id("customerId")
    ensure_customer_scope(customer_id)
    s = db_session()
    rows = s.query(Transaction).filter(Transaction.customer_id == customer_id).order_by(Transaction.date.desc()).all()
    return ok([serialize_transaction(t) for t in rows], summary=summarize(rows))


@bp.get("/transactions/byUsers")
@require_token("user")
def transactions_by_user():
    user_id = header_id()
    s = db_session()
    rows = s.query(Transaction).filter(Transaction.user_id == user_id).order_by(Transaction.date.desc()).all()
    return ok([serialize_transaction(t) for t in rows], summary=summarize(rows))
