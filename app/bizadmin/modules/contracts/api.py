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
from app.bizadmin.modules.contracts.models import Contract
from app.bizadmin.modules.contracts.service import create_contract, delete_contract, serialize_contract, update_contract


@bp.get("/contracts")
@require_token("user")
def contracts_list():
    s = db_session()
    q = s.query(Contract).order_by(Contract.created_at.desc(), Contract.id.desc())
    status = (request.args.get("status") or "").strip()
    if status:
        q = q.filter(Contract.status == status)
    customer_id = (request.args.get("customerId") or "").strip()
    if customer_id.isdigit():
        q = q.filter(Contract.customer_id == int(customer_id))
    return list_response(q, serialize_contract, Contract.contract_number, Contract.terms)


@bp.post("/contracts")
@require_token("user")
def contracts_create():
    s = db_session()
    contract = create_contract(s, payload(), current_principal())
    s.commit()
    return ok(serialize_contract(contract), 201)


@bp.get("/contracts/detailes")
@require_token("user")
def contracts_detail():
    return ok(serialize_contract(get_or_404(Contract, header_id(), "Contract")))


@bp.patch("/contracts/detailes")
@require_token("user")
def contracts_patch():
    s = db_session()
    contract = get_or_404(Contract, header_id(), "Contract")
    update_contract(s, contract, payload(), current_principal())
    s.commit()
    return ok(serialize_contract(contract))


@bp.delete("/contracts/detailes")
@require_token("user")
def contracts_delete():
    s = db_session()
    contract = get_or_404(Contract, header_id(), "Contract")
    contract_id = str(contract.id)
    delete_contract(s, contract, current_principal())
    s.commit()
    return ok({"_id": contract_id}, message="Contract deleted")


@bp.get("/contracts/filterdByCustomer")
@require_token()
def contracts_by_customer():
    customer_id = header_id("customerId")
    ensure_customer_scope(customer_id)
    s = db_session()
    q = s.query(Contract).filter(Contract.customer_id == customer_id).order_by(Contract.created_at.desc())
    return ok([serialize_contract(c) for c in q.all()])
