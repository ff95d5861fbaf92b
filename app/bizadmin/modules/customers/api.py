from __future__ import annotations

from flask import request

from app.bizadmin.api import (
    ApiError,
    body_id,
    bool_arg,
    bp,
    current_principal,
    ensure_customer_scope,
    fail,
    get_or_404,
    header_id,
    list_response,
    ok,
    payload,
    require_token,
)
from app.bizadmin.api.auth import token_for_customer
from app.bizadmin.audit import record_event
from app.bizadmin.db import db_session
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import (
    authenticate_customer,
    create_customer,
    delete_customer,
    serialize_customer,
    update_customer,
)


@bp.get("/customers")
@require_token("user")
def customers_list():
    s = db_session()
    q = s.query(Customer).order_by(Customer.created_at.desc(), Customer.id.desc())
    for arg, column in (("isActive", Customer.is_active), ("isVip", Customer.is_vip)):
        value = bool_arg(arg)
        if value is not None:
            q = q.filter(column == value)
    scale = (request.args.get("businessScale") or "").strip()
    if scale:
        q = q.filter(Customer.business_scale == scale)
    return list_response(
        q, serialize_customer, Customer.name, Customer.phone_number, Customer.business_name, Customer.email
    )


@bp.post("/customers")
@require_token("user")
def customers_create():
    s = db_session()
    customer = create_customer(s, payload(), current_principal())
    s.commit()
    return ok(serialize_customer(customer), 201)


@bp.put("/customers")
@require_token("user")
def customers_put():
    s = db_session()
    data = payload()
    customer = get_or_404(Customer, body_id(data), "Customer")
    update_customer(s, customer, data, current_principal())
    s.commit()
    return ok(serialize_customer(customer))


@bp.get("/customers/detailes")
@require_token("user")
def customers_detail():
    return ok(serialize_customer(get_or_404(Customer, header_id(), "Customer")))


@bp.patch("/customers/detailes")
@require_token("user")
def customers_patch():
    s = db_session()
    customer = get_or_404(Customer, header_id(), "Customer")
    update_customer(s, customer, payload(), current_principal())
    s.commit()
    return ok(serialize_customer(customer))


@bp.delete("/customers/detailes")
@require_token("user")
def customers_delete():
    s = db_session()
    customer = get_or_404(Customer, header_id(), "Customer")
    customer_id = str(customer.id)
    delete_customer(s, customer, current_principal())
    s.commit()
    return ok({"_id": customer_id}, message="Customer deleted")


@bp.get("/customers/filterdByCustomer")
@require_token()
def customers_by_customer():
    customer_id = header_id("customerId")
    ensure_customer_scope(customer_id)
    return ok(serialize_customer(get_or_404(Customer, customer_id, "Customer")))


@bp.post("/customers/login")
def customers_login():
    data = payload()
    phone_number = str(data.get("phoneNumber") or "").strip()
    password = str(data.get("password") or "")
    if not phone_number or not password:
        raise ApiError("Phone number and password are required", 400)

    s = db_session()
    customer = authenticate_customer(s, phone_number, password)
    if customer is None:
        return fail("Invalid phone number or password", 401)
    if not customer.is_active:
        return fail("Account is disabled", 403)
    token, principal = token_for_customer(customer)
    record_event(s, actor=principal, action="auth.login", entity_type="Customer", entity_id=str(customer.id))
    s.commit()
    return ok({"customer": serialize_customer(customer), "token": token}, customer=serialize_customer(customer), token=token)
