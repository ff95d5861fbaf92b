from __future__ import annotations

from flask import current_app
from werkzeug.security import check_password_hash

from app.bizadmin.api import ApiError, bp, fail, ok, payload
from app.bizadmin.audit import record_event
from app.bizadmin.db import db_session
from app.bizadmin.models import User
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.customers.service import authenticate_customer, create_customer, serialize_customer
from app.bizadmin.modules.users.service import serialize_user
from app.bizadmin.tokens import Principal, issue_token


def token_for_user(user: User) -> tuple[str, Principal]:
    token = issue_token(
        current_app.config["JWT_SECRET"],
        subject_id=user.id,
        user_type="user",
        name=user.name,
        phone_number=user.phone_number,
        role=user.role,
        expires_days=int(current_app.config.get("JWT_EXPIRES_DAYS") or 7),
    )
    return token, Principal(id=str(user.id), user_type="user", name=user.name, role=user.role, phone_number=user.phone_number)


def token_for_customer(customer: Customer) -> tuple[str, Principal]:
    token = issue_token(
        current_app.config["JWT_SECRET"],
        subject_id=customer.id,
        user_type="customer",
        name=customer.name,
        phone_number=customer.phone_number,
        expires_days=int(current_app.config.get("JWT_EXPIRES_DAYS") or 7),
    )
    return token, Principal(id=str(customer.id), user_type="customer", name=customer.name, phone_number=customer.phone_number)


@bp.post("/auth")
def auth():
    """
    `{action: "login", phoneNumber, password}` signs in a staff user or, failing that, a customer.
    `{action: "signup", name, phoneNumber, password}` registers a customer.
    """
    data = payload()
    action = str(data.get("action") or "login").strip().lower()
    if action == "login":
        return _login(data)
    if action == "signup":
        return _signup(data)
    raise ApiError("Invalid action", 400)


def _login(data: dict):
    phone_number = str(data.get("phoneNumber") or "").strip()
    password = str(data.get("password") or "")
    if not phone_number or not password:
        raise ApiError("Phone number and password are required", 400)

    s = db_session()
    if data.get("userType") != "customer":
        user = s.query(User).filter(User.phone_number == phone_number).one_or_none()
        if user is not None and check_password_hash(user.password_hash, password):
            if not user.is_active:
                return fail("Account is disabled", 403)
            token, principal = token_for_user(user)
            record_event(s, actor=principal, action="auth.login", entity_type="User", entity_id=str(user.id))
            s.commit()
            return ok({"token": token, "userType": "user", "user": serialize_user(user)})

    if data.get("userType") != "user":
        customer = authenticate_customer(s, phone_number, password)
        if customer is not None:
            if not customer.is_active:
                return fail("Account is disabled", 403)
            token, principal = token_for_customer(customer)
            record_event(s, actor=principal, action="auth.login", entity_type="Customer", entity_id=str(customer.id))
            s.commit()
            return ok({"token": token, "userType": "customer", "user": serialize_customer(customer)})

    return fail("Invalid phone number or password", 401)


def _signup(data: dict):
    s = db_session()
    fields = {k: data.get(k) for k in ("name", "phoneNumber", "email", "businessName", "businessScale", "address", "website")}
    fields["password"] = data.get("password")
    customer = create_customer(s, fields, None, require_password=True)
    token, _principal = token_for_customer(customer)
    s.commit()
    return ok({"token": token, "userType": "customer", "user": serialize_customer(customer)}, 201)
