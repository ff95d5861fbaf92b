from __future__ import annotations

import time
import uuid
from collections import defaultdict, deque
from dataclasses import replace

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for

from app.bizadmin.audit import record_event
from app.bizadmin.db import db_session
from app.bizadmin.dynamic import ApiClient, DynamicForm, client_for_app
from app.bizadmin.dynamic.schema import FormConfig, FormField
from app.bizadmin.models import User
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.tokens import Principal, decode_unverified, is_expired, principal_from_claims

bp = Blueprint("auth", __name__)

USER_TOKEN = "userToken"
CUSTOMER_TOKEN = "customerToken"

_login_attempts: dict[str, deque[float]] = defaultdict(deque)
MAX_LOGIN_ATTEMPTS = 5
LOGIN_WINDOW_SECONDS = 300


def login_throttled(ip: str) -> bool:
    """Counts this attempt; True once the address used up its attempts inside the window."""
    now = time.monotonic()
    attempts = _login_attempts[ip]
    while attempts and attempts[0] <= now - LOGIN_WINDOW_SECONDS:
        attempts.popleft()
    if len(attempts) >= MAX_LOGIN_ATTEMPTS:
        return True
    attempts.append(now)
    return False


def login_form_config(user_type: str, endpoint: str = "/api/auth") -> FormConfig:
    def _transform(values: dict) -> dict:
        body = dict(values)
        if endpoint == "/api/auth":
            body.update(action="login", userType=user_type)
        return body

    return FormConfig(
        title="Sign in",
        fields=(
            FormField("phoneNumber", "Phone number", "tel", required=True, placeholder="+1 555 0100"),
            FormField("password", "Password", "password", required=True),
        ),
        endpoint=endpoint,
        submit_text="Sign in",
        reset_after_submit=False,
        transform=_transform,
    )


def session_principal(key: str, user_type: str) -> Principal | None:
    """
    Identity from the token stored in the session. The signature is not checked here;
    the API verifies it on every call. Expired or foreign tokens are dropped.
    """
    claims = decode_unverified(session.get(key))
    if claims is None or is_expired(claims):
        session.pop(key, None)
        return None
    principal = principal_from_claims(claims)
    if principal is None or principal.user_type != user_type:
        session.pop(key, None)
        return None
    return _with_current_account(key, principal)


def _with_current_account(key: str, principal: Principal) -> Principal | None:
    """
    Re-read the account behind the token. Deactivated or deleted accounts lose their
    session, and the role always comes from the database, not from the claim.
    """
    model = User if principal.is_staff else Customer
    try:
        account = db_session().get(model, int(principal.id))
    except ValueError:
        account = None
    if account is None or not account.is_active:
        current_app.logger.info("Dropping session for inactive %s %s", principal.user_type, principal.id)
        session.pop(key, None)
        return None
    if principal.is_staff:
        return replace(principal, name=account.name, role=account.role)
    return replace(principal, name=account.name)


def api_client(key: str = USER_TOKEN) -> ApiClient:
    return client_for_app(current_app._get_current_object(), token=session.get(key))


def load_current_user() -> None:
    """
    Loads g.current_user (staff) and g.current_customer (portal) from the session tokens.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz", "/api/")):
        g.current_user = None
        g.current_customer = None
        return
    g.current_user = session_principal(USER_TOKEN, "user")
    g.current_customer = session_principal(CUSTOMER_TOKEN, "customer")


def _safe_next(nxt: str) -> str | None:
    # only local paths, no open redirects
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    form = DynamicForm(login_form_config("user"))
    return render_template("auth/login.html", form=form, next=nxt)


@bp.post("/login")
def login_post():
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if login_throttled(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    form = DynamicForm(login_form_config("user"))
    form.load(request.form)
    if not form.submit(client_for_app(current_app._get_current_object())):
        if form.submit_error:
            s = db_session()
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=str(form.values.get("phoneNumber") or ""),
                reason=form.submit_error,
            )
            s.commit()
            flash(form.submit_error, "danger")
        return render_template("auth/login.html", form=form, next=nxt), 401 if form.submit_error else 400

    data = (form.result or {}).get("data") or {}
    session[USER_TOKEN] = data.get("token")
    _login_attempts[ip].clear()
    current_app.logger.info("Staff login phone=%s request_id=%s", form.values.get("phoneNumber"), g.request_id)
    return redirect(_safe_next(nxt) or url_for("admin.index"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
        s.commit()
    session.pop(USER_TOKEN, None)
    return redirect(url_for("routes.index"))
