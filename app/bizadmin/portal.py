"""
Customer portal: customers sign in with their own token and see only their records.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, session, url_for

from app.bizadmin.auth import CUSTOMER_TOKEN, api_client, login_throttled, login_form_config
from app.bizadmin.dynamic import DynamicForm, DynamicTable, client_for_app
from app.bizadmin.dynamic.schema import FormConfig, FormField, RowAction, TableActions, email, min_length, required
from app.bizadmin.dynamic.table import row_id
from app.bizadmin.modules.customers.models import BUSINESS_SCALES
from app.bizadmin.modules.services.screens import REQUEST_CUSTOMER_FIELDS
from app.bizadmin.screens import choice_options, get_screen

bp = Blueprint("portal", __name__)

PORTAL_TABLES = (
    ("projects", "/api/projects/filterdByCustomer"),
    ("contracts", "/api/contracts/filterdByCustomer"),
    ("transactions", "/api/transactions/byCustomer"),
)


def require_customer(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not getattr(g, "current_customer", None):
            return redirect(url_for("portal.login_get", next=request.path))
        return fn(*args, **kwargs)

    return wrapped


def signup_form_config() -> FormConfig:
    def _transform(values: dict) -> dict:
        body = dict(values)
        body["action"] = "signup"
        return body

    return FormConfig(
        title="Create an account",
        fields=(
            FormField("name", "Full name", required=True),
            FormField("phoneNumber", "Phone number", "tel", required=True),
            FormField("email", "Email", "email", validation=(email("Enter a valid email address"),)),
            FormField("password", "Password", "password", required=True, validation=(min_length(6, "Password must be at least 6 characters"),)),
            FormField("businessName", "Business name"),
            FormField("businessScale", "Business scale", "select", options=choice_options(BUSINESS_SCALES)),
        ),
        endpoint="/api/auth",
        submit_text="Sign up",
        reset_after_submit=False,
        transform=_transform,
    )


def _start_session(result: Any) -> None:
    data = (result or {}).get("data") or {}
    session[CUSTOMER_TOKEN] = data.get("token")


@bp.get("/login")
def login_get():
    form = DynamicForm(login_form_config("customer", endpoint="/api/customers/login"))
    return render_template("portal/login.html", form=form, next=(request.args.get("next") or "").strip())


@bp.post("/login")
def login_post():
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"
    if login_throttled(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("portal.login_get"))

    form = DynamicForm(login_form_config("customer", endpoint="/api/customers/login"))
    form.load(request.form)
    if not form.submit(client_for_app(current_app._get_current_object())):
        if form.submit_error:
            flash(form.submit_error, "danger")
        return render_template("portal/login.html", form=form, next=nxt), 401 if form.submit_error else 400

    _start_session(form.result)
    if nxt.startswith("/portal") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("portal.index"))


@bp.get("/signup")
def signup_get():
    return render_template("portal/signup.html", form=DynamicForm(signup_form_config()))


@bp.post("/signup")
def signup_post():
    form = DynamicForm(signup_form_config())
    form.load(request.form)
    if not form.submit(client_for_app(current_app._get_current_object())):
        if form.submit_error:
            flash(form.submit_error, "danger")
        return render_template("portal/signup.html", form=form), 400
    _start_session(form.result)
    flash("Welcome! Your account is ready.", "success")
    return redirect(url_for("portal.index"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    session.pop(CUSTOMER_TOKEN, None)
    return redirect(url_for("portal.login_get"))


@bp.get("/")
@require_customer
def index():
    customer = g.current_customer
    client = api_client(CUSTOMER_TOKEN)
    tables = []
    for key, endpoint in PORTAL_TABLES:
        screen = get_screen(key)
        if screen is None:
            continue
        table = DynamicTable(
            screen.table_config(TableActions(), endpoint=endpoint, headers={"customerId": customer.id}, filters=(), add_url=None)
        )
        table.fetch(client)
        tables.append(table)

    services = get_screen("services")
    if services is not None:
        catalog = DynamicTable(services.table_config(TableActions(), title="Available services", filters=(), add_url=None))
        catalog.fetch(client)
        tables.append(catalog)

    tasks = _task_table(customer.id)
    if tasks is not None:
        tasks.fetch(client)
        tables.append(tasks)

    for t in tables:
        if t.error:
            flash(f"{t.config.title}: {t.error}", "danger")
    return render_template("portal/index.html", customer=customer, tables=tables)


def _request_form() -> DynamicForm:
    return DynamicForm(
        FormConfig(
            title="Request a service",
            fields=REQUEST_CUSTOMER_FIELDS,
            endpoint="/api/service-requests",
            submit_text="Send request",
        )
    )


@bp.get("/requests/new")
@require_customer
def request_new_get():
    form = _request_form()
    form.load_options(api_client(CUSTOMER_TOKEN))
    return render_template("dynamic/form.html", form=form, screen=None, cancel_url=url_for("portal.index"))


@bp.post("/requests/new")
@require_customer
def request_new_post():
    client = api_client(CUSTOMER_TOKEN)
    form = _request_form()
    form.load(request.form, request.files)
    if form.submit(client):
        flash("Your request has been sent.", "success")
        return redirect(url_for("portal.index"))
    if form.submit_error:
        flash(form.submit_error, "danger")
    form.load_options(client)
    return render_template("dynamic/form.html", form=form, screen=None, cancel_url=url_for("portal.index")), 400


# ---------- task review ----------
def _awaiting_review(row: dict) -> bool:
    return row.get("status") == "accepted"


def _task_table(customer_id: str) -> DynamicTable | None:
    screen = get_screen("tasks")
    if screen is None:
        return None
    actions = TableActions(
        custom=(
            RowAction(
                "approve",
                "Approve",
                lambda row: url_for("portal.task_approve", task_id=row_id(row)),
                condition=_awaiting_review,
                method="POST",
            ),
            RowAction(
                "reject",
                "Reject",
                lambda row: url_for("portal.task_reject_get", task_id=row_id(row)),
                condition=_awaiting_review,
                css="danger",
            ),
        )
    )
    return DynamicTable(
        screen.table_config(
            actions,
            title="Tasks awaiting your review",
            description=None,
            endpoint="/api/customer-tasks",
            headers={"customerId": customer_id},
            filters=(),
            add_url=None,
        )
    )


def _reject_form(task_id: str) -> DynamicForm:
    def _transform(values: dict) -> dict:
        return {"taskId": task_id, "action": "reject", "rejectionReason": values.get("rejectionReason")}

    return DynamicForm(
        FormConfig(
            title="Reject delivered work",
            fields=(
                FormField(
                    "rejectionReason",
                    "What needs to change?",
                    "textarea",
                    rows=4,
                    validation=(required("Rejection reason is required"),),
                ),
            ),
            endpoint="/api/customer-tasks",
            method="PUT",
            submit_text="Send back for review",
            reset_after_submit=False,
            transform=_transform,
        )
    )


@bp.post("/tasks/<task_id>/approve")
@require_customer
def task_approve(task_id: str):
    resp = api_client(CUSTOMER_TOKEN).put("/api/customer-tasks", json_body={"taskId": task_id, "action": "approve"})
    if resp.ok:
        flash("Task approved.", "success")
    else:
        flash(resp.error_message("Failed to approve task"), "danger")
    return redirect(url_for("portal.index"))


@bp.get("/tasks/<task_id>/reject")
@require_customer
def task_reject_get(task_id: str):
    if not task_id.isdigit():
        abort(404)
    return render_template("dynamic/form.html", form=_reject_form(task_id), screen=None, cancel_url=url_for("portal.index"))


@bp.post("/tasks/<task_id>/reject")
@require_customer
def task_reject_post(task_id: str):
    if not task_id.isdigit():
        abort(404)
    form = _reject_form(task_id)
    form.load(request.form)
    if form.submit(api_client(CUSTOMER_TOKEN)):
        flash("Task sent back for review.", "success")
        return redirect(url_for("portal.index"))
    if form.submit_error:
        flash(form.submit_error, "danger")
    return render_template("dynamic/form.html", form=form, screen=None, cancel_url=url_for("portal.index")), 400
