from __future__ import annotations

import os
from typing import Any

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for
from sqlalchemy import text

from app.bizadmin.auth import api_client
from app.bizadmin.db import db_session
from app.bizadmin.dynamic import DynamicForm, DynamicModal, DynamicTable
from app.bizadmin.dynamic.schema import RowAction, TableActions
from app.bizadmin.dynamic.table import next_sort, row_id
from app.bizadmin.models import AuditEvent
from app.bizadmin.rbac import require_permission, user_has_permission
from app.bizadmin.screens import SCREENS, Screen, get_screen
from app.bizadmin.tokens import Principal

bp = Blueprint("admin", __name__)


def _current_user() -> Principal:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _screen(key: str, action: str) -> Screen:
    screen = get_screen(key)
    if screen is None:
        abort(404)
    perm = screen.permission(action)
    if not user_has_permission(_current_user(), perm):
        g.missing_permission = perm
        abort(403)
    return screen


def _can(screen: Screen, action: str) -> bool:
    return user_has_permission(_current_user(), screen.permission(action))


def _row_actions(screen: Screen) -> TableActions:
    def link(endpoint: str):
        return lambda row: url_for(endpoint, screen_key=screen.key, item_id=row_id(row))

    return TableActions(
        view=RowAction("view", "View", link("admin.item_view")) if _can(screen, "view") else None,
        edit=RowAction("edit", "Edit", link("admin.item_edit_get")) if _can(screen, "edit") else None,
        delete=RowAction("delete", "Delete", link("admin.item_delete_get"), css="danger")
        if _can(screen, "delete")
        else None,
        activate=RowAction("activate", "Toggle active", link("admin.item_toggle_active"), method="POST")
        if screen.toggle_active and _can(screen, "edit")
        else None,
    )


def _list_table(screen: Screen, **overrides: Any) -> DynamicTable:
    add_url = url_for("admin.item_new_get", screen_key=screen.key) if _can(screen, "create") else None
    overrides.setdefault("add_url", add_url)
    table = DynamicTable(screen.table_config(_row_actions(screen), **overrides))
    table.load_filters(request.args)
    return table


def _args_url(**changes: Any) -> str:
    args = request.args.to_dict()
    args.update({k: v for k, v in changes.items() if v is not None})
    return url_for(request.endpoint or "admin.index", **(request.view_args or {}), **args)


def _render_table(table: DynamicTable, screen: Screen | None, **ctx: Any):
    if table.error:
        flash(table.error, "danger")
    table.set_page(table.page)

    def sort_url(key: str) -> str:
        nxt = next_sort(table.sort, key)
        return _args_url(sort=nxt.key, dir=nxt.direction, page=1)

    def page_url(page: int) -> str:
        return _args_url(page=page)

    return render_template("dynamic/table.html", table=table, screen=screen, sort_url=sort_url, page_url=page_url, **ctx)


# ---------- dashboard ----------
@bp.get("/")
@require_permission("admin.view")
def index():
    s = db_session()
    status: dict[str, Any] = {
        "env": (os.environ.get("ENV") or "development").strip().lower(),
        "db_connected": False,
        "db_error": None,
        "storage_backend": (os.environ.get("STORAGE_BACKEND") or "local").strip().lower() or "local",
    }
    try:
        s.execute(text("SELECT 1"))
        status["db_connected"] = True
    except Exception as e:
        status["db_error"] = str(e)

    user = _current_user()
    screens = [sc for sc in SCREENS.values() if user_has_permission(user, sc.permission("view"))]
    return render_template("admin/index.html", screens=screens, system_status=status)


# ---------- personal views ----------
@bp.get("/me/tasks")
@require_permission("me.view")
def my_tasks():
    screen = get_screen("tasks")
    if screen is None:
        abort(404)
    user = _current_user()
    table = _list_table(
        screen,
        title="My tasks",
        description=None,
        endpoint="/api/tasks/byUsers",
        headers={"id": user.id},
        add_url=None,
    )
    table.fetch(api_client())
    return _render_table(table, screen)


@bp.get("/me/transactions")
@require_permission("me.view")
def my_transactions():
    screen = get_screen("transactions")
    if screen is None:
        abort(404)
    user = _current_user()
    table = DynamicTable(
        screen.table_config(TableActions(), title="My transactions", endpoint="/api/transactions/byUsers", headers={"id": user.id})
    )
    table.load_filters(request.args)
    table.fetch(api_client())
    return _render_table(table, screen)


# ---------- audit ----------
@bp.get("/audit")
@require_permission("audit.view")
def audit_list():
    s = db_session()
    action = (request.args.get("action") or "").strip()
    entity_type = (request.args.get("entity_type") or "").strip()
    try:
        page = max(int(request.args.get("page") or "1"), 1)
    except ValueError:
        page = 1
    per_page = 50

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.ilike(f"%{action}%"))
    if entity_type:
        q = q.filter(AuditEvent.entity_type == entity_type)
    total = q.count()
    events = (
        q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return render_template(
        "admin/audit.html",
        events=events,
        action=action,
        entity_type=entity_type,
        page=page,
        pages=max((total + per_page - 1) // per_page, 1),
    )


# ---------- generic record screens ----------
@bp.get("/<screen_key>")
@require_permission("admin.view")
def item_list(screen_key: str):
    screen = _screen(screen_key, "view")
    table = _list_table(screen)
    table.fetch(api_client())
    return _render_table(table, screen)


@bp.get("/<screen_key>/new")
@require_permission("admin.view")
def item_new_get(screen_key: str):
    screen = _screen(screen_key, "create")
    form = DynamicForm(screen.form_config())
    form.load_options(api_client())
    return render_template("dynamic/form.html", form=form, screen=screen, cancel_url=url_for("admin.item_list", screen_key=screen.key))


@bp.post("/<screen_key>/new")
@require_permission("admin.view")
def item_new_post(screen_key: str):
    screen = _screen(screen_key, "create")
    client = api_client()
    form = DynamicForm(screen.form_config())
    form.load(request.form, request.files)
    if form.submit(client):
        flash(f"{screen.singular} created.", "success")
        return redirect(url_for("admin.item_list", screen_key=screen.key))
    if form.submit_error:
        flash(form.submit_error, "danger")
    form.load_options(client)
    cancel_url = url_for("admin.item_list", screen_key=screen.key)
    return render_template("dynamic/form.html", form=form, screen=screen, cancel_url=cancel_url), 400


def _open_modal(screen: Screen, kind: str, item_id: str) -> DynamicModal:
    modal = DynamicModal(screen.modal_config(kind))
    modal.open(item_id)
    if not modal.load(api_client()):
        flash(modal.error or "Failed to load item", "danger")
        abort(404)
    return modal


def _render_modal(modal: DynamicModal, screen: Screen, status: int = 200):
    back_url = url_for("admin.item_list", screen_key=screen.key)
    return render_template("dynamic/modal.html", modal=modal, screen=screen, back_url=back_url), status


@bp.get("/<screen_key>/<item_id>")
@require_permission("admin.view")
def item_view(screen_key: str, item_id: str):
    screen = _screen(screen_key, "view")
    return _render_modal(_open_modal(screen, "view", item_id), screen)


@bp.get("/<screen_key>/<item_id>/edit")
@require_permission("admin.view")
def item_edit_get(screen_key: str, item_id: str):
    screen = _screen(screen_key, "edit")
    return _render_modal(_open_modal(screen, "edit", item_id), screen)


@bp.post("/<screen_key>/<item_id>/edit")
@require_permission("admin.view")
def item_edit_post(screen_key: str, item_id: str):
    screen = _screen(screen_key, "edit")
    modal = _open_modal(screen, "edit", item_id)
    modal.load_form(request.form, request.files)
    if modal.confirm(api_client()):
        flash(f"{screen.singular} updated.", "success")
        return redirect(url_for("admin.item_list", screen_key=screen.key))
    if modal.error:
        flash(modal.error, "danger")
    return _render_modal(modal, screen, 400)


@bp.get("/<screen_key>/<item_id>/delete")
@require_permission("admin.view")
def item_delete_get(screen_key: str, item_id: str):
    screen = _screen(screen_key, "delete")
    modal = DynamicModal(screen.modal_config("delete"))
    modal.open(item_id)
    return _render_modal(modal, screen)


@bp.post("/<screen_key>/<item_id>/delete")
@require_permission("admin.view")
def item_delete_post(screen_key: str, item_id: str):
    screen = _screen(screen_key, "delete")
    modal = DynamicModal(screen.modal_config("delete"))
    modal.open(item_id)
    if modal.confirm(api_client()):
        flash(f"{screen.singular} deleted.", "success")
        return redirect(url_for("admin.item_list", screen_key=screen.key))
    flash(modal.error or "Delete failed", "danger")
    return _render_modal(modal, screen, 400)


@bp.post("/<screen_key>/<item_id>/toggle-active")
@require_permission("admin.view")
def item_toggle_active(screen_key: str, item_id: str):
    screen = _screen(screen_key, "edit")
    if not screen.toggle_active:
        abort(404)
    client = api_client()
    resp = client.get(screen.detail_endpoint, headers={"id": item_id})
    if not resp.ok or not isinstance(resp.data, dict):
        flash(resp.error_message("Failed to load item"), "danger")
        return redirect(url_for("admin.item_list", screen_key=screen.key))
    table = DynamicTable(screen.table_config(TableActions()))
    if table.toggle_active(client, resp.data):
        state = "deactivated" if resp.data.get("isActive") else "activated"
        flash(f"{screen.singular} {state}.", "success")
    else:
        flash(table.error or "Failed to update status", "danger")
    return redirect(url_for("admin.item_list", screen_key=screen.key))
