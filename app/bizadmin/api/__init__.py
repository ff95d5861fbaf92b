"""
JSON API consumed by the dynamic engines (and by any external client).

Envelope: `{"success": true, "data": ...}` / `{"success": false, "error": "..."}`.
Record ids travel in the `id` header, customer scoping in the `customerId` header.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.bizadmin.crud import ConflictError, PayloadError, apply_search, paginate
from app.bizadmin.db import db_session
from app.bizadmin.tokens import Principal, TokenError, bearer_token, principal_from_claims, verify_token
from app.bizadmin.utils import parse_bool, parse_page_args

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)


class ApiError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def ok(data: Any = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def fail(error: str, status: int = 400, **extra: Any):
    body: dict[str, Any] = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def header_id(name: str = "id", *, required: bool = True) -> int | None:
    raw = (request.headers.get(name) or "").strip()
    if not raw:
        if required:
            raise ApiError(f"{name} header is required", 400)
        return None
    try:
        return int(raw)
    except ValueError:
        raise ApiError(f"Invalid {name}", 400) from None


def body_id(data: dict[str, Any]) -> int:
    """Record id carried in a PUT body as `id` (or `_id`)."""
    try:
        return int(str(data.get("id") or data.get("_id") or "").strip())
    except ValueError:
        raise ApiError("id is required", 400) from None


def payload() -> dict[str, Any]:
    """JSON body, or a form body where `key[]` collects into a list under `key`."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    out: dict[str, Any] = {}
    for key in request.form.keys():
        if key.endswith("[]"):
            out[key[:-2]] = request.form.getlist(key)
        else:
            out[key] = request.form.get(key)
    return out


def current_principal() -> Principal:
    p = getattr(g, "api_principal", None)
    if p is None:
        raise ApiError("Authentication required", 401)
    return p


def require_token(*user_types: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Verify the bearer token. With no arguments any principal passes; otherwise only the listed user types."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            token = bearer_token(request.headers.get("Authorization"))
            if not token:
                return fail("Authentication required", 401)
            try:
                claims = verify_token(token, current_app.config["JWT_SECRET"])
            except TokenError as e:
                logger.info("Rejected token: %s", e)
                return fail("Invalid or expired token", 401)
            principal = principal_from_claims(claims)
            if principal is None:
                return fail("Invalid or expired token", 401)
            if user_types and principal.user_type not in user_types:
                return fail("Forbidden", 403)
            if not _principal_is_active(principal):
                return fail("Account is disabled", 401)
            g.api_principal = principal
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def _principal_is_active(principal: Principal) -> bool:
    from app.bizadmin.models import User
    from app.bizadmin.modules.customers.models import Customer

    model = Customer if principal.is_customer else User
    try:
        obj = db_session().get(model, int(principal.id))
    except ValueError:
        return False
    return obj is not None and obj.is_active


def get_or_404(model: type, item_id: int | None, label: str) -> Any:
    obj = db_session().get(model, item_id) if item_id is not None else None
    if obj is None:
        raise ApiError(f"{label} not found", 404)
    return obj


def bool_arg(name: str) -> bool | None:
    try:
        return parse_bool(request.args.get(name))
    except ValueError:
        raise ApiError(f"Invalid {name}", 400) from None


def list_response(q, serializer: Callable[[Any], dict[str, Any]], *search_columns: Any):
    """`search` filters on the given columns; `page`/`limit` paginate, otherwise every row is returned."""
    q = apply_search(q, request.args.get("search"), *search_columns)
    if "page" in request.args or "limit" in request.args:
        page, limit = parse_page_args(request.args)
        items, pagination = paginate(q, page, limit)
    else:
        items = q.all()
        pagination = {"page": 1, "limit": len(items), "total": len(items), "pages": 1}
    return ok([serializer(i) for i in items], pagination=pagination)


def ensure_customer_scope(customer_id: int | None) -> None:
    """Customers may only read their own records."""
    p = current_principal()
    if p.is_customer and str(customer_id) != p.id:
        raise ApiError("Forbidden", 403)


@bp.before_request
def _request_id():
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex


@bp.errorhandler(ApiError)
def _api_error(e: ApiError):
    return fail(e.message, e.status)


@bp.errorhandler(PayloadError)
def _payload_error(e: PayloadError):
    db_session().rollback()
    return fail(e.errors[0] if len(e.errors) == 1 else "Validation failed", 400, errors=e.errors)


@bp.errorhandler(ConflictError)
def _conflict(e: ConflictError):
    db_session().rollback()
    return fail(str(e), 409)


@bp.errorhandler(IntegrityError)
def _integrity_error(e: IntegrityError):
    db_session().rollback()
    logger.warning("Integrity error on %s %s: %s", request.method, request.path, e.orig)
    return fail("A record with the same unique value already exists", 409)


@bp.errorhandler(HTTPException)
def _http_error(e: HTTPException):
    return fail(e.description or e.name, e.code or 500)


@bp.errorhandler(Exception)
def _unexpected(e: Exception):
    db_session().rollback()
    logger.exception("Unhandled API error (request_id=%s)", getattr(g, "request_id", None))
    return fail("Internal server error", 500)


# Route modules register themselves on `bp`.
from app.bizadmin.api import auth, upload  # noqa: E402,F401
from app.bizadmin.modules.teams import api as teams_api  # noqa: E402,F401
from app.bizadmin.modules.users import api as users_api  # noqa: E402,F401
from app.bizadmin.modules.customers import api as customers_api  # noqa: E402,F401
from app.bizadmin.modules.contracts import api as contracts_api  # noqa: E402,F401
from app.bizadmin.modules.services import api as services_api  # noqa: E402,F401
from app.bizadmin.modules.projects import api as projects_api  # noqa: E402,F401
from app.bizadmin.modules.tasks import api as tasks_api  # noqa: E402,F401
from app.bizadmin.modules.transactions import api as transactions_api  # noqa: E402,F401
