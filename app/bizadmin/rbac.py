from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for

from app.bizadmin.tokens import Principal

SCREEN_ACTIONS = ("view", "create", "edit", "delete")

ALL = "*"

# role -> permission keys; "<screen>.*" grants every action on a screen
ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": frozenset({ALL}),
    "manager": frozenset(
        {
            "admin.view",
            "customers.*",
            "projects.*",
            "contracts.*",
            "services.*",
            "service-requests.*",
            "tasks.*",
            "teams.view",
            "transactions.*",
            "users.view",
            "audit.view",
            "me.view",
        }
    ),
    "editor": frozenset(
        {
            "admin.view",
            "projects.view",
            "service-requests.view",
            "tasks.view",
            "tasks.edit",
            "me.view",
        }
    ),
    "designer": frozenset({"admin.view", "tasks.view", "tasks.edit", "me.view"}),
    "video-shooter": frozenset({"admin.view", "tasks.view", "tasks.edit", "me.view"}),
}


def user_has_permission(user: Principal | None, permission_key: str) -> bool:
    if not user or not user.is_staff:
        return False
    granted = ROLE_PERMISSIONS.get(user.role or "", frozenset())
    if ALL in granted or permission_key in granted:
        return True
    screen, _, _action = permission_key.partition(".")
    return f"{screen}.*" in granted


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: Principal | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login (UX + reduces confusion).
            if not user or not user.is_staff:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            # Authenticated but unauthorized → 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
