import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, flash, g, redirect, render_template, request, session, url_for

from app.bizadmin.config import load_config
from app.bizadmin.db import init_db, teardown_db_session
from app.bizadmin import models as _models  # noqa: F401  (registers every table on Base.metadata)
from app.bizadmin.routes import bp as routes_bp
from app.bizadmin.auth import bp as auth_bp, load_current_user
from app.bizadmin.admin import bp as admin_bp
from app.bizadmin.api import bp as api_bp
from app.bizadmin.portal import bp as portal_bp
from app.bizadmin.rbac import user_has_permission
from app.bizadmin.security import ensure_csrf_token, validate_csrf

logger = logging.getLogger(__name__)

# requests that never carry the session cookie's CSRF token
_CSRF_FREE_PREFIXES = ("/static/", "/health", "/healthz", "/api/", "/uploads/")
_CSRF_FREE_ENDPOINTS = frozenset({"portal.login_post", "portal.signup_post", "portal.logout"})


def _check_production(app: Flask) -> None:
    env = (app.config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")


def _check_storage(app: Flask) -> None:
    if app.config.get("STORAGE_BACKEND") != "s3":
        return
    required = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
    missing = [k for k in required if not app.config.get(k)]
    if missing:
        app.logger.error("Storage misconfigured, missing: %s", ", ".join(missing))
        return

    from app.bizadmin.storage import S3Storage, storage_from_config

    storage = storage_from_config(app.config)
    if not isinstance(storage, S3Storage):
        return
    try:
        storage._client().head_bucket(Bucket=storage.bucket)
    except Exception as e:
        app.logger.error("Storage misconfigured, bucket %r not reachable: %s", storage.bucket, e)
    else:
        app.logger.info("Storage bucket %r reachable", storage.bucket)


def _install_template_helpers(app: Flask) -> None:
    @app.context_processor
    def _template_globals() -> dict:
        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"csrf_token": ensure_csrf_token(), "has_perm": has_perm}

    @app.template_filter("dateformat")
    def _dateformat(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        return value.strftime(format) if hasattr(value, "strftime") else str(value)


def _install_csrf(app: Flask) -> None:
    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_CSRF_FREE_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if not app.config.get("CSRF_ENABLED", True) or request.method not in ("POST", "PUT", "PATCH", "DELETE"):
            return None
        endpoint = request.endpoint or ""
        if endpoint.startswith("auth.") or endpoint in _CSRF_FREE_ENDPOINTS:
            return None
        if not validate_csrf(request):
            return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None


def _install_error_pages(app: Flask) -> None:
    @app.errorhandler(403)
    def _forbidden(_e):
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _not_found(_e):
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _too_large(_e):
        flash("File too large. Maximum size is 25MB.", "danger")
        referrer = request.referrer
        if referrer and referrer.startswith(request.host_url):
            return redirect(referrer)
        return redirect(url_for("admin.index"))

    @app.errorhandler(500)
    def _server_error(_e):
        app.logger.exception("Unhandled error (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config.update(PERMANENT_SESSION_LIFETIME=timedelta(hours=8), SESSION_REFRESH_EACH_REQUEST=True)

    _check_production(app)
    init_db(app)
    _check_storage(app)

    _install_template_helpers(app)
    _install_csrf(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(portal_bp, url_prefix="/portal")

    # screens register on import; the admin views look them up by key
    from app.bizadmin import screens as _screens  # noqa: F401

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)
    _install_error_pages(app)

    logger.info("bizadmin app ready (env=%s)", app.config.get("ENV"))
    return app
