from typing import Any

import pytest
from werkzeug.security import generate_password_hash

from app.bizadmin import create_app
from app.bizadmin.auth import _login_attempts
from app.bizadmin.db import session_scope
from app.bizadmin.dynamic.client import ApiClient, ApiResponse, Transport
from app.bizadmin.models import Base, User


class FakeTransport(Transport):
    """Canned responses keyed by (method, path); records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[dict[str, Any]] = []

    def on(self, method: str, path: str, status: int = 200, body: Any = None, raises: Exception | None = None):
        self.routes[(method, path)] = raises if raises is not None else ApiResponse(status, body)
        return self

    def send(self, method, path, *, headers, params=None, json_body=None, form=None):
        self.calls.append(
            {"method": method, "path": path, "headers": headers, "params": params, "json": json_body, "form": form}
        )
        resp = self.routes.get((method, path))
        if isinstance(resp, Exception):
            raise resp
        if resp is None:
            return ApiResponse(404, {"success": False, "error": "Not found"})
        return resp


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def api(transport):
    return ApiClient(transport, token="t0ken")


@pytest.fixture()
def app(tmp_path, monkeypatch):
    # file database: panel requests call the API in-process on a second session
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("API_BASE_URL", "JWT_SECRET", "S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)
    _login_attempts.clear()

    app = create_app()
    app.config["LOCAL_STORAGE_ROOT"] = str(tmp_path / "storage")

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(
            User(
                name="Admin",
                phone_number="5550001",
                password_hash=generate_password_hash("secret1"),
                role="admin",
                is_active=True,
            )
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
