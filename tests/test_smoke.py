from app.bizadmin.db import session_scope
from app.bizadmin.models import AuditEvent


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200


def test_login_and_admin_access(client):
    # Anonymous is sent to the login page
    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.post("/auth/login", data={"phoneNumber": "5550001", "password": "secret1"}, follow_redirects=False)
    assert r.status_code == 302

    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"Dashboard" in r.data
    assert b"Customers" in r.data


def test_login_redirects_to_next(client):
    r = client.post(
        "/auth/login",
        data={"phoneNumber": "5550001", "password": "secret1", "next": "/admin/teams"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/teams")


def test_login_ignores_external_next(client):
    r = client.post(
        "/auth/login",
        data={"phoneNumber": "5550001", "password": "secret1", "next": "//evil.example.com"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "evil" not in r.headers["Location"]


def test_bad_password_is_rejected_and_audited(app, client):
    r = client.post("/auth/login", data={"phoneNumber": "5550001", "password": "wrong-pw"})
    assert r.status_code == 401
    assert b"Invalid phone number or password" in r.data

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).all()]
    assert "auth.login_failed" in actions


def test_missing_fields_do_not_reach_the_api(client):
    r = client.post("/auth/login", data={"phoneNumber": "", "password": ""})
    assert r.status_code == 400
    assert b"Phone number is required" in r.data


def test_login_rate_limited(client):
    for _ in range(5):
        client.post("/auth/login", data={"phoneNumber": "5550001", "password": "wrong-pw"})
    r = client.post("/auth/login", data={"phoneNumber": "5550001", "password": "secret1"}, follow_redirects=True)
    assert b"Too many login attempts" in r.data


def test_logout_clears_session(client):
    client.post("/auth/login", data={"phoneNumber": "5550001", "password": "secret1"})
    r = client.post("/auth/logout", follow_redirects=False)
    assert r.status_code == 302
    r = client.get("/admin/")
    assert r.status_code == 302


def test_unknown_page_renders_404(client):
    r = client.get("/no-such-page")
    assert r.status_code == 404
    assert b"Not found" in r.data
