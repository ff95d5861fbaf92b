from app.bizadmin.db import session_scope
from app.bizadmin.modules.customers.models import Customer
from app.bizadmin.modules.services.models import Service, ServiceRequest
from app.bizadmin.modules.tasks.models import Task

SIGNUP = {"name": "Acme", "phoneNumber": "5559001", "password": "pass123", "businessName": "Acme Ltd"}


def _signup(client):
    r = client.post("/portal/signup", data=SIGNUP, follow_redirects=False)
    assert r.status_code == 302
    return r


def test_portal_requires_customer_login(client):
    r = client.get("/portal/")
    assert r.status_code == 302
    assert "/portal/login" in r.headers["Location"]


def test_staff_session_does_not_open_the_portal(client):
    client.post("/auth/login", data={"phoneNumber": "5550001", "password": "secret1"})
    r = client.get("/portal/")
    assert r.status_code == 302


def test_signup_lands_on_the_portal(client):
    r = _signup(client)
    assert r.headers["Location"].endswith("/portal/")

    r = client.get("/portal/")
    assert r.status_code == 200
    assert b"Welcome, Acme" in r.data
    assert b"Projects" in r.data
    assert b"Available services" in r.data


def test_signup_validation(client):
    r = client.post("/portal/signup", data={**SIGNUP, "password": "123"})
    assert r.status_code == 400
    assert b"Password must be at least 6 characters" in r.data


def test_signup_duplicate_phone(client):
    _signup(client)
    client.get("/portal/logout")
    r = client.post("/portal/signup", data=SIGNUP)
    assert r.status_code == 400
    assert b"Customer with this phone number already exists" in r.data


def test_login_and_logout(client):
    _signup(client)
    client.get("/portal/logout")
    assert client.get("/portal/").status_code == 302

    r = client.post("/portal/login", data={"phoneNumber": "5559001", "password": "wrong1"})
    assert r.status_code == 401
    assert b"Invalid phone number or password" in r.data

    r = client.post("/portal/login", data={"phoneNumber": "5559001", "password": "pass123", "next": "/portal/requests/new"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/portal/requests/new")


def test_login_ignores_next_outside_the_portal(client):
    _signup(client)
    client.get("/portal/logout")
    r = client.post("/portal/login", data={"phoneNumber": "5559001", "password": "pass123", "next": "/admin/"})
    assert r.headers["Location"].endswith("/portal/")


def test_customer_requests_a_service(app, client):
    with session_scope(app) as s:
        s.add(Service(name="Editing", base_price=100, is_active=True))
        s.add(Service(name="Retired", base_price=10, is_active=False))
    _signup(client)

    r = client.get("/portal/requests/new")
    assert r.status_code == 200
    assert b"Editing" in r.data
    assert b"Retired" not in r.data

    with session_scope(app) as s:
        service_id = s.query(Service).filter(Service.name == "Editing").one().id

    r = client.post(
        "/portal/requests/new",
        data={"title": "Cut my video", "serviceId": str(service_id), "quantity": "2", "priority": "high"},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Your request has been sent." in r.data

    with session_scope(app) as s:
        req = s.query(ServiceRequest).one()
        customer = s.query(Customer).filter(Customer.phone_number == "5559001").one()
        assert req.status == "pending"
        assert req.requested_by_id == customer.id
        assert req.quantity == 2
        assert req.priority == "high"


def test_request_form_validation(client):
    _signup(client)
    r = client.post("/portal/requests/new", data={"title": ""})
    assert r.status_code == 400
    assert b"Title is required" in r.data


def _tasks_for_review(app):
    with session_scope(app) as s:
        service = Service(name="Editing", base_price=100, is_active=True)
        s.add(service)
        s.flush()
        customer = s.query(Customer).filter(Customer.phone_number == "5559001").one()
        req = ServiceRequest(title="Cut my video", service_id=service.id, requested_by_id=customer.id)
        s.add(req)
        s.flush()
        delivered = Task(title="First cut", status="accepted", service_request_id=req.id, notes="Draft v1")
        pending = Task(title="Colour pass", status="todo", service_request_id=req.id)
        s.add_all([delivered, pending])
        s.flush()
        return delivered.id, pending.id


def test_customer_reviews_delivered_tasks(app, client):
    _signup(client)
    delivered_id, pending_id = _tasks_for_review(app)

    r = client.get("/portal/")
    assert b"Tasks awaiting your review" in r.data
    assert b"First cut" in r.data
    assert b"Colour pass" in r.data
    assert f"/portal/tasks/{delivered_id}/approve".encode() in r.data
    assert f"/portal/tasks/{pending_id}/approve".encode() not in r.data

    client.post(f"/portal/tasks/{pending_id}/approve")
    with session_scope(app) as s:
        assert s.get(Task, pending_id).status == "todo"

    r = client.post(f"/portal/tasks/{delivered_id}/approve", follow_redirects=True)
    assert b"Task approved." in r.data
    with session_scope(app) as s:
        task = s.get(Task, delivered_id)
        assert task.status == "completed"
        assert task.completed_date is not None


def test_customer_rejects_with_a_reason(app, client):
    _signup(client)
    delivered_id, _ = _tasks_for_review(app)

    r = client.get(f"/portal/tasks/{delivered_id}/reject")
    assert r.status_code == 200
    assert b"What needs to change?" in r.data

    r = client.post(f"/portal/tasks/{delivered_id}/reject", data={"rejectionReason": ""})
    assert r.status_code == 400
    assert b"Rejection reason is required" in r.data

    r = client.post(f"/portal/tasks/{delivered_id}/reject", data={"rejectionReason": "Too dark"}, follow_redirects=True)
    assert b"Task sent back for review." in r.data
    with session_scope(app) as s:
        task = s.get(Task, delivered_id)
        assert task.status == "review"
        assert task.notes == "Draft v1\n\nCustomer rejected: Too dark"


def test_deactivated_customer_is_signed_out(app, client):
    _signup(client)
    with session_scope(app) as s:
        s.query(Customer).filter(Customer.phone_number == "5559001").one().is_active = False

    r = client.get("/portal/")
    assert r.status_code == 302
    assert "/portal/login" in r.headers["Location"]
