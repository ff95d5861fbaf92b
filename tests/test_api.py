import pytest
from werkzeug.security import generate_password_hash

from app.bizadmin.db import session_scope
from app.bizadmin.models import AuditEvent, User


def _token(client, phone="5550001", password="secret1"):
    r = client.post("/api/auth", json={"action": "login", "phoneNumber": phone, "password": password})
    assert r.status_code == 200, r.json
    return r.json["data"]["token"]


def _h(token, **extra):
    headers = {"Authorization": f"Bearer {token}"}
    headers.update({k: str(v) for k, v in extra.items()})
    return headers


@pytest.fixture()
def staff(client):
    return _h(_token(client))


def _signup(client, phone="5559001", name="Acme"):
    r = client.post("/api/auth", json={"action": "signup", "name": name, "phoneNumber": phone, "password": "pass123"})
    assert r.status_code == 201, r.json
    return r.json["data"]


def _create(client, staff, path, body):
    r = client.post(path, json=body, headers=staff)
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_requests_without_token_are_rejected(client):
    r = client.get("/api/teams")
    assert r.status_code == 401
    assert r.json == {"success": False, "error": "Authentication required"}

    r = client.get("/api/teams", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_login_returns_token_and_user(client):
    r = client.post("/api/auth", json={"action": "login", "phoneNumber": "5550001", "password": "secret1"})
    assert r.status_code == 200
    data = r.json["data"]
    assert data["userType"] == "user"
    assert data["user"]["role"] == "admin"
    assert data["token"]


def test_login_rejects_bad_password(client):
    r = client.post("/api/auth", json={"action": "login", "phoneNumber": "5550001", "password": "nope99"})
    assert r.status_code == 401
    assert r.json["success"] is False


def test_unknown_auth_action(client):
    r = client.post("/api/auth", json={"action": "reset"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid action"


def test_team_crud(app, client, staff):
    team = _create(client, staff, "/api/teams", {"name": "Video", "specialization": "editing", "amount": "1,500"})
    assert team["name"] == "Video"
    assert team["amount"] == 1500.0
    assert team["isActive"] is True
    assert isinstance(team["_id"], str)

    r = client.post("/api/teams", json={"name": "Video"}, headers=staff)
    assert r.status_code == 409
    assert r.json["error"] == "Team with this name already exists"

    r = client.get("/api/teams/detailes", headers={**staff, "id": team["_id"]})
    assert r.json["data"]["specialization"] == "editing"

    r = client.patch("/api/teams/detailes", json={"description": "Post production"}, headers={**staff, "id": team["_id"]})
    assert r.status_code == 200
    assert r.json["data"]["description"] == "Post production"

    r = client.put("/api/teams", json={"id": team["_id"], "isActive": False}, headers=staff)
    assert r.json["data"]["isActive"] is False

    r = client.get("/api/teams?isActive=false", headers=staff)
    assert [t["_id"] for t in r.json["data"]] == [team["_id"]]

    r = client.delete("/api/teams/detailes", headers={**staff, "id": team["_id"]})
    assert r.status_code == 200
    r = client.get("/api/teams/detailes", headers={**staff, "id": team["_id"]})
    assert r.status_code == 404
    assert r.json["error"] == "Team not found"

    with session_scope(app) as s:
        actions = {e.action for e in s.query(AuditEvent).all()}
    assert {"team.create", "team.edit", "team.delete"} <= actions


def test_validation_errors_are_listed(client, staff):
    r = client.post("/api/teams", json={"amount": -5}, headers=staff)
    assert r.status_code == 400
    assert r.json["errors"] == ["name is required.", "amount must be at least 0."]


def test_detail_requires_id_header(client, staff):
    r = client.get("/api/teams/detailes", headers=staff)
    assert r.status_code == 400
    assert r.json["error"] == "id header is required"


def test_list_paginates_only_when_asked(client, staff):
    for i in range(3):
        _create(client, staff, "/api/teams", {"name": f"Team {i}"})
    r = client.get("/api/teams", headers=staff)
    assert len(r.json["data"]) == 3
    assert r.json["pagination"]["pages"] == 1

    r = client.get("/api/teams?page=2&limit=2", headers=staff)
    assert len(r.json["data"]) == 1
    assert r.json["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    r = client.get("/api/teams?search=team 1", headers=staff)
    assert [t["name"] for t in r.json["data"]] == ["Team 1"]


def test_users_rules(app, client, staff):
    r = client.post("/api/users", json={"name": "Dee", "phoneNumber": "5550002", "password": "123"}, headers=staff)
    assert r.status_code == 400

    user = _create(client, staff, "/api/users", {"name": "Dee", "phoneNumber": "5550002", "password": "secret2", "role": "designer"})
    assert "password" not in user
    assert "passwordHash" not in user

    r = client.post("/api/users", json={"name": "Dup", "phoneNumber": "5550002", "password": "secret2"}, headers=staff)
    assert r.status_code == 409

    with session_scope(app) as s:
        admin_id = s.query(User).filter(User.phone_number == "5550001").one().id
    r = client.put("/api/users", json={"id": admin_id, "isActive": False}, headers=staff)
    assert r.status_code == 400
    r = client.delete("/api/users/detailes", headers={**staff, "id": admin_id})
    assert r.status_code == 400

    r = client.get("/api/users/admins", headers=staff)
    assert [u["name"] for u in r.json["data"]] == ["Admin"]


def test_customer_signup_and_login(client):
    data = _signup(client)
    assert data["userType"] == "customer"
    assert data["user"]["phoneNumber"] == "5559001"

    r = client.post("/api/auth", json={"action": "signup", "name": "Again", "phoneNumber": "5559001", "password": "pass123"})
    assert r.status_code == 409

    r = client.post("/api/auth", json={"action": "signup", "name": "NoPass", "phoneNumber": "5559002"})
    assert r.status_code == 400

    r = client.post("/api/customers/login", json={"phoneNumber": "5559001", "password": "pass123"})
    assert r.status_code == 200
    assert r.json["data"]["token"] == r.json["token"]
    assert r.json["customer"]["name"] == "Acme"

    r = client.post("/api/customers/login", json={"phoneNumber": "5559001", "password": "wrong1"})
    assert r.status_code == 401


def test_customer_tokens_are_scoped(client, staff):
    acme = _signup(client, "5559001", "Acme")
    other = _signup(client, "5559002", "Other")
    customer = _h(acme["token"])

    r = client.get("/api/teams", headers=customer)
    assert r.status_code == 403

    r = client.get("/api/customers/filterdByCustomer", headers={**customer, "customerId": acme["user"]["_id"]})
    assert r.status_code == 200
    assert r.json["data"]["name"] == "Acme"

    r = client.get("/api/customers/filterdByCustomer", headers={**customer, "customerId": other["user"]["_id"]})
    assert r.status_code == 403

    r = client.get("/api/customers/filterdByCustomer", headers={**staff, "customerId": other["user"]["_id"]})
    assert r.status_code == 200


def test_customer_verification_is_stamped(app, client, staff):
    with session_scope(app) as s:
        admin_id = s.query(User).filter(User.phone_number == "5550001").one().id
    c = _create(client, staff, "/api/customers", {"name": "Beta", "phoneNumber": "5559010", "verifiedBy": admin_id})
    assert c["verifiedAt"] is not None
    assert c["verifiedBy"]["name"] == "Admin"


def test_contract_rules(client, staff):
    customer = _create(client, staff, "/api/customers", {"name": "Acme", "phoneNumber": "5559001"})
    r = client.post(
        "/api/contracts",
        json={"customerId": customer["_id"], "contractNumber": "C-1", "signedDate": "2024-05-01", "expiryDate": "2024-04-01"},
        headers=staff,
    )
    assert r.status_code == 400
    assert r.json["error"] == "expiryDate must be on or after signedDate."

    contract = _create(client, staff, "/api/contracts", {"customerId": customer["_id"], "contractNumber": "C-1"})
    assert contract["status"] == "draft"
    assert contract["customerId"]["name"] == "Acme"

    r = client.post("/api/contracts", json={"customerId": customer["_id"], "contractNumber": "C-1"}, headers=staff)
    assert r.status_code == 409

    r = client.post("/api/contracts", json={"customerId": customer["_id"], "contractNumber": "C-2", "status": "bogus"}, headers=staff)
    assert r.status_code == 400
    assert r.json["error"].startswith("Invalid status")


def test_project_pricing_and_visibility(client, staff):
    acme = _signup(client, "5559001", "Acme")
    other = _create(client, staff, "/api/customers", {"name": "Other", "phoneNumber": "5559002"})
    foreign = _create(client, staff, "/api/contracts", {"customerId": other["_id"], "contractNumber": "C-9"})

    r = client.post(
        "/api/projects",
        json={"title": "Promo", "customerId": acme["user"]["_id"], "contractId": foreign["_id"]},
        headers=staff,
    )
    assert r.status_code == 400
    assert r.json["error"] == "contractId does not belong to this customer."

    service = _create(client, staff, "/api/services", {"name": "Editing", "basePrice": 100})
    project = _create(
        client,
        staff,
        "/api/projects",
        {
            "title": "Promo",
            "customerId": acme["user"]["_id"],
            "totalPrice": 1000,
            "discount": 150,
            "internalNotes": "margin is thin",
            "services": [service["_id"]],
        },
    )
    assert project["finalPrice"] == 850
    assert project["status"] == "planning"
    assert [s["name"] for s in project["services"]] == ["Editing"]

    r = client.patch("/api/projects/detailes", json={"discount": 200}, headers={**staff, "id": project["_id"]})
    assert r.json["data"]["finalPrice"] == 800

    scope = {"customerId": acme["user"]["_id"]}
    r = client.get("/api/projects/filterdByCustomer", headers={**_h(acme["token"]), **scope})
    assert r.status_code == 200
    assert "internalNotes" not in r.json["data"][0]

    r = client.get("/api/projects/filterdByCustomer", headers={**staff, **scope})
    assert r.json["data"][0]["internalNotes"] == "margin is thin"

    r = client.get("/api/services/filterdByCustomer", headers={**_h(acme["token"]), **scope})
    assert [s["name"] for s in r.json["data"]] == ["Editing"]


def test_customers_see_active_services_only(client, staff):
    acme = _signup(client)
    _create(client, staff, "/api/services", {"name": "Editing", "basePrice": 100})
    hidden = _create(client, staff, "/api/services", {"name": "Legacy", "basePrice": 50, "isActive": False})

    r = client.get("/api/services", headers=_h(acme["token"]))
    assert [s["name"] for s in r.json["data"]] == ["Editing"]

    r = client.get("/api/services", headers=staff)
    assert len(r.json["data"]) == 2

    r = client.get("/api/services/detailes", headers={**_h(acme["token"]), "id": hidden["_id"]})
    assert r.status_code == 404


def test_customer_service_request_is_pending_and_owned(client, staff):
    acme = _signup(client)
    service = _create(client, staff, "/api/services", {"name": "Editing", "basePrice": 100})

    r = client.post(
        "/api/service-requests",
        json={"title": "Cut my video", "serviceId": service["_id"], "status": "approved", "requestedBy": "999"},
        headers=_h(acme["token"]),
    )
    assert r.status_code == 201, r.json
    req = r.json["data"]
    assert req["status"] == "pending"
    assert req["requestedBy"]["_id"] == acme["user"]["_id"]
    assert req["requestedDate"] is not None
    assert req["approvedBy"] is None

    r = client.patch("/api/service-requests/detailes", json={"status": "approved"}, headers={**staff, "id": req["_id"]})
    assert r.json["data"]["approvedBy"]["name"] == "Admin"
    assert r.json["data"]["approvedAt"] is not None


def test_task_completion_and_assignment(app, client, staff):
    with session_scope(app) as s:
        s.add(User(name="Off", phone_number="5550009", password_hash=generate_password_hash("x" * 8), is_active=False))
        s.flush()
        admin_id = s.query(User).filter(User.phone_number == "5550001").one().id
        inactive_id = s.query(User).filter(User.phone_number == "5550009").one().id

    r = client.post("/api/tasks", json={"title": "Cut", "assignedUserId": inactive_id}, headers=staff)
    assert r.status_code == 400

    task = _create(client, staff, "/api/tasks", {"title": "Cut", "assignedUserId": admin_id, "dueDate": "2024-06-01"})
    assert task["status"] == "todo"
    assert task["completedDate"] is None

    r = client.patch("/api/tasks/detailes", json={"status": "completed"}, headers={**staff, "id": task["_id"]})
    assert r.json["data"]["completedDate"] is not None

    r = client.get("/api/tasks/byUsers", headers={**staff, "id": admin_id})
    assert [t["title"] for t in r.json["data"]] == ["Cut"]


def test_transaction_summaries(app, client, staff):
    acme = _signup(client)
    with session_scope(app) as s:
        admin_id = s.query(User).filter(User.phone_number == "5550001").one().id

    base = {"customer": acme["user"]["_id"], "users": admin_id}
    _create(client, staff, "/api/transactions", {**base, "date": "2024-01-05", "subject": "Deposit", "received": 500})
    _create(client, staff, "/api/transactions", {**base, "date": "2024-01-09", "subject": "Stock", "paid": 120, "type": "expense"})

    r = client.get("/api/transactions/byCustomer", headers={**_h(acme["token"]), "customerId": acme["user"]["_id"]})
    assert r.status_code == 200
    assert r.json["summary"] == {"totalPaid": 120, "totalReceived": 500, "balance": 380}
    assert [t["subject"] for t in r.json["data"]] == ["Stock", "Deposit"]

    r = client.get("/api/transactions/byUsers", headers={**staff, "id": admin_id})
    assert r.json["summary"]["balance"] == 380

    r = client.get("/api/transactions?dateFrom=2024-01-06", headers=staff)
    assert [t["subject"] for t in r.json["data"]] == ["Stock"]

    r = client.post("/api/transactions", json={"subject": "No date"}, headers=staff)
    assert r.status_code == 400


def test_customer_reviews_accepted_tasks(app, client, staff):
    acme = _signup(client)
    other = _signup(client, phone="5559002", name="Other")
    service = _create(client, staff, "/api/services", {"name": "Editing", "basePrice": 100})
    r = client.post(
        "/api/service-requests",
        json={"title": "Cut my video", "serviceId": service["_id"]},
        headers=_h(acme["token"]),
    )
    req = r.json["data"]
    delivered = _create(
        client, staff, "/api/tasks",
        {"title": "First cut", "status": "accepted", "notes": "Draft v1", "serviceRequestId": req["_id"]},
    )
    pending = _create(client, staff, "/api/tasks", {"title": "Colour pass", "serviceRequestId": req["_id"]})
    _create(client, staff, "/api/tasks", {"title": "Internal"})

    acme_h = _h(acme["token"], customerId=acme["user"]["_id"])
    r = client.get("/api/customer-tasks", headers=acme_h)
    assert r.status_code == 200
    assert sorted(t["title"] for t in r.json["data"]) == ["Colour pass", "First cut"]

    r = client.get("/api/customer-tasks", headers=_h(acme["token"], customerId=other["user"]["_id"]))
    assert r.status_code == 403

    r = client.put("/api/customer-tasks", json={"taskId": delivered["_id"], "action": "reject"}, headers=acme_h)
    assert r.status_code == 400
    assert r.json["error"] == "Rejection reason is required."

    r = client.put("/api/customer-tasks", json={"taskId": pending["_id"], "action": "approve"}, headers=acme_h)
    assert r.status_code == 400

    r = client.put("/api/customer-tasks", json={"taskId": delivered["_id"], "action": "ship"}, headers=acme_h)
    assert r.status_code == 400

    r = client.put(
        "/api/customer-tasks", json={"taskId": delivered["_id"], "action": "approve"}, headers=_h(other["token"])
    )
    assert r.status_code == 403

    r = client.put("/api/customer-tasks", json={"taskId": "abc", "action": "approve"}, headers=acme_h)
    assert r.status_code == 400
    assert r.json["error"] == "Valid taskId required"

    r = client.put(
        "/api/customer-tasks",
        json={"taskId": delivered["_id"], "action": "reject", "rejectionReason": "Too dark"},
        headers=acme_h,
    )
    assert r.status_code == 200
    assert r.json["data"]["status"] == "review"
    assert r.json["data"]["notes"] == "Draft v1\n\nCustomer rejected: Too dark"

    client.patch("/api/tasks/detailes", json={"status": "accepted"}, headers={**staff, "id": delivered["_id"]})
    r = client.put("/api/customer-tasks", json={"taskId": delivered["_id"], "action": "approve"}, headers=acme_h)
    assert r.status_code == 200
    assert r.json["message"] == "Task approved successfully"
    assert r.json["data"]["status"] == "completed"
    assert r.json["data"]["completedDate"] is not None

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).filter(AuditEvent.entity_id == delivered["_id"]).all()]
    assert "task.customer_reject" in actions
    assert "task.customer_approve" in actions
