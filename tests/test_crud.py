import io
from datetime import date

import pytest

from app.bizadmin.api.upload import build_upload_key
from app.bizadmin.crud import Field, PayloadError, ref_ids, validate_payload

FIELDS = (
    Field("title", "title", required=True),
    Field("status", "status", choices=("open", "closed"), nullable=False),
    Field("amount", "amount", "float", minimum=0),
    Field("dueDate", "due_date", "date"),
    Field("isActive", "is_active", "bool"),
    Field("ownerId", "owner_id", "ref"),
    Field("createdBy", "created_by", writable=False),
)


def test_coerces_wire_values():
    values = validate_payload(
        {"title": " Promo ", "status": "open", "amount": "1,250.5", "dueDate": "2024-05-01", "isActive": "false", "ownerId": {"_id": "4"}},
        FIELDS,
    )
    assert values == {
        "title": "Promo",
        "status": "open",
        "amount": 1250.5,
        "due_date": date(2024, 5, 1),
        "is_active": False,
        "owner_id": 4,
    }


def test_collects_every_problem():
    with pytest.raises(PayloadError) as exc:
        validate_payload({"status": "bogus", "amount": -1, "dueDate": "not-a-date"}, FIELDS)
    assert exc.value.errors == [
        "title is required.",
        "Invalid status. Must be one of: open, closed",
        "amount must be at least 0.",
        "dueDate is invalid.",
    ]


def test_partial_updates_skip_missing_required_fields():
    assert validate_payload({"amount": 3}, FIELDS, partial=True) == {"amount": 3.0}


def test_blank_values_clear_nullable_columns_only():
    values = validate_payload({"status": "", "amount": "", "isActive": ""}, FIELDS, partial=True)
    assert values == {"amount": None}


def test_blank_required_value_is_rejected():
    with pytest.raises(PayloadError) as exc:
        validate_payload({"title": "  "}, FIELDS, partial=True)
    assert exc.value.errors == ["title is required."]


def test_read_only_fields_are_ignored():
    assert "created_by" not in validate_payload({"title": "x", "createdBy": "someone"}, FIELDS)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, []),
        ("", []),
        ("1, 2,3", [1, 2, 3]),
        (["4", 5], [4, 5]),
        ([{"_id": "6"}], [6]),
        (7, [7]),
    ],
)
def test_ref_ids(raw, expected):
    assert ref_ids(raw) == expected


def test_ref_ids_rejects_garbage():
    with pytest.raises(PayloadError):
        ref_ids(["1", "abc"])


def test_upload_key_is_dated_and_sanitised():
    key = build_upload_key("../../etc/pass wd.txt", date(2024, 2, 3))
    prefix, _, name = key.rpartition("/")
    assert prefix == "uploads/2024-02-03"
    assert name.endswith("-etc_pass_wd.txt")


def test_upload_and_serve_local_file(client):
    r = client.post("/api/auth", json={"action": "login", "phoneNumber": "5550001", "password": "secret1"})
    token = r.json["data"]["token"]

    r = client.post(
        "/api/upload",
        data={"file": (io.BytesIO(b"frame data"), "clip.mp4")},
        headers={"Authorization": f"Bearer {token}"},
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    url = r.json["data"]["url"]
    assert url.startswith("/uploads/")

    r = client.get(url)
    assert r.status_code == 200
    assert r.data == b"frame data"
    r.close()

    assert client.get("/uploads/missing.bin").status_code == 404


def test_upload_requires_a_file(client):
    r = client.post("/api/auth", json={"action": "login", "phoneNumber": "5550001", "password": "secret1"})
    token = r.json["data"]["token"]
    r = client.post("/api/upload", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 400
    assert r.json["error"] == "No file uploaded"
