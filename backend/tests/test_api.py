from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from promisepoint.api.deps import db
from promisepoint.main import app
from promisepoint.utils.timezone import utc_now

ADMIN = {"X-Actor-Id": "admin-7"}


@pytest.fixture()
def client(session_factory):
    def _db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[db] = _db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def _loan_type(client, **kw) -> dict:
    body = {
        "name": "Input Credit",
        "user_type": "farmer",
        "category": "input_credit",
        "interest_rate": "10",
        "duration_months": 6,
    }
    body.update(kw)
    r = client.post("/loans/types", json=body, headers=ADMIN)
    assert r.status_code == 200, r.text
    return r.json()


def _farmer_loan(client, loan_type_id: int, principal: int = 5_000_000) -> dict:
    r = client.post(
        "/admins/loans",
        json={
            "borrower": {"kind": "farmer", "farmer_id": "F-9", "name": "Kemi", "phone": "+2348030000000"},
            "loan_type_id": loan_type_id,
            "principal_amount": principal,
            "due_date": (date.today() + timedelta(days=120)).isoformat(),
            "items": [{"name": "Cassava stems", "quantity": 100, "unit_price": 5_000}],
        },
        headers=ADMIN,
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_loan_flow_over_http(client):
    lt = _loan_type(client)
    loan = _farmer_loan(client, lt["id"])
    assert loan["status"] == "requested"
    assert loan["interest_amount"] == 500_000
    assert loan["total_repayment"] == 5_500_000
    assert loan["total_repayment_naira"] == "55000.00"
    assert loan["items"][0]["total_price"] == 500_000

    r = client.get("/admins/loan-requests")
    assert r.json()["total"] == 1

    pickup = (utc_now() + timedelta(minutes=5)).isoformat()
    r = client.patch(f"/admins/loans/{loan['id']}/approve", json={"pickup_date": pickup}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"

    r = client.patch(f"/admins/loans/{loan['id']}/approve", json={"pickup_date": pickup}, headers=ADMIN)
    assert r.status_code == 409
    assert r.json()["detail"] == "loan_not_requested"

    r = client.patch(f"/admins/loans/{loan['id']}/activate", headers=ADMIN)
    assert r.status_code == 422
    assert r.json()["detail"] == "pickup_date_not_reached"

    r = client.get("/ops/loan-deliveries", params={"delivery_status": "pending"})
    assert [x["id"] for x in r.json()["items"]] == [loan["id"]]

    delivery = {"items": [{"name": "Cassava stems", "quantity": 100, "unit_price": 5_000, "total_price": 500_000}]}
    r = client.patch(f"/ops/loan-deliveries/{loan['id']}/record", json=delivery, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["delivery_status"] == "delivered"

    r = client.patch(f"/ops/loan-deliveries/{loan['id']}/record", json=delivery, headers=ADMIN)
    assert r.status_code == 409
    assert r.json()["detail"] == "already_delivered"

    r = client.get("/admins/loans/kpis")
    assert r.json()["approved_loans"] == 1

    r = client.get("/audit", params={"actor": "admin-7", "entity_type": "loan"})
    assert [a["action"] for a in r.json()] == ["loan.deliver", "loan.approve", "loan.create"]


def test_create_loan_validation_over_http(client):
    lt = _loan_type(client)
    r = client.post(
        "/admins/loans",
        json={
            "borrower": {"kind": "farmer", "farmer_id": "F-9"},
            "loan_type_id": lt["id"],
            "principal_amount": 5_000_000,
            "due_date": date.today().isoformat(),
            "items": [{"name": "Seed", "quantity": 1, "unit_price": 1}],
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "due_date_must_be_future"

    assert client.get("/admins/loans/999").status_code == 404


def test_pickup_flow_over_http(client):
    r = client.post(
        "/ops/pickups",
        json={"farmer_id": "F-3", "farmer_name": "Sani", "farmer_phone": "0803", "channel": "ussd"},
    )
    assert r.status_code == 200, r.text
    pid = r.json()["id"]

    r = client.patch(f"/ops/pickups/{pid}/approve", json={"assigned_staff_id": "S-1"})
    assert r.json()["status"] == "approved"

    r = client.patch(f"/ops/pickups/{pid}/staff-update", json={"weight_kg": "50", "price_per_kg": "500"})
    assert r.status_code == 200, r.text
    assert r.json()["proposed_price_per_kg"] == 50_000
    assert r.json()["proposed_price_per_kg_naira"] == "500.00"

    r = client.patch(f"/ops/pickups/{pid}/process", json={})
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["pickup"]["status"] == "processed"
    assert out["purchase"]["total_amount"] == 2_500_000
    assert out["purchase"]["total_amount_naira"] == "25000.00"
    assert out["pickup"]["linked_purchase_id"] == out["purchase"]["id"]

    r = client.patch(f"/ops/pickups/{pid}/process", json={"weight_kg": "50", "price_per_kg": "500"})
    assert r.status_code == 409
    assert r.json()["detail"] == "already_processed"

    r = client.patch(f"/ops/pickups/{pid}/cancel", json={"reason": "late"})
    assert r.status_code == 409

    r = client.get("/ops/kpis")
    assert r.json()["pickups"]["processed"] == 1

    r = client.get("/ops/pickups", params={"status": "processed"})
    assert [p["id"] for p in r.json()["items"]] == [pid]


def test_loan_type_endpoints(client):
    lt = _loan_type(client)
    r = client.put(f"/loans/types/{lt['id']}", json={"interest_rate": "12.5"})
    assert r.status_code == 200
    assert r.json()["interest_rate"] == "12.50"

    r = client.patch(f"/loans/types/{lt['id']}/toggle-active")
    assert r.json()["is_active"] is False

    r = client.delete(f"/loans/types/{lt['id']}")
    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert client.get("/loans/types", params={"is_active": True}).json() == []

    bad = {k: lt[k] for k in ("name", "user_type", "category")}
    r = client.post("/loans/types", json={**bad, "interest_rate": "31", "duration_months": 6})
    assert r.status_code == 400
    assert r.json()["detail"] == "interest_rate_invalid"

    assert client.get("/loans/types/999").status_code == 404


def test_ops_kpis_rejects_inverted_range(client):
    r = client.get("/ops/kpis", params={"startDate": "2025-03-10", "endDate": "2025-03-01"})
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_date_range"


def _pickup(client) -> int:
    r = client.post(
        "/ops/pickups",
        json={"farmer_id": "F-4", "farmer_name": "Hauwa", "farmer_phone": "0805", "channel": "admin"},
    )
    assert r.status_code == 200, r.text
    pid = r.json()["id"]
    r = client.patch(
        f"/ops/pickups/{pid}/approve", json={"assigned_staff_id": "S-2", "assigned_staff_name": "Bola Ade"}
    )
    assert r.json()["assigned_staff_name"] == "Bola Ade"
    return pid


def test_process_uses_dashboard_keys_over_staff_proposal(client):
    pid = _pickup(client)
    r = client.patch(
        f"/ops/pickups/{pid}/staff-update",
        json={
            "weightKg": 10,
            "pricePerKg": 100,
            "pickup_items": [{"name": "Cassava tubers", "quantity": 10, "unit_price": 10_000}],
        },
    )
    assert r.status_code == 200, r.text
    assert r.json()["proposed_price_per_kg"] == 10_000
    assert r.json()["pickup_items"][0]["total_price"] == 100_000

    r = client.patch(f"/ops/pickups/{pid}/process", json={"weightKg": 50, "pricePerKg": 500}, headers=ADMIN)
    assert r.status_code == 200, r.text
    purchase = r.json()["purchase"]
    assert Decimal(purchase["weight_kg"]) == Decimal("50")
    assert purchase["price_per_kg"] == 50_000
    assert purchase["total_amount"] == 2_500_000


def test_process_rejects_explicit_null_weight(client):
    pid = _pickup(client)
    client.patch(f"/ops/pickups/{pid}/staff-update", json={"weightKg": 10, "pricePerKg": 100})

    r = client.patch(f"/ops/pickups/{pid}/process", json={"weightKg": None, "pricePerKg": 500})
    assert r.status_code == 400
    assert r.json()["detail"] == "weight_required"
    assert client.get(f"/ops/pickups/{pid}").json()["status"] == "staff_updated"


def test_dashboard_query_names(client):
    _pickup(client)
    lt = _loan_type(client)
    big = _farmer_loan(client, lt["id"], principal=9_000_000)
    small = _farmer_loan(client, lt["id"], principal=1_000_000)

    assert client.get("/ops/pickups").json()["total"] == 1
    assert client.get("/ops/pickups", params={"startDate": "2099-01-01"}).json()["total"] == 0
    assert client.get("/ops/pickups", params={"endDate": "2000-01-01"}).json()["total"] == 0

    r = client.get("/admins/loans", params={"sortBy": "principal_amount", "sortOrder": "asc"})
    assert r.status_code == 200, r.text
    assert [x["id"] for x in r.json()["items"]] == [small["id"], big["id"]]

    r = client.get("/admins/loans", params={"sortBy": "createdAt", "sortOrder": "desc"})
    assert r.status_code == 200, r.text
    assert [x["id"] for x in r.json()["items"]] == [small["id"], big["id"]]

    assert client.get("/admins/loan-requests", params={"startDate": "2099-01-01"}).json()["total"] == 0

    r = client.get("/ops/kpis", params={"startDate": "2099-01-01"})
    assert r.status_code == 200, r.text
    assert r.json() == {
        "period": {"startDate": "2099-01-01", "endDate": None},
        "deliveries": {"pending": 0, "delivered": 0},
        "pickups": {"total": 0, "requested": 0, "approved": 0, "staffUpdated": 0, "processed": 0, "cancelled": 0},
    }

    r = client.get("/ops/kpis")
    assert r.json()["pickups"]["approved"] == 1
