"""
API tests for /api/billing
"""
from datetime import date, timedelta
from unittest import mock

from subledger.application.billing import BillingProcessor
from subledger.application.ledger import StoreUnavailableError


def test_process_billing(client, make_asset, make_subscription):
    asset_id = make_asset(balance="100.00")
    ok_id = make_subscription(date(2026, 3, 1), asset_id=asset_id, amount="15.00")
    bad_id = make_subscription(date(2026, 3, 1), name="Gym", amount="9.00", category="other")

    resp = client.post("/api/billing/process", json={"target_date": "2026-03-01"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["processed_date"] == "2026-03-01"
    assert (data["total_processed"], data["successful"], data["failed"]) == (2, 1, 1)
    by_id = {r["subscription_id"]: r for r in data["results"]}
    assert by_id[ok_id] == {
        "subscription_id": ok_id,
        "subscription_name": "Netflix",
        "amount": "15.00",
        "asset_id": asset_id,
        "success": True,
        "message": "billed",
    }
    assert by_id[bad_id]["message"] == "no payment asset"

    asset = client.get(f"/api/assets/{asset_id}").json()
    assert asset["balance"] == "85.00"


def test_process_billing_twice(client, make_asset, make_subscription):
    make_subscription(date(2026, 3, 1), asset_id=make_asset())

    client.post("/api/billing/process", json={"target_date": "2026-03-01"})
    resp = client.post("/api/billing/process", json={"target_date": "2026-03-01"})

    assert resp.json()["total_processed"] == 0
    assert len(client.get("/api/transactions").json()) == 1


def test_process_requires_date(client):
    assert client.post("/api/billing/process", json={}).status_code == 422


def test_store_unavailable_maps_to_503(client):
    with mock.patch.object(
        BillingProcessor, "process", side_effect=StoreUnavailableError("ledger store unavailable")
    ):
        resp = client.post("/api/billing/process", json={"target_date": "2026-03-01"})

    assert resp.status_code == 503
    assert resp.json() == {"detail": "ledger store unavailable"}


def test_alerts(client, make_asset, make_subscription):
    today = date.today()
    asset_id = make_asset(name="WeChat Pay", asset_type="payment")
    soon = make_subscription(today + timedelta(days=2), asset_id=asset_id)
    make_subscription(today + timedelta(days=20), name="Later")

    resp = client.get("/api/billing/alerts")

    assert resp.status_code == 200
    data = resp.json()
    assert [a["subscription_id"] for a in data] == [soon]
    assert data[0]["asset_name"] == "WeChat Pay"
    assert data[0]["days_until_billing"] == 2
    assert data[0]["amount"] == "15.00"

    assert len(client.get("/api/billing/alerts", params={"days": 30}).json()) == 2


def test_alerts_negative_days(client):
    assert client.get("/api/billing/alerts", params={"days": -1}).status_code == 422
