"""Integration tests for the production order API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from production.api.routes import order_router, provider_router, refund_router

CUSTOMER = {"X-Actor-Id": "cust-api-001"}
PROVIDER = {"X-Actor-Id": "prov-api-001"}
ARBITER = {"X-Actor-Id": "arb-api-001", "X-Actor-Role": "arbiter"}


@pytest.fixture()
def client(catalog):
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(refund_router)
    app.include_router(provider_router)
    return TestClient(app)


def _place_order(client, listing_id="lst-proofed", amount=200.0):
    response = client.post(
        "/production-orders",
        json={"provider_id": "prov-api-001", "listing_id": listing_id, "escrow_amount": amount},
        headers=CUSTOMER,
    )
    assert response.status_code == 201
    return response.json()["order_id"]


def _submit_proof(client, order_id, image="https://cdn.example.com/v1.png"):
    response = client.post(f"/production-orders/{order_id}/proofs", json={"proof_images": [image]}, headers=PROVIDER)
    assert response.status_code == 201
    return response.json()["proof_id"]


def _approve_and_deliver(client, order_id):
    proof_id = _submit_proof(client, order_id)
    client.post(f"/production-orders/proofs/{proof_id}/resolution", json={"decision": "approve"}, headers=CUSTOMER)
    client.post(f"/production-orders/{order_id}/production/start", headers=PROVIDER)
    client.post(f"/production-orders/{order_id}/ready", headers=PROVIDER)
    client.post(f"/production-orders/{order_id}/shipment", json={"tracking_number": "TRK-1"}, headers=PROVIDER)


class TestPlaceAndFetch:
    def test_place_order(self, client):
        response = client.post(
            "/production-orders",
            json={"provider_id": "prov-api-001", "listing_id": "lst-proofed", "escrow_amount": 250.0},
            headers=CUSTOMER,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending_order_received"
        assert data["customer_id"] == "cust-api-001"
        assert data["proofing_required"] is True
        assert data["refundable_balance"] == 250.0

    def test_get_order(self, client):
        order_id = _place_order(client)
        response = client.get(f"/production-orders/{order_id}")
        assert response.status_code == 200
        assert response.json()["title"] == "Wedding Cake"

    def test_missing_actor_header(self, client):
        response = client.post(
            "/production-orders",
            json={"provider_id": "prov-api-001", "listing_id": "lst-proofed", "escrow_amount": 10.0},
        )
        assert response.status_code == 422

    def test_unknown_order(self, client):
        response = client.get("/production-orders/does-not-exist")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    def test_non_positive_escrow(self, client):
        response = client.post(
            "/production-orders",
            json={"provider_id": "prov-api-001", "listing_id": "lst-proofed", "escrow_amount": 0},
            headers=CUSTOMER,
        )
        assert response.status_code == 422


class TestLifecycleEndpoints:
    def test_full_proofed_flow_releases_escrow(self, client):
        order_id = _place_order(client)
        assert client.post(f"/production-orders/{order_id}/receipt", headers=PROVIDER).status_code == 200
        _approve_and_deliver(client, order_id)

        response = client.post(f"/production-orders/{order_id}/completion", headers=CUSTOMER)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["tracking_number"] == "TRK-1"
        assert data["settlement"]["provider_amount"] == 180.0
        assert data["settlement"]["platform_fee"] == 20.0

        again = client.post(f"/production-orders/{order_id}/escrow/release")
        assert again.status_code == 200
        assert again.json()["payout_reference"] == data["settlement"]["payout_reference"]

    def test_proofing_gate_is_conflict(self, client):
        order_id = _place_order(client)
        client.post(f"/production-orders/{order_id}/receipt", headers=PROVIDER)
        _submit_proof(client, order_id)

        response = client.post(f"/production-orders/{order_id}/production/start", headers=PROVIDER)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "proofing_required"

    def test_wrong_actor_is_forbidden(self, client):
        order_id = _place_order(client)
        response = client.post(f"/production-orders/{order_id}/receipt", headers=CUSTOMER)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "permission_denied"

    def test_invalid_transition_is_conflict(self, client):
        order_id = _place_order(client)
        response = client.post(f"/production-orders/{order_id}/ready", headers=PROVIDER)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

    def test_stale_proof_is_conflict(self, client):
        order_id = _place_order(client)
        client.post(f"/production-orders/{order_id}/receipt", headers=PROVIDER)
        v1 = _submit_proof(client, order_id)
        client.post(
            f"/production-orders/proofs/{v1}/resolution",
            json={"decision": "request_revision", "feedback": "Darker blue"},
            headers=CUSTOMER,
        )
        _submit_proof(client, order_id, image="https://cdn.example.com/v2.png")

        response = client.post(
            f"/production-orders/proofs/{v1}/resolution", json={"decision": "approve"}, headers=CUSTOMER
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "stale_proof"

        proofs = client.get(f"/production-orders/{order_id}/proofs").json()
        assert [(p["version_number"], p["status"]) for p in proofs] == [(1, "revision_requested"), (2, "pending")]

    def test_unknown_decision_is_unprocessable(self, client):
        order_id = _place_order(client)
        client.post(f"/production-orders/{order_id}/receipt", headers=PROVIDER)
        proof_id = _submit_proof(client, order_id)
        response = client.post(
            f"/production-orders/proofs/{proof_id}/resolution", json={"decision": "maybe"}, headers=CUSTOMER
        )
        assert response.status_code == 422

    def test_arbiter_cancellation(self, client):
        order_id = _place_order(client)
        response = client.post(
            f"/production-orders/{order_id}/cancellation", json={"reason": "Fraud check"}, headers=ARBITER
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["refundable_balance"] == 0.0


class TestTimelineEndpoints:
    def test_timeline_lists_newest_first(self, client):
        order_id = _place_order(client)
        client.post(f"/production-orders/{order_id}/receipt", headers=PROVIDER)

        entries = client.get(f"/production-orders/{order_id}/timeline").json()
        assert [e["sequence"] for e in entries] == [3, 2, 1]
        assert [e["event_type"] for e in entries] == ["order_received", "payment_captured", "order_created"]
        assert entries[0]["from_status"] == "pending_order_received"
        assert entries[0]["to_status"] == "order_received"

    def test_add_note(self, client):
        order_id = _place_order(client)
        response = client.post(
            f"/production-orders/{order_id}/notes", json={"note": "Gift wrap please"}, headers=CUSTOMER
        )
        assert response.status_code == 201
        assert response.json()["description"] == "Gift wrap please"

    def test_stranger_note_forbidden(self, client):
        order_id = _place_order(client)
        response = client.post(
            f"/production-orders/{order_id}/notes", json={"note": "Hi"}, headers={"X-Actor-Id": "stranger"}
        )
        assert response.status_code == 403


class TestRefundEndpoints:
    def test_request_and_approve_refund(self, client):
        order_id = _place_order(client, listing_id="lst-direct", amount=100.0)
        response = client.post(
            f"/production-orders/{order_id}/refunds", json={"amount": 25.0, "reason": "Late"}, headers=CUSTOMER
        )
        assert response.status_code == 201
        refund_id = response.json()["refund_id"]
        assert response.json()["status"] == "pending"

        response = client.post(f"/refunds/{refund_id}/response", json={"decision": "approve"}, headers=PROVIDER)
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        order = client.get(f"/production-orders/{order_id}").json()
        assert order["refundable_balance"] == 75.0
        assert [r["refund_id"] for r in client.get(f"/production-orders/{order_id}/refunds").json()] == [refund_id]

    def test_refund_exceeding_escrow_is_conflict(self, client):
        order_id = _place_order(client, listing_id="lst-direct", amount=100.0)
        response = client.post(
            f"/production-orders/{order_id}/refunds", json={"amount": 150.0, "reason": "All"}, headers=CUSTOMER
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "refund_exceeds_escrow"

    def test_withdraw_refund(self, client):
        order_id = _place_order(client, listing_id="lst-direct", amount=100.0)
        refund_id = client.post(
            f"/production-orders/{order_id}/refunds", json={"amount": 10.0, "reason": "Oops"}, headers=CUSTOMER
        ).json()["refund_id"]

        response = client.post(f"/refunds/{refund_id}/withdrawal", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["status"] == "withdrawn"
        assert client.get(f"/refunds/{refund_id}").json()["status"] == "withdrawn"

    def test_unknown_refund(self, client):
        assert client.get("/refunds/missing").status_code == 404


class TestProviderStatsEndpoint:
    def test_stats_for_provider(self, client):
        _place_order(client, amount=120.0)
        _place_order(client, listing_id="lst-direct", amount=80.0)

        response = client.get("/providers/prov-api-001/production-stats")
        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 2
        assert data["active_orders"] == 2
        assert data["escrow_held"] == 200.0

    def test_stats_for_unknown_provider(self, client):
        data = client.get("/providers/nobody/production-stats").json()
        assert data["total_orders"] == 0
