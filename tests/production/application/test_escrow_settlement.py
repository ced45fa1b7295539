"""Application tests for escrow release on completion and refunds on cancellation."""

import pytest

from production import engine
from production.errors import InfrastructureError, InvalidTransition
from production.order.statuses import OrderStatus

CUSTOMER = "cust-001"
PROVIDER = "prov-001"


def _shipped_order(amount=200.0):
    order_id = str(engine.place_order(CUSTOMER, PROVIDER, "lst-direct", amount).id)
    engine.confirm_receipt(order_id, PROVIDER)
    engine.start_production(order_id, PROVIDER)
    engine.mark_ready_for_delivery(order_id, PROVIDER)
    engine.mark_shipped(order_id, PROVIDER)
    return order_id


class TestReleaseOnCompletion:
    def test_completion_releases_escrow(self, catalog, processor):
        order_id = _shipped_order()
        order = engine.complete_order(order_id, CUSTOMER)

        assert order.escrow_released_at is not None
        assert order.settlement.provider_amount == 180.0
        assert order.settlement.platform_fee == 20.0
        assert len(processor.releases()) == 1
        event_types = [e.event_type for e in engine.timeline_for(order_id)]
        assert event_types[-2:] == ["delivered", "escrow_released"]

    def test_system_completion(self, catalog, processor):
        order_id = _shipped_order()
        order = engine.complete_order(order_id, "system", actor_role="system")
        assert order.status == OrderStatus.COMPLETED.value

    def test_release_escrow_is_idempotent(self, catalog, processor):
        order_id = _shipped_order()
        first = engine.complete_order(order_id, CUSTOMER).settlement
        again = engine.release_escrow(order_id)

        assert again.payout_reference == first.payout_reference
        assert len(processor.releases()) == 1

    def test_release_before_completion(self, catalog, processor):
        order_id = _shipped_order()
        with pytest.raises(InvalidTransition):
            engine.release_escrow(order_id)
        assert processor.releases() == []

    def test_processor_failure_rolls_back_completion(self, catalog, processor):
        order_id = _shipped_order()
        processor.configure(should_succeed=False, failure_reason="Payout rail down")

        with pytest.raises(InfrastructureError):
            engine.complete_order(order_id, CUSTOMER)

        order = engine.get_order(order_id)
        assert order.status == OrderStatus.SHIPPED.value
        assert order.escrow_released_at is None

        processor.configure(should_succeed=True)
        order = engine.complete_order(order_id, CUSTOMER)
        assert order.status == OrderStatus.COMPLETED.value
        assert order.escrow_released_at is not None
        assert len(processor.releases()) == 2


class TestRefundOnCancellation:
    def test_cancellation_refunds_full_escrow(self, catalog, processor):
        order_id = str(engine.place_order(CUSTOMER, PROVIDER, "lst-direct", 150.0).id)
        order = engine.cancel_order(order_id, CUSTOMER, reason="Changed my mind")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert order.escrow_refunded_amount == 150.0
        assert order.is_fully_refunded
        assert processor.refunds()[0]["amount"] == 150.0
        assert engine.refunds_for(order_id) == []

        event_types = [e.event_type for e in engine.timeline_for(order_id)]
        assert event_types[-2:] == ["order_cancelled", "escrow_refunded"]

    def test_cancellation_refunds_only_remaining_balance(self, catalog, processor):
        order_id = str(engine.place_order(CUSTOMER, PROVIDER, "lst-direct", 150.0).id)
        refund = engine.request_refund(order_id, CUSTOMER, 50.0, "Partial issue")
        engine.respond_to_refund(str(refund.id), PROVIDER, "approve")

        order = engine.cancel_order(order_id, PROVIDER, reason="Cannot source materials")
        assert order.escrow_refunded_amount == 150.0
        assert [c["amount"] for c in processor.refunds()] == [50.0, 100.0]

    def test_arbiter_can_cancel(self, catalog, processor):
        order_id = str(engine.place_order(CUSTOMER, PROVIDER, "lst-direct", 60.0).id)
        order = engine.cancel_order(order_id, "arb-001", reason="Dispute resolved", actor_role="arbiter")
        assert order.cancelled_by == "arb-001"

    def test_completed_order_cannot_be_cancelled(self, catalog, processor):
        order_id = _shipped_order()
        engine.complete_order(order_id, CUSTOMER)
        with pytest.raises(InvalidTransition):
            engine.cancel_order(order_id, CUSTOMER)

    def test_refund_failure_keeps_order_active(self, catalog, processor):
        order_id = str(engine.place_order(CUSTOMER, PROVIDER, "lst-direct", 60.0).id)
        processor.configure(should_succeed=False)
        with pytest.raises(InfrastructureError):
            engine.cancel_order(order_id, CUSTOMER)
        assert engine.get_order(order_id).status == OrderStatus.PENDING_ORDER_RECEIVED.value
