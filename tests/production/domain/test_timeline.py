"""Tests for the append-only order timeline and status replay."""

import pytest
from protean.exceptions import ValidationError

from production.errors import PermissionDenied
from production.order.order import ProductionOrder
from production.order.timeline import TimelineEventType, history, replay_status

CUSTOMER = "cust-001"
PROVIDER = "prov-001"


def _make_order(proofing=True):
    return ProductionOrder.place(
        customer_id=CUSTOMER,
        provider_id=PROVIDER,
        listing_id="lst-001",
        escrow_amount=250.0,
        requires_proof_approval=proofing,
    )


def _run_full_proofed_lifecycle(order):
    order.confirm_receipt(PROVIDER)
    v1 = order.submit_proof(PROVIDER, ["https://cdn.example.com/v1.png"])
    order.resolve_proof(str(v1.id), CUSTOMER, "request_revision")
    v2 = order.submit_proof(PROVIDER, ["https://cdn.example.com/v2.png"])
    order.resolve_proof(str(v2.id), CUSTOMER, "approve")
    order.start_production(PROVIDER)
    order.mark_ready_for_delivery(PROVIDER)
    order.mark_shipped(PROVIDER, tracking_number="TRK-9")
    order.complete(CUSTOMER)
    return order


def _status_changes(order):
    return [e for e in history(order) if e.changes_status]


class TestAppendOnly:
    def test_sequences_are_contiguous(self):
        order = _run_full_proofed_lifecycle(_make_order())
        assert [e.sequence for e in history(order)] == list(range(1, len(order.timeline) + 1))

    def test_each_transition_records_exactly_one_status_change(self):
        order = _make_order(proofing=False)
        assert len(_status_changes(order)) == 1
        order.confirm_receipt(PROVIDER)
        assert len(_status_changes(order)) == 2
        order.start_production(PROVIDER)
        assert len(_status_changes(order)) == 3
        order.mark_ready_for_delivery(PROVIDER)
        order.mark_shipped(PROVIDER)
        order.complete(CUSTOMER)
        assert len(_status_changes(order)) == 6

    def test_status_changes_chain(self):
        order = _run_full_proofed_lifecycle(_make_order())
        changes = _status_changes(order)
        for previous, current in zip(changes, changes[1:]):
            assert current.from_status == previous.to_status

    def test_entries_carry_actor_and_description(self):
        order = _make_order()
        order.confirm_receipt(PROVIDER)
        latest = history(order)[-1]
        assert latest.event_type == TimelineEventType.ORDER_RECEIVED.value
        assert latest.actor_id == PROVIDER
        assert latest.description == "Provider confirmed order receipt"
        assert latest.occurred_at is not None

    def test_cancellation_records_refundable_balance(self):
        order = _make_order()
        order.cancel(CUSTOMER, reason="Duplicate order")
        latest = history(order)[-1]
        assert latest.event_type == TimelineEventType.ORDER_CANCELLED.value
        assert latest.parsed_details() == {"reason": "Duplicate order", "refundable_balance": 250.0}


class TestReplay:
    def test_replay_reproduces_current_status(self):
        order = _run_full_proofed_lifecycle(_make_order())
        assert replay_status(order.timeline) == order.status

    def test_replay_of_cancelled_order(self):
        order = _make_order()
        order.confirm_receipt(PROVIDER)
        order.cancel(PROVIDER)
        assert replay_status(order.timeline) == order.status == "cancelled"

    def test_replay_detects_broken_chain(self):
        order = _make_order(proofing=False)
        order.confirm_receipt(PROVIDER)
        order.start_production(PROVIDER)
        entries = [e for e in history(order) if e.event_type != TimelineEventType.ORDER_RECEIVED.value]
        with pytest.raises(ValueError):
            replay_status(entries)


class TestNotes:
    def test_party_can_add_note(self):
        order = _make_order()
        entry = order.add_note(CUSTOMER, "  Please use recycled packaging  ")
        assert entry.event_type == TimelineEventType.NOTE.value
        assert entry.description == "Please use recycled packaging"
        assert entry.to_status is None

    def test_arbiter_can_add_note(self):
        order = _make_order()
        entry = order.add_note("arb-001", "Reviewed dispute", actor_role="arbiter")
        assert entry.parsed_details() == {"actor_role": "arbiter"}

    def test_stranger_cannot_add_note(self):
        order = _make_order()
        with pytest.raises(PermissionDenied):
            order.add_note("stranger", "Hello")

    def test_empty_note_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.add_note(CUSTOMER, "   ")
