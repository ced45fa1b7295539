"""Tests for proof submission and the proofing gate on production and delivery."""

import pytest
from protean.exceptions import ValidationError

from production.errors import InvalidTransition, PermissionDenied, ProofingRequired
from production.order.events import ProofSubmitted
from production.order.order import ProductionOrder
from production.order.statuses import OrderStatus, ProofStatus
from production.order.timeline import TimelineEventType

CUSTOMER = "cust-001"
PROVIDER = "prov-001"


def _received_order(proofing=True):
    order = ProductionOrder.place(
        customer_id=CUSTOMER,
        provider_id=PROVIDER,
        listing_id="lst-001",
        escrow_amount=500.0,
        requires_proof_approval=proofing,
    )
    order.confirm_receipt(PROVIDER)
    return order


def _submit(order, images=("https://cdn.example.com/proof.png",)):
    return order.submit_proof(PROVIDER, list(images))


class TestProofedOrderGate:
    def test_production_blocked_without_proof(self):
        order = _received_order()
        with pytest.raises(ProofingRequired):
            order.start_production(PROVIDER)
        assert order.status == OrderStatus.ORDER_RECEIVED.value

    def test_submission_moves_order_to_pending_approval(self):
        order = _received_order()
        proof = _submit(order)
        assert proof.version_number == 1
        assert proof.status == ProofStatus.PENDING.value
        assert order.status == OrderStatus.PENDING_APPROVAL.value

    def test_production_blocked_while_proof_pending(self):
        order = _received_order()
        _submit(order)
        with pytest.raises(ProofingRequired):
            order.start_production(PROVIDER)

    def test_production_blocked_after_revision_request(self):
        order = _received_order()
        proof = _submit(order)
        order.resolve_proof(str(proof.id), CUSTOMER, "request_revision", feedback="Bigger font")
        with pytest.raises(ProofingRequired):
            order.start_production(PROVIDER)

    def test_revision_cycle_then_approval_unlocks_production(self):
        order = _received_order()
        v1 = _submit(order)
        order.resolve_proof(str(v1.id), CUSTOMER, "request_revision", feedback="Change the colour")
        assert order.proof(str(v1.id)).status == ProofStatus.REVISION_REQUESTED.value

        v2 = _submit(order)
        assert v2.version_number == 2
        assert order.status == OrderStatus.PENDING_APPROVAL.value

        order.resolve_proof(str(v2.id), CUSTOMER, "approve")
        order.start_production(PROVIDER)
        assert order.status == OrderStatus.IN_PRODUCTION.value

    def test_ready_blocked_by_pending_mid_production_proof(self):
        order = _received_order()
        v1 = _submit(order)
        order.resolve_proof(str(v1.id), CUSTOMER, "approve")
        order.start_production(PROVIDER)

        _submit(order)
        assert order.status == OrderStatus.PENDING_APPROVAL.value
        with pytest.raises(ProofingRequired):
            order.mark_ready_for_delivery(PROVIDER)

    def test_approved_mid_production_proof_allows_ready(self):
        order = _received_order()
        v1 = _submit(order)
        order.resolve_proof(str(v1.id), CUSTOMER, "approve")
        order.start_production(PROVIDER)
        v2 = _submit(order)
        order.resolve_proof(str(v2.id), CUSTOMER, "approve")

        order.mark_ready_for_delivery(PROVIDER)
        assert order.status == OrderStatus.READY_FOR_DELIVERY.value

    def test_ready_before_production_start_is_rejected(self):
        order = _received_order()
        v1 = _submit(order)
        order.resolve_proof(str(v1.id), CUSTOMER, "approve")
        with pytest.raises(InvalidTransition):
            order.mark_ready_for_delivery(PROVIDER)

    def test_rejected_proof_blocks_until_resubmission(self):
        order = _received_order()
        v1 = _submit(order)
        order.resolve_proof(str(v1.id), CUSTOMER, "reject", feedback="Not what I asked for")
        assert order.status == OrderStatus.PENDING_APPROVAL.value
        with pytest.raises(ProofingRequired):
            order.start_production(PROVIDER)

        v2 = _submit(order)
        order.resolve_proof(str(v2.id), CUSTOMER, "approve")
        order.start_production(PROVIDER)
        assert order.status == OrderStatus.IN_PRODUCTION.value


class TestSubmissionRules:
    def test_only_provider_submits(self):
        order = _received_order()
        with pytest.raises(PermissionDenied):
            order.submit_proof(CUSTOMER, ["https://cdn.example.com/x.png"])

    def test_images_are_required(self):
        order = _received_order()
        with pytest.raises(ValidationError) as exc:
            order.submit_proof(PROVIDER, [])
        assert "proof_images" in exc.value.messages

    def test_one_pending_proof_at_a_time(self):
        order = _received_order()
        _submit(order)
        with pytest.raises(InvalidTransition):
            _submit(order)
        assert len(order.proofs) == 1

    def test_no_proofs_before_receipt(self):
        order = ProductionOrder.place(
            customer_id=CUSTOMER,
            provider_id=PROVIDER,
            listing_id="lst-001",
            escrow_amount=500.0,
        )
        with pytest.raises(InvalidTransition):
            _submit(order)

    def test_versions_are_sequential(self):
        order = _received_order()
        for expected in (1, 2, 3):
            proof = _submit(order)
            assert proof.version_number == expected
            order.resolve_proof(str(proof.id), CUSTOMER, "request_revision")
        assert [p.version_number for p in order.sorted_proofs] == [1, 2, 3]
        assert order.current_proof.version_number == 3

    def test_submission_stores_content(self):
        order = _received_order()
        proof = order.submit_proof(
            PROVIDER,
            ["https://cdn.example.com/a.png", "https://cdn.example.com/b.png"],
            design_files=["https://cdn.example.com/a.ai"],
            provider_notes="Two colour options",
        )
        assert proof.images == ["https://cdn.example.com/a.png", "https://cdn.example.com/b.png"]
        assert proof.files == ["https://cdn.example.com/a.ai"]
        assert proof.provider_notes == "Two colour options"
        assert proof.submitted_by == PROVIDER

    def test_submission_raises_event(self):
        order = _received_order()
        order._events.clear()
        proof = _submit(order)
        events = [e for e in order._events if isinstance(e, ProofSubmitted)]
        assert len(events) == 1
        assert events[0].proof_id == str(proof.id)
        assert events[0].previous_status == OrderStatus.ORDER_RECEIVED.value
        assert events[0].status == OrderStatus.PENDING_APPROVAL.value


class TestNonProofedOrders:
    def test_production_starts_without_proofs(self):
        order = _received_order(proofing=False)
        order.start_production(PROVIDER)
        assert order.status == OrderStatus.IN_PRODUCTION.value
        assert order.proofs == []

    def test_proof_is_informational(self):
        order = _received_order(proofing=False)
        order.start_production(PROVIDER)
        _submit(order)
        assert order.status == OrderStatus.IN_PRODUCTION.value

        latest = sorted(order.timeline, key=lambda e: e.sequence)[-1]
        assert latest.event_type == TimelineEventType.PROOF_SUBMITTED.value
        assert latest.to_status is None

    def test_shared_proof_does_not_block_delivery(self):
        order = _received_order(proofing=False)
        order.start_production(PROVIDER)
        _submit(order)
        order.mark_ready_for_delivery(PROVIDER)
        assert order.status == OrderStatus.READY_FOR_DELIVERY.value

    def test_shared_proofs_need_no_decision(self):
        order = _received_order(proofing=False)
        first = _submit(order)
        second = _submit(order, images=("https://cdn.example.com/proof-v2.png",))

        assert first.status == ProofStatus.INFORMATIONAL.value
        assert second.version_number == 2
        assert order.pending_proof is None

    def test_shared_proof_cannot_be_resolved(self):
        order = _received_order(proofing=False)
        proof = _submit(order)
        entries_before = len(order.timeline)

        with pytest.raises(InvalidTransition):
            order.resolve_proof(str(proof.id), CUSTOMER, "approve")
        assert proof.status == ProofStatus.INFORMATIONAL.value
        assert len(order.timeline) == entries_before
