"""RefundRequest aggregate — a customer's request for escrowed funds back.

A refund request has its own lifecycle next to the order it belongs to.
Approval moves it through PROCESSING to COMPLETED within the same unit of
work that debits the order's escrow, so an approved request is never left
half-applied.

State Machine:
    PENDING → {APPROVED, REJECTED, WITHDRAWN}
    APPROVED → PROCESSING → COMPLETED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from production.domain import production
from production.errors import InvalidTransition, NotFound, PermissionDenied
from production.order.statuses import ActorRole
from production.refund.events import (
    RefundApproved,
    RefundCompleted,
    RefundRejected,
    RefundRequested,
    RefundWithdrawn,
)


class RefundStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


CANCELLED_ORDER_RESPONSE = "Order cancelled; the remaining escrow was refunded"


class RefundDecision(Enum):
    APPROVE = "approve"
    REJECT = "reject"


_VALID_TRANSITIONS = {
    RefundStatus.PENDING: {RefundStatus.APPROVED, RefundStatus.REJECTED, RefundStatus.WITHDRAWN},
    RefundStatus.APPROVED: {RefundStatus.PROCESSING},
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED},
    RefundStatus.REJECTED: set(),  # terminal
    RefundStatus.COMPLETED: set(),  # terminal
    RefundStatus.WITHDRAWN: set(),  # terminal
}


@production.aggregate
class RefundRequest:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="USD")
    reason = String(required=True, max_length=500)
    notes = Text()
    status = String(choices=RefundStatus, default=RefundStatus.PENDING.value)
    provider_response = Text()
    responded_by = Identifier()
    responder_role = String(max_length=20)
    responded_at = DateTime()
    processed_at = DateTime()
    completed_at = DateTime()
    withdrawn_at = DateTime()
    payout_reference = String(max_length=255)
    requested_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order, amount: float, reason: str, notes: str | None = None):
        """Open a pending request against ``order``. Eligibility is checked by the caller."""
        now = datetime.now(UTC)
        request = cls(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            provider_id=str(order.provider_id),
            amount=round(amount, 2),
            currency=order.currency,
            reason=reason,
            notes=notes,
            status=RefundStatus.PENDING.value,
            requested_at=now,
            updated_at=now,
        )
        request.raise_(
            RefundRequested(
                refund_id=str(request.id),
                order_id=str(order.id),
                customer_id=str(order.customer_id),
                provider_id=str(order.provider_id),
                amount=request.amount,
                reason=reason,
                requested_at=now,
            )
        )
        return request

    def _assert_can_transition(self, target_status: RefundStatus) -> None:
        current = RefundStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                f"Cannot move refund request from {current.value} to {target_status.value}",
                field="refund_status",
            )

    def _assert_responder(self, actor_id: str, actor_role: str | None) -> None:
        if actor_role == ActorRole.ARBITER.value:
            return
        if str(actor_id) != str(self.provider_id):
            raise PermissionDenied("Only the order's provider or an arbiter can respond to a refund request")

    def _party_ids(self) -> dict:
        return {
            "refund_id": str(self.id),
            "order_id": str(self.order_id),
            "customer_id": str(self.customer_id),
            "provider_id": str(self.provider_id),
            "amount": self.amount,
        }

    def approve(self, actor_id: str, actor_role: str | None = None, response: str | None = None) -> None:
        self._assert_responder(actor_id, actor_role)
        self._assert_can_transition(RefundStatus.APPROVED)
        now = datetime.now(UTC)
        self.status = RefundStatus.APPROVED.value
        self.provider_response = response
        self.responded_by = actor_id
        self.responder_role = actor_role or ActorRole.PROVIDER.value
        self.responded_at = now
        self.updated_at = now
        self.raise_(
            RefundApproved(
                **self._party_ids(),
                responded_by=actor_id,
                provider_response=response,
                responded_at=now,
            )
        )

    def reject(self, actor_id: str, actor_role: str | None = None, response: str | None = None) -> None:
        self._assert_responder(actor_id, actor_role)
        self._assert_can_transition(RefundStatus.REJECTED)
        now = datetime.now(UTC)
        self.status = RefundStatus.REJECTED.value
        self.provider_response = response
        self.responded_by = actor_id
        self.responder_role = actor_role or ActorRole.PROVIDER.value
        self.responded_at = now
        self.updated_at = now
        self.raise_(
            RefundRejected(
                **self._party_ids(),
                responded_by=actor_id,
                provider_response=response,
                responded_at=now,
            )
        )

    def close_for_cancelled_order(self, actor_id: str) -> None:
        """Reject a pending request because its order was cancelled.

        Cancellation already returned the whole remaining escrow, so nothing
        is left for the request to claim.
        """
        self._assert_can_transition(RefundStatus.REJECTED)
        now = datetime.now(UTC)
        self.status = RefundStatus.REJECTED.value
        self.provider_response = CANCELLED_ORDER_RESPONSE
        self.responded_by = actor_id
        self.responder_role = ActorRole.SYSTEM.value
        self.responded_at = now
        self.updated_at = now
        self.raise_(
            RefundRejected(
                **self._party_ids(),
                responded_by=actor_id,
                provider_response=CANCELLED_ORDER_RESPONSE,
                responded_at=now,
            )
        )

    def begin_processing(self) -> None:
        self._assert_can_transition(RefundStatus.PROCESSING)
        now = datetime.now(UTC)
        self.status = RefundStatus.PROCESSING.value
        self.processed_at = now
        self.updated_at = now

    def complete(self, payout_reference: str | None = None) -> None:
        self._assert_can_transition(RefundStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = RefundStatus.COMPLETED.value
        self.payout_reference = payout_reference
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            RefundCompleted(
                **self._party_ids(),
                payout_reference=payout_reference,
                completed_at=now,
            )
        )

    def withdraw(self, actor_id: str) -> None:
        """The requesting customer cancels a request nobody has answered yet."""
        if str(actor_id) != str(self.customer_id):
            raise PermissionDenied("Only the customer who requested the refund can withdraw it")
        self._assert_can_transition(RefundStatus.WITHDRAWN)
        now = datetime.now(UTC)
        self.status = RefundStatus.WITHDRAWN.value
        self.withdrawn_at = now
        self.updated_at = now
        self.raise_(RefundWithdrawn(**self._party_ids(), withdrawn_at=now))


def load_refund(refund_id: str) -> RefundRequest:
    try:
        return current_domain.repository_for(RefundRequest).get(refund_id)
    except ObjectNotFoundError:
        raise NotFound(f"Refund request {refund_id} does not exist", field="refund_id") from None


def refunds_for_order(order_id: str) -> list[RefundRequest]:
    repo = current_domain.repository_for(RefundRequest)
    refunds = repo._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(refunds, key=lambda r: r.requested_at)
