"""Refund workflow — request, respond, withdraw commands and handler.

Every refund command also annotates the order's timeline, and approval
debits the order's escrow, so the handler persists both aggregates in one
unit of work.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from production.config import refund_window_days
from production.domain import production
from production.errors import InvalidTransition, PermissionDenied
from production.escrow.ledger import EscrowLedger, to_cents
from production.order.order import ProductionOrder, load_order
from production.order.statuses import OrderStatus
from production.order.timeline import TimelineEventType
from production.refund.refund import (
    RefundDecision,
    RefundRequest,
    RefundStatus,
    load_refund,
    refunds_for_order,
)

logger = structlog.get_logger(__name__)


@production.command(part_of="RefundRequest")
class RequestRefund:
    """Customer asks for ``amount`` of an order's escrow back."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)
    notes = Text()


@production.command(part_of="RefundRequest")
class RespondToRefund:
    """Provider (or an arbiter) approves or rejects a pending request."""

    refund_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)
    decision = String(required=True, choices=RefundDecision)
    response = Text()


@production.command(part_of="RefundRequest")
class WithdrawRefund:
    refund_id = Identifier(required=True)
    customer_id = Identifier(required=True)


def _assert_eligible(order: ProductionOrder, customer_id: str, amount: float) -> None:
    if str(customer_id) != str(order.customer_id):
        raise PermissionDenied("Only the order's customer can request a refund")

    status = OrderStatus(order.status)
    if status == OrderStatus.CANCELLED:
        raise InvalidTransition("Refunds cannot be requested for a cancelled order")
    if status == OrderStatus.COMPLETED and order.delivered_at is not None:
        window = timedelta(days=refund_window_days())
        delivered_at = order.delivered_at
        if delivered_at.tzinfo is None:
            delivered_at = delivered_at.replace(tzinfo=UTC)
        if datetime.now(UTC) - delivered_at > window:
            raise InvalidTransition(f"The {window.days}-day refund window for this order has closed")

    order.assert_refundable(amount)

    pending = [r for r in refunds_for_order(str(order.id)) if r.status == RefundStatus.PENDING.value]
    if pending:
        raise ValidationError({"order_id": ["A refund request is already pending for this order"]})


@production.command_handler(part_of=RefundRequest)
class RefundWorkflowHandler:
    @handle(RequestRefund)
    def request_refund(self, command):
        order = load_order(command.order_id)
        amount = float(to_cents(command.amount))
        _assert_eligible(order, str(command.customer_id), amount)

        refund = RefundRequest.open(order, amount, command.reason, notes=command.notes)
        order.record_refund_activity(
            TimelineEventType.REFUND_REQUESTED,
            str(refund.id),
            str(command.customer_id),
            metadata={"amount": amount, "reason": command.reason},
        )

        current_domain.repository_for(RefundRequest).add(refund)
        current_domain.repository_for(ProductionOrder).add(order)
        logger.info("Refund requested", refund_id=str(refund.id), order_id=str(order.id), amount=amount)
        return str(refund.id)

    @handle(RespondToRefund)
    def respond_to_refund(self, command):
        refund = load_refund(command.refund_id)
        order = load_order(refund.order_id)
        actor_id = str(command.actor_id)

        if RefundDecision(command.decision) == RefundDecision.APPROVE:
            refund.approve(actor_id, actor_role=command.actor_role, response=command.response)
            order.record_refund_activity(
                TimelineEventType.REFUND_APPROVED,
                str(refund.id),
                actor_id,
                metadata={"amount": refund.amount, "response": command.response},
            )
            refund.begin_processing()
            payout_reference = EscrowLedger().refund(
                order,
                refund.amount,
                reason=refund.reason,
                refund_id=str(refund.id),
                actor_id=actor_id,
            )
            refund.complete(payout_reference=payout_reference)
        else:
            refund.reject(actor_id, actor_role=command.actor_role, response=command.response)
            order.record_refund_activity(
                TimelineEventType.REFUND_REJECTED,
                str(refund.id),
                actor_id,
                metadata={"amount": refund.amount, "response": command.response},
            )

        current_domain.repository_for(RefundRequest).add(refund)
        current_domain.repository_for(ProductionOrder).add(order)
        logger.info("Refund request answered", refund_id=str(refund.id), status=refund.status)
        return refund.status

    @handle(WithdrawRefund)
    def withdraw_refund(self, command):
        refund = load_refund(command.refund_id)
        order = load_order(refund.order_id)

        refund.withdraw(str(command.customer_id))
        order.record_refund_activity(
            TimelineEventType.REFUND_WITHDRAWN,
            str(refund.id),
            str(command.customer_id),
            metadata={"amount": refund.amount},
        )

        current_domain.repository_for(RefundRequest).add(refund)
        current_domain.repository_for(ProductionOrder).add(order)
        return refund.status
