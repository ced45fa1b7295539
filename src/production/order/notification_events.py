"""Lifecycle notifications — tells the other party when an order moves.

Dispatch goes through production.notifications.notify(), which logs and
drops delivery failures so a broken channel never blocks a transition.
"""

import structlog
from protean.utils.mixins import handle

from production.domain import production
from production.notifications import notify
from production.order.events import (
    EscrowRefunded,
    EscrowReleased,
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderReadyForDelivery,
    OrderReceiptConfirmed,
    OrderShipped,
    ProductionStarted,
    ProofApproved,
    ProofRejected,
    ProofRevisionRequested,
    ProofSubmitted,
)
from production.order.order import ProductionOrder

logger = structlog.get_logger(__name__)


@production.event_handler(part_of=ProductionOrder)
class OrderNotificationHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        notify(event.provider_id, "order_placed", order_id=str(event.order_id), amount=event.escrow_amount)

    @handle(OrderReceiptConfirmed)
    def on_receipt_confirmed(self, event: OrderReceiptConfirmed) -> None:
        notify(event.customer_id, "order_received", order_id=str(event.order_id))

    @handle(ProductionStarted)
    def on_production_started(self, event: ProductionStarted) -> None:
        notify(
            event.customer_id,
            "production_started",
            order_id=str(event.order_id),
            estimated_completion_at=str(event.estimated_completion_at) if event.estimated_completion_at else None,
        )

    @handle(ProofSubmitted)
    def on_proof_submitted(self, event: ProofSubmitted) -> None:
        notify(
            event.customer_id,
            "proof_submitted",
            order_id=str(event.order_id),
            proof_id=str(event.proof_id),
            version=event.version_number,
        )

    @handle(ProofApproved)
    def on_proof_approved(self, event: ProofApproved) -> None:
        notify(event.provider_id, "proof_approved", order_id=str(event.order_id), version=event.version_number)

    @handle(ProofRevisionRequested)
    def on_revision_requested(self, event: ProofRevisionRequested) -> None:
        notify(
            event.provider_id,
            "revision_requested",
            order_id=str(event.order_id),
            version=event.version_number,
            feedback=event.feedback,
        )

    @handle(ProofRejected)
    def on_proof_rejected(self, event: ProofRejected) -> None:
        notify(
            event.provider_id,
            "proof_rejected",
            order_id=str(event.order_id),
            version=event.version_number,
            feedback=event.feedback,
        )

    @handle(OrderReadyForDelivery)
    def on_ready_for_delivery(self, event: OrderReadyForDelivery) -> None:
        notify(event.customer_id, "ready_for_delivery", order_id=str(event.order_id))

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        notify(
            event.customer_id,
            "order_shipped",
            order_id=str(event.order_id),
            carrier=event.carrier,
            tracking_number=event.tracking_number,
        )

    @handle(OrderCompleted)
    def on_order_completed(self, event: OrderCompleted) -> None:
        notify(event.provider_id, "delivery_confirmed", order_id=str(event.order_id))

    @handle(EscrowReleased)
    def on_escrow_released(self, event: EscrowReleased) -> None:
        notify(
            event.provider_id,
            "payment_released",
            order_id=str(event.order_id),
            amount=event.provider_amount,
        )

    @handle(EscrowRefunded)
    def on_escrow_refunded(self, event: EscrowRefunded) -> None:
        notify(event.customer_id, "escrow_refunded", order_id=str(event.order_id), amount=event.amount)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        logger.info("Notifying parties of cancellation", order_id=str(event.order_id))
        for recipient in (event.customer_id, event.provider_id):
            if str(recipient) != str(event.cancelled_by):
                notify(recipient, "order_cancelled", order_id=str(event.order_id), reason=event.reason)
