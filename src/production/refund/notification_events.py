"""Refund notifications — keeps both parties informed about refund requests."""

from protean.utils.mixins import handle

from production.domain import production
from production.notifications import notify
from production.refund.events import (
    RefundCompleted,
    RefundRejected,
    RefundRequested,
    RefundWithdrawn,
)
from production.refund.refund import RefundRequest


@production.event_handler(part_of=RefundRequest)
class RefundNotificationHandler:
    @handle(RefundRequested)
    def on_refund_requested(self, event: RefundRequested) -> None:
        notify(
            event.provider_id,
            "refund_requested",
            refund_id=str(event.refund_id),
            order_id=str(event.order_id),
            amount=event.amount,
            reason=event.reason,
        )

    @handle(RefundCompleted)
    def on_refund_completed(self, event: RefundCompleted) -> None:
        notify(event.customer_id, "refund_completed", refund_id=str(event.refund_id), amount=event.amount)

    @handle(RefundRejected)
    def on_refund_rejected(self, event: RefundRejected) -> None:
        notify(
            event.customer_id,
            "refund_rejected",
            refund_id=str(event.refund_id),
            response=event.provider_response,
        )

    @handle(RefundWithdrawn)
    def on_refund_withdrawn(self, event: RefundWithdrawn) -> None:
        notify(event.provider_id, "refund_withdrawn", refund_id=str(event.refund_id))
