"""Order cancellation — command and handler.

Cancelling returns whatever escrow is still held straight to the customer;
no refund request is opened for it. Requests still pending for the order
are rejected in the same unit of work, since nothing is left to claim.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from production.domain import production
from production.escrow.ledger import EscrowLedger
from production.order.order import ProductionOrder, load_order
from production.order.timeline import TimelineEventType
from production.refund.refund import RefundRequest, RefundStatus, refunds_for_order

logger = structlog.get_logger(__name__)


@production.command(part_of="ProductionOrder")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)
    reason = String(max_length=500)


@production.command_handler(part_of=ProductionOrder)
class CancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        actor_id = str(command.actor_id)
        order.cancel(actor_id, reason=command.reason, actor_role=command.actor_role)

        refund_repo = current_domain.repository_for(RefundRequest)
        for refund in refunds_for_order(str(order.id)):
            if refund.status != RefundStatus.PENDING.value:
                continue
            refund.close_for_cancelled_order(actor_id)
            order.record_refund_activity(
                TimelineEventType.REFUND_REJECTED,
                str(refund.id),
                actor_id,
                metadata={"amount": refund.amount, "response": refund.provider_response},
            )
            refund_repo.add(refund)
            logger.info("Pending refund closed by cancellation", refund_id=str(refund.id), order_id=str(order.id))

        refunded = EscrowLedger().refund_remaining(
            order,
            reason=command.reason or "Order cancelled",
            actor_id=actor_id,
        )
        current_domain.repository_for(ProductionOrder).add(order)
        return refunded
