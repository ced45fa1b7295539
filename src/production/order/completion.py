"""Order completion and escrow release — commands and handler.

Completing an order releases its escrow in the same unit of work. If the
payout processor fails the whole completion rolls back and can be retried.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from production.domain import production
from production.escrow.ledger import EscrowLedger
from production.order.order import ProductionOrder, load_order


@production.command(part_of="ProductionOrder")
class CompleteOrder:
    """Confirm delivery. ``actor_id`` is the confirming customer, if any."""

    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)


@production.command(part_of="ProductionOrder")
class ReleaseEscrow:
    """Settle a completed order's escrow; repeated calls return the same settlement."""

    order_id = Identifier(required=True)


@production.command_handler(part_of=ProductionOrder)
class CompletionHandler:
    @handle(CompleteOrder)
    def complete_order(self, command):
        order = load_order(command.order_id)
        order.complete(
            actor_id=str(command.actor_id) if command.actor_id else None,
            actor_role=command.actor_role,
        )
        settlement = EscrowLedger().release(order)
        current_domain.repository_for(ProductionOrder).add(order)
        return settlement

    @handle(ReleaseEscrow)
    def release_escrow(self, command):
        order = load_order(command.order_id)
        already_released = order.escrow_released_at is not None
        settlement = EscrowLedger().release(order)
        if not already_released:
            current_domain.repository_for(ProductionOrder).add(order)
        return settlement
