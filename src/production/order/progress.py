"""Production progress — commands and handler.

Starting production and marking an order ready for delivery are both gated
by the order's proofing policy.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from production.domain import production
from production.order.order import ProductionOrder, load_order


@production.command(part_of="ProductionOrder")
class StartProduction:
    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    estimated_completion_days = Integer(min_value=1)


@production.command(part_of="ProductionOrder")
class MarkReadyForDelivery:
    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)


@production.command_handler(part_of=ProductionOrder)
class ProductionProgressHandler:
    @handle(StartProduction)
    def start_production(self, command):
        order = load_order(command.order_id)
        order.start_production(
            str(command.provider_id),
            estimated_completion_days=command.estimated_completion_days,
        )
        current_domain.repository_for(ProductionOrder).add(order)

    @handle(MarkReadyForDelivery)
    def mark_ready_for_delivery(self, command):
        order = load_order(command.order_id)
        order.mark_ready_for_delivery(str(command.provider_id))
        current_domain.repository_for(ProductionOrder).add(order)
