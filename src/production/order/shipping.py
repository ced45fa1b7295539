"""Order shipping — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from production.domain import production
from production.order.order import ProductionOrder, load_order


@production.command(part_of="ProductionOrder")
class MarkShipped:
    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)


@production.command_handler(part_of=ProductionOrder)
class ShippingHandler:
    @handle(MarkShipped)
    def mark_shipped(self, command):
        order = load_order(command.order_id)
        order.mark_shipped(
            str(command.provider_id),
            tracking_number=command.tracking_number,
            carrier=command.carrier,
        )
        current_domain.repository_for(ProductionOrder).add(order)
