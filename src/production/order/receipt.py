"""Consultation and order receipt — commands and handler.

Both steps are provider acknowledgements that precede any production work.
"""

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from production.domain import production
from production.order.order import ProductionOrder, load_order


@production.command(part_of="ProductionOrder")
class CompleteConsultation:
    """Provider closes the pre-order consultation."""

    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    notes = Text()


@production.command(part_of="ProductionOrder")
class ConfirmReceipt:
    """Provider confirms receipt of the order."""

    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)


@production.command_handler(part_of=ProductionOrder)
class ReceiptHandler:
    @handle(CompleteConsultation)
    def complete_consultation(self, command):
        order = load_order(command.order_id)
        order.complete_consultation(str(command.provider_id), notes=command.notes)
        current_domain.repository_for(ProductionOrder).add(order)

    @handle(ConfirmReceipt)
    def confirm_receipt(self, command):
        order = load_order(command.order_id)
        order.confirm_receipt(str(command.provider_id))
        current_domain.repository_for(ProductionOrder).add(order)
