"""Order placement — command and handler.

Snapshots the listing's proofing configuration onto the new order. The
listing catalog is consulted once, here; later catalog changes never reach
existing orders.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from production.domain import production
from production.listing import get_catalog
from production.order.order import ProductionOrder

logger = structlog.get_logger(__name__)


@production.command(part_of="ProductionOrder")
class PlaceOrder:
    """Place a production order for a listing with its payment held in escrow."""

    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    listing_id = Identifier(required=True)
    escrow_amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="USD")
    title = String(max_length=255)
    # Used only when the listing is not known to the catalog
    listing_type = String(max_length=50)
    requires_proof_approval = Boolean()
    requires_consultation = Boolean(default=False)


@production.command_handler(part_of=ProductionOrder)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        if str(command.customer_id) == str(command.provider_id):
            raise ValidationError({"customer_id": ["Customers cannot order from themselves"]})

        config = get_catalog().proofing_config(str(command.listing_id))
        if config is not None:
            listing_type = config.listing_type
            requires_proof_approval = config.requires_proof_approval
            requires_consultation = config.requires_consultation
            title = command.title or config.title
        else:
            if not command.listing_type:
                raise ValidationError({"listing_id": [f"Listing {command.listing_id} is not in the catalog"]})
            listing_type = command.listing_type
            requires_proof_approval = command.requires_proof_approval
            requires_consultation = bool(command.requires_consultation)
            title = command.title

        order = ProductionOrder.place(
            customer_id=str(command.customer_id),
            provider_id=str(command.provider_id),
            listing_id=str(command.listing_id),
            escrow_amount=command.escrow_amount,
            listing_type=listing_type,
            requires_proof_approval=requires_proof_approval,
            requires_consultation=requires_consultation,
            title=title,
            currency=command.currency or "USD",
        )
        current_domain.repository_for(ProductionOrder).add(order)
        logger.info(
            "Production order placed",
            order_id=str(order.id),
            listing_type=listing_type,
            proofing_required=order.proofing_required,
        )
        return str(order.id)
