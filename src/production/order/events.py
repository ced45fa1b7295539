"""Production order domain events — immutable facts about lifecycle changes.

Status-changing events carry both ``previous_status`` and ``status`` so
projectors can maintain counters without reloading the aggregate.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from production.domain import production


@production.event(part_of="ProductionOrder")
class OrderPlaced:
    """A customer placed a production order and its payment went into escrow."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    listing_id = Identifier(required=True)
    listing_type = String(required=True)
    status = String(required=True)
    proofing_required = Boolean(required=True)
    escrow_amount = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ConsultationCompleted:
    """The provider finished the pre-order consultation."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    completed_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class OrderReceiptConfirmed:
    """The provider acknowledged the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    received_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ProductionStarted:
    """The provider started producing the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    estimated_completion_at = DateTime()
    started_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ProofSubmitted:
    """The provider submitted a new proof version."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    proof_id = Identifier(required=True)
    version_number = Integer(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    submitted_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ProofApproved:
    """The customer approved a proof version."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    proof_id = Identifier(required=True)
    version_number = Integer(required=True)
    feedback = String()
    resolved_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ProofRevisionRequested:
    """The customer asked for changes to a proof version."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    proof_id = Identifier(required=True)
    version_number = Integer(required=True)
    feedback = String()
    resolved_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class ProofRejected:
    """The customer rejected a proof version outright."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    proof_id = Identifier(required=True)
    version_number = Integer(required=True)
    feedback = String()
    resolved_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class OrderReadyForDelivery:
    """Production finished and the order awaits shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    ready_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class OrderShipped:
    """The provider shipped the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    carrier = String()
    tracking_number = String()
    shipped_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class OrderCompleted:
    """Delivery was confirmed and the order is complete."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    completed_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class OrderCancelled:
    """The order was cancelled before completion."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    cancelled_by = Identifier(required=True)
    reason = String()
    escrow_amount = Float(required=True)
    cancelled_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class EscrowReleased:
    """The escrow balance was settled to the provider and the platform."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    escrow_amount = Float(required=True)
    provider_amount = Float(required=True)
    platform_fee = Float(required=True)
    fee_rate = Float(required=True)
    payout_reference = String()
    released_at = DateTime(required=True)


@production.event(part_of="ProductionOrder")
class EscrowRefunded:
    """Part or all of the escrow balance went back to the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    remaining_balance = Float(required=True)
    escrow_released = Boolean(default=False)
    refund_id = Identifier()
    reason = String()
    payout_reference = String()
    refunded_at = DateTime(required=True)
