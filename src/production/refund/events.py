"""Refund request domain events."""

from protean.fields import DateTime, Float, Identifier, String

from production.domain import production


@production.event(part_of="RefundRequest")
class RefundRequested:
    """A customer asked for part of their escrow back."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@production.event(part_of="RefundRequest")
class RefundApproved:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    responded_by = Identifier(required=True)
    provider_response = String()
    responded_at = DateTime(required=True)


@production.event(part_of="RefundRequest")
class RefundRejected:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    responded_by = Identifier(required=True)
    provider_response = String()
    responded_at = DateTime(required=True)


@production.event(part_of="RefundRequest")
class RefundCompleted:
    """The approved amount was paid back to the customer."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    payout_reference = String()
    completed_at = DateTime(required=True)


@production.event(part_of="RefundRequest")
class RefundWithdrawn:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    amount = Float(required=True)
    withdrawn_at = DateTime(required=True)
