"""Timeline recorder — the append-only audit trail of a production order.

Every accepted status transition appends exactly one TimelineEvent carrying
``from_status`` and ``to_status``. Ledger movements, proof decisions, refund
activity and free-form notes append informational events without a status
change. Entries are never edited or removed; ``sequence`` gives a total
order, so replaying the status-changing entries from the start reproduces
the order's current status.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from production.domain import production
from production.order.statuses import OrderStatus


class TimelineEventType(Enum):
    ORDER_CREATED = "order_created"
    PAYMENT_CAPTURED = "payment_captured"
    CONSULTATION_COMPLETED = "consultation_completed"
    ORDER_RECEIVED = "order_received"
    PRODUCTION_STARTED = "production_started"
    PROOF_SUBMITTED = "proof_submitted"
    PROOF_APPROVED = "proof_approved"
    PROOF_REJECTED = "proof_rejected"
    REVISION_REQUESTED = "revision_requested"
    READY_FOR_DELIVERY = "ready_for_delivery"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    ESCROW_RELEASED = "escrow_released"
    ESCROW_REFUNDED = "escrow_refunded"
    REFUND_REQUESTED = "refund_requested"
    REFUND_APPROVED = "refund_approved"
    REFUND_REJECTED = "refund_rejected"
    REFUND_WITHDRAWN = "refund_withdrawn"
    ORDER_CANCELLED = "order_cancelled"
    NOTE = "note"


_DESCRIPTIONS = {
    TimelineEventType.ORDER_CREATED: "Order was created",
    TimelineEventType.PAYMENT_CAPTURED: "Payment captured and held in escrow",
    TimelineEventType.CONSULTATION_COMPLETED: "Provider completed the consultation",
    TimelineEventType.ORDER_RECEIVED: "Provider confirmed order receipt",
    TimelineEventType.PRODUCTION_STARTED: "Production has started",
    TimelineEventType.PROOF_SUBMITTED: "Proof submitted for approval",
    TimelineEventType.PROOF_APPROVED: "Proof was approved by customer",
    TimelineEventType.PROOF_REJECTED: "Proof was rejected by customer",
    TimelineEventType.REVISION_REQUESTED: "Customer requested revisions",
    TimelineEventType.READY_FOR_DELIVERY: "Order is ready for delivery",
    TimelineEventType.SHIPPED: "Order has been shipped",
    TimelineEventType.DELIVERED: "Delivery confirmed and order completed",
    TimelineEventType.ESCROW_RELEASED: "Payment released to provider",
    TimelineEventType.ESCROW_REFUNDED: "Escrowed funds refunded to customer",
    TimelineEventType.REFUND_REQUESTED: "Customer requested a refund",
    TimelineEventType.REFUND_APPROVED: "Refund request was approved",
    TimelineEventType.REFUND_REJECTED: "Refund request was rejected",
    TimelineEventType.REFUND_WITHDRAWN: "Customer withdrew the refund request",
    TimelineEventType.ORDER_CANCELLED: "Order was cancelled",
    TimelineEventType.NOTE: "Note added",
}


@production.entity(part_of="ProductionOrder")
class TimelineEvent:
    """One immutable entry in an order's timeline."""

    sequence = Integer(required=True, min_value=1)
    event_type = String(required=True, max_length=50, choices=TimelineEventType)
    description = String(max_length=1000)
    actor_id = Identifier()
    details = Text()  # JSON object
    from_status = String(max_length=50)
    to_status = String(max_length=50)
    occurred_at = DateTime(required=True)

    @property
    def changes_status(self) -> bool:
        return bool(self.to_status)

    def parsed_details(self) -> dict:
        return json.loads(self.details) if self.details else {}


def record(
    order,
    event_type: TimelineEventType,
    actor_id: str | None = None,
    metadata: dict | None = None,
    from_status: OrderStatus | None = None,
    to_status: OrderStatus | None = None,
    description: str | None = None,
    occurred_at: datetime | None = None,
) -> TimelineEvent:
    """Append an entry to ``order``'s timeline and return it."""
    entry = TimelineEvent(
        sequence=len(order.timeline or []) + 1,
        event_type=event_type.value,
        description=description or _DESCRIPTIONS[event_type],
        actor_id=actor_id,
        details=json.dumps(metadata or {}, default=str, sort_keys=True),
        from_status=from_status.value if from_status else None,
        to_status=to_status.value if to_status else None,
        occurred_at=occurred_at or datetime.now(UTC),
    )
    order.add_timeline(entry)
    return entry


def history(order) -> list[TimelineEvent]:
    """Timeline entries in the order they were recorded."""
    return sorted(order.timeline or [], key=lambda e: e.sequence)


def replay_status(entries) -> str | None:
    """Fold status-changing entries into the status they lead to."""
    status = None
    for entry in sorted(entries, key=lambda e: e.sequence):
        if entry.to_status:
            if status is not None and entry.from_status != status:
                raise ValueError(
                    f"Timeline entry {entry.sequence} starts from {entry.from_status}, expected {status}"
                )
            status = entry.to_status
    return status
