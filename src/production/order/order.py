"""ProductionOrder aggregate (CQRS) — the core of the production domain.

A production order tracks one made-to-order job from placement to escrow
settlement. Proof submissions and the audit timeline are child entities so
that a transition, its proof bookkeeping and its timeline entry are always
persisted together.

State Machine:
    PENDING_CONSULTATION → PENDING_ORDER_RECEIVED → ORDER_RECEIVED
    ORDER_RECEIVED → {IN_PRODUCTION, PENDING_APPROVAL}
    IN_PRODUCTION ⇄ PENDING_APPROVAL (proof submitted / approved before start)
    {IN_PRODUCTION, PENDING_APPROVAL} → READY_FOR_DELIVERY → SHIPPED → COMPLETED
    any non-terminal → CANCELLED

PENDING_APPROVAL → IN_PRODUCTION is only legal while production has not yet
started, and PENDING_APPROVAL → READY_FOR_DELIVERY only once it has. The
proofing policy snapshotted at placement gates both production start and
readiness on the latest proof being approved.
"""

import json
from datetime import UTC, datetime, timedelta

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)
from protean.utils.globals import current_domain

from production.domain import production
from production.errors import (
    EscrowAlreadyRefunded,
    EscrowAlreadyReleased,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    RefundExceedsEscrow,
    StaleProof,
)
from production.order import timeline as recorder
from production.order.events import (
    ConsultationCompleted,
    EscrowRefunded,
    EscrowReleased,
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderReadyForDelivery,
    OrderReceiptConfirmed,
    OrderShipped,
    ProductionStarted,
    ProofApproved,
    ProofRejected,
    ProofRevisionRequested,
    ProofSubmitted,
)
from production.order.policy import ProofingPolicy, policy_for, resolve_policy
from production.order.statuses import (
    TERMINAL_STATUSES,
    ActorRole,
    ListingType,
    OrderStatus,
    ProofDecision,
    ProofStatus,
)
from production.order.timeline import TimelineEvent, TimelineEventType

_VALID_TRANSITIONS = {
    OrderStatus.PENDING_CONSULTATION: {OrderStatus.PENDING_ORDER_RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.PENDING_ORDER_RECEIVED: {OrderStatus.ORDER_RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.ORDER_RECEIVED: {
        OrderStatus.IN_PRODUCTION,
        OrderStatus.PENDING_APPROVAL,
        OrderStatus.CANCELLED,
    },
    OrderStatus.IN_PRODUCTION: {
        OrderStatus.PENDING_APPROVAL,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PENDING_APPROVAL: {
        OrderStatus.IN_PRODUCTION,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY_FOR_DELIVERY: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

# decision → (resulting proof status, timeline entry, domain event)
_PROOF_DECISIONS = {
    ProofDecision.APPROVE: (ProofStatus.APPROVED, TimelineEventType.PROOF_APPROVED, ProofApproved),
    ProofDecision.REQUEST_REVISION: (
        ProofStatus.REVISION_REQUESTED,
        TimelineEventType.REVISION_REQUESTED,
        ProofRevisionRequested,
    ),
    ProofDecision.REJECT: (ProofStatus.REJECTED, TimelineEventType.PROOF_REJECTED, ProofRejected),
}

_CENT = 0.005


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@production.value_object(part_of="ProductionOrder")
class Settlement:
    """How a released escrow balance was split."""

    provider_amount = Float(required=True, min_value=0.0)
    platform_fee = Float(required=True, min_value=0.0)
    fee_rate = Float(required=True, min_value=0.0, max_value=1.0)
    payout_reference = String(max_length=255)
    released_at = DateTime()


@production.value_object(part_of="ProductionOrder")
class ShipmentInfo:
    """Carrier details recorded when the order ships."""

    carrier = String(max_length=100)
    tracking_number = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@production.entity(part_of="ProductionOrder")
class ProofSubmission:
    """One numbered proof version submitted by the provider."""

    version_number = Integer(required=True, min_value=1)
    submitted_by = Identifier(required=True)
    proof_images = Text(required=True)  # JSON list of image URLs
    design_files = Text()  # JSON list of file URLs
    provider_notes = Text()
    status = String(max_length=50, choices=ProofStatus, default=ProofStatus.PENDING.value)
    customer_feedback = Text()
    resolved_by = Identifier()
    resolved_at = DateTime()
    submitted_at = DateTime(required=True)

    @property
    def images(self) -> list[str]:
        return json.loads(self.proof_images) if self.proof_images else []

    @property
    def files(self) -> list[str]:
        return json.loads(self.design_files) if self.design_files else []


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@production.aggregate
class ProductionOrder:
    customer_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    listing_id = Identifier(required=True)
    listing_type = String(choices=ListingType, default=ListingType.CUSTOM_SERVICE.value)
    title = String(max_length=255)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_ORDER_RECEIVED.value)

    # Proofing snapshot, fixed at placement
    proofing_required = Boolean(default=True)
    proofing_bypassed = Boolean(default=False)
    proofing_bypass_reason = String(max_length=255)

    # Escrow
    escrow_amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="USD")
    escrow_refunded_amount = Float(default=0.0)
    escrow_released_at = DateTime()
    settlement = ValueObject(Settlement)

    # Phase timestamps
    consultation_completed_at = DateTime()
    order_received_at = DateTime()
    production_started_at = DateTime()
    estimated_completion_at = DateTime()
    proof_approved_at = DateTime()
    ready_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    shipment = ValueObject(ShipmentInfo)
    cancellation_reason = String(max_length=500)
    cancelled_by = Identifier()

    proofs = HasMany(ProofSubmission)
    timeline = HasMany(TimelineEvent)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def escrow_released_only_when_completed(self):
        if self.escrow_released_at is not None and self.status != OrderStatus.COMPLETED.value:
            raise ValidationError({"escrow": ["Escrow can only be released for completed orders"]})

    @invariant.post
    def refunds_cannot_exceed_escrow(self):
        if (self.escrow_refunded_amount or 0.0) > (self.escrow_amount or 0.0) + _CENT:
            raise ValidationError({"escrow": ["Refunded amount cannot exceed the escrowed amount"]})

    @invariant.post
    def at_most_one_pending_proof(self):
        pending = [p for p in (self.proofs or []) if p.status == ProofStatus.PENDING.value]
        if len(pending) > 1:
            raise ValidationError({"proofs": ["Only one proof can await a decision at a time"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        provider_id: str,
        listing_id: str,
        escrow_amount: float,
        listing_type: str = ListingType.CUSTOM_SERVICE.value,
        requires_proof_approval: bool | None = None,
        requires_consultation: bool = False,
        title: str | None = None,
        currency: str = "USD",
    ):
        """Place a new order with its payment already captured into escrow."""
        if escrow_amount is None or escrow_amount <= 0:
            raise ValidationError({"escrow_amount": ["Escrow amount must be greater than zero"]})

        policy = resolve_policy(listing_type, requires_proof_approval)
        status = OrderStatus.PENDING_CONSULTATION if requires_consultation else OrderStatus.PENDING_ORDER_RECEIVED
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            provider_id=provider_id,
            listing_id=listing_id,
            listing_type=listing_type,
            title=title,
            status=status.value,
            proofing_required=policy.requires_proof_approval,
            proofing_bypassed=not policy.requires_proof_approval,
            proofing_bypass_reason=policy.bypass_reason,
            escrow_amount=round(escrow_amount, 2),
            currency=currency,
            escrow_refunded_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        recorder.record(
            order,
            TimelineEventType.ORDER_CREATED,
            actor_id=customer_id,
            metadata={"listing_id": listing_id, "listing_type": listing_type},
            to_status=status,
            occurred_at=now,
        )
        recorder.record(
            order,
            TimelineEventType.PAYMENT_CAPTURED,
            actor_id=customer_id,
            metadata={"amount": order.escrow_amount, "currency": currency},
            occurred_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                provider_id=provider_id,
                listing_id=listing_id,
                listing_type=listing_type,
                status=status.value,
                proofing_required=policy.requires_proof_approval,
                escrow_amount=order.escrow_amount,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def policy(self) -> ProofingPolicy:
        return policy_for(self.proofing_required, self.proofing_bypass_reason)

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    @property
    def sorted_proofs(self) -> list[ProofSubmission]:
        return sorted(self.proofs or [], key=lambda p: p.version_number)

    @property
    def current_proof(self) -> ProofSubmission | None:
        proofs = self.sorted_proofs
        return proofs[-1] if proofs else None

    @property
    def pending_proof(self) -> ProofSubmission | None:
        return next((p for p in self.sorted_proofs if p.status == ProofStatus.PENDING.value), None)

    def proof(self, proof_id: str) -> ProofSubmission:
        found = next((p for p in (self.proofs or []) if str(p.id) == str(proof_id)), None)
        if found is None:
            raise NotFound(f"Proof {proof_id} does not belong to order {self.id}", field="proof_id")
        return found

    @property
    def refundable_balance(self) -> float:
        return round((self.escrow_amount or 0.0) - (self.escrow_refunded_amount or 0.0), 2)

    @property
    def is_fully_refunded(self) -> bool:
        return self.refundable_balance < _CENT

    def is_party(self, actor_id: str) -> bool:
        return str(actor_id) in (str(self.customer_id), str(self.provider_id))

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(f"Cannot transition from {current.value} to {target_status.value}")

    def _assert_provider(self, actor_id: str, action: str) -> None:
        if str(actor_id) != str(self.provider_id):
            raise PermissionDenied(f"Only the order's provider can {action}")

    def _assert_customer(self, actor_id: str, action: str) -> None:
        if str(actor_id) != str(self.customer_id):
            raise PermissionDenied(f"Only the order's customer can {action}")

    def _transition(
        self,
        target_status: OrderStatus,
        event_type: TimelineEventType,
        actor_id: str | None,
        metadata: dict | None = None,
        now: datetime | None = None,
    ) -> OrderStatus:
        """Move to ``target_status`` and record the change; returns the previous status."""
        previous = OrderStatus(self.status)
        now = now or datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        recorder.record(
            self,
            event_type,
            actor_id=actor_id,
            metadata=metadata,
            from_status=previous,
            to_status=target_status,
            occurred_at=now,
        )
        return previous

    def _party_ids(self) -> dict:
        return {
            "order_id": str(self.id),
            "customer_id": str(self.customer_id),
            "provider_id": str(self.provider_id),
        }

    # -------------------------------------------------------------------
    # Consultation and receipt
    # -------------------------------------------------------------------
    def complete_consultation(self, actor_id: str, notes: str | None = None) -> None:
        self._assert_provider(actor_id, "complete the consultation")
        self._assert_can_transition(OrderStatus.PENDING_ORDER_RECEIVED)

        now = datetime.now(UTC)
        previous = self._transition(
            OrderStatus.PENDING_ORDER_RECEIVED,
            TimelineEventType.CONSULTATION_COMPLETED,
            actor_id,
            metadata={"notes": notes} if notes else None,
            now=now,
        )
        self.consultation_completed_at = now
        self.raise_(
            ConsultationCompleted(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                completed_at=now,
            )
        )

    def confirm_receipt(self, actor_id: str) -> None:
        """Provider acknowledges the order and commits to producing it."""
        self._assert_provider(actor_id, "confirm receipt of the order")
        self._assert_can_transition(OrderStatus.ORDER_RECEIVED)

        now = datetime.now(UTC)
        previous = self._transition(OrderStatus.ORDER_RECEIVED, TimelineEventType.ORDER_RECEIVED, actor_id, now=now)
        self.order_received_at = now
        self.raise_(
            OrderReceiptConfirmed(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                received_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Production
    # -------------------------------------------------------------------
    def start_production(self, actor_id: str, estimated_completion_days: int | None = None) -> None:
        self._assert_provider(actor_id, "start production")
        self._assert_can_transition(OrderStatus.IN_PRODUCTION)
        if self.production_started_at is not None:
            raise InvalidTransition("Production has already started for this order")
        self.policy.assert_can_start_production(self)

        now = datetime.now(UTC)
        estimated = now + timedelta(days=estimated_completion_days) if estimated_completion_days else None
        previous = self._transition(
            OrderStatus.IN_PRODUCTION,
            TimelineEventType.PRODUCTION_STARTED,
            actor_id,
            metadata={"estimated_completion_days": estimated_completion_days} if estimated else None,
            now=now,
        )
        self.production_started_at = now
        self.estimated_completion_at = estimated
        self.raise_(
            ProductionStarted(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                estimated_completion_at=estimated,
                started_at=now,
            )
        )

    def mark_ready_for_delivery(self, actor_id: str) -> None:
        self._assert_provider(actor_id, "mark the order ready for delivery")
        self._assert_can_transition(OrderStatus.READY_FOR_DELIVERY)
        if self.production_started_at is None:
            raise InvalidTransition("Production has not started for this order")
        self.policy.assert_can_mark_ready(self)

        now = datetime.now(UTC)
        previous = self._transition(
            OrderStatus.READY_FOR_DELIVERY, TimelineEventType.READY_FOR_DELIVERY, actor_id, now=now
        )
        self.ready_at = now
        self.raise_(
            OrderReadyForDelivery(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                ready_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Proofing
    # -------------------------------------------------------------------
    def submit_proof(
        self,
        actor_id: str,
        proof_images: list[str],
        design_files: list[str] | None = None,
        provider_notes: str | None = None,
    ) -> ProofSubmission:
        """Submit the next proof version.

        For proofed orders this moves the order to PENDING_APPROVAL. For
        non-proofed orders the proof is recorded for the customer's
        information and the status is left alone.
        """
        self._assert_provider(actor_id, "submit proofs")
        if not proof_images:
            raise ValidationError({"proof_images": ["At least one proof image is required"]})

        current = OrderStatus(self.status)
        policy = self.policy
        if not policy.accepts_proofs_in(current):
            raise InvalidTransition(f"Proofs cannot be submitted while the order is {current.value}")

        pending = self.pending_proof
        if pending is not None:
            raise InvalidTransition(f"Proof version {pending.version_number} is still awaiting a decision")

        now = datetime.now(UTC)
        latest = self.current_proof
        proof = ProofSubmission(
            version_number=(latest.version_number if latest else 0) + 1,
            submitted_by=actor_id,
            proof_images=json.dumps(list(proof_images)),
            design_files=json.dumps(list(design_files or [])),
            provider_notes=provider_notes,
            status=policy.submitted_proof_status.value,
            submitted_at=now,
        )
        self.add_proofs(proof)

        metadata = {"proof_id": str(proof.id), "version": proof.version_number}
        target = policy.status_after_submission(current)
        if target != current:
            self._assert_can_transition(target)
            self._transition(target, TimelineEventType.PROOF_SUBMITTED, actor_id, metadata=metadata, now=now)
        else:
            self.updated_at = now
            recorder.record(
                self, TimelineEventType.PROOF_SUBMITTED, actor_id=actor_id, metadata=metadata, occurred_at=now
            )

        self.raise_(
            ProofSubmitted(
                **self._party_ids(),
                proof_id=str(proof.id),
                version_number=proof.version_number,
                previous_status=current.value,
                status=self.status,
                submitted_at=now,
            )
        )
        return proof

    def resolve_proof(
        self,
        proof_id: str,
        actor_id: str,
        decision: ProofDecision | str,
        feedback: str | None = None,
    ) -> ProofSubmission:
        """Record the customer's decision on the latest pending proof.

        The order status does not change here; approval only unlocks the
        next transition the provider performs.
        """
        self._assert_customer(actor_id, "resolve proofs")
        try:
            decision = ProofDecision(decision)
        except ValueError:
            raise ValidationError({"decision": [f"Unknown proof decision: {decision}"]}) from None

        proof = self.proof(proof_id)
        if proof.status == ProofStatus.INFORMATIONAL.value:
            raise InvalidTransition(
                f"Proof version {proof.version_number} is informational; this order does not need proof approval"
            )
        latest = self.current_proof
        if str(proof.id) != str(latest.id):
            raise StaleProof(
                f"Proof version {proof.version_number} was superseded by version {latest.version_number}"
            )
        if proof.status != ProofStatus.PENDING.value:
            raise StaleProof(f"Proof version {proof.version_number} was already resolved as {proof.status}")
        if self.is_terminal:
            raise InvalidTransition(f"Proofs cannot be resolved while the order is {self.status}")

        proof_status, event_type, event_cls = _PROOF_DECISIONS[decision]
        now = datetime.now(UTC)
        proof.status = proof_status.value
        proof.customer_feedback = feedback
        proof.resolved_by = actor_id
        proof.resolved_at = now
        if decision == ProofDecision.APPROVE:
            self.proof_approved_at = now
        self.updated_at = now

        recorder.record(
            self,
            event_type,
            actor_id=actor_id,
            metadata={"proof_id": str(proof.id), "version": proof.version_number, "feedback": feedback},
            occurred_at=now,
        )
        self.raise_(
            event_cls(
                **self._party_ids(),
                proof_id=str(proof.id),
                version_number=proof.version_number,
                feedback=feedback,
                resolved_at=now,
            )
        )
        return proof

    # -------------------------------------------------------------------
    # Shipping and completion
    # -------------------------------------------------------------------
    def mark_shipped(self, actor_id: str, tracking_number: str | None = None, carrier: str | None = None) -> None:
        self._assert_provider(actor_id, "ship the order")
        self._assert_can_transition(OrderStatus.SHIPPED)

        now = datetime.now(UTC)
        previous = self._transition(
            OrderStatus.SHIPPED,
            TimelineEventType.SHIPPED,
            actor_id,
            metadata={"carrier": carrier, "tracking_number": tracking_number},
            now=now,
        )
        self.shipment = ShipmentInfo(carrier=carrier, tracking_number=tracking_number)
        self.shipped_at = now
        self.raise_(
            OrderShipped(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                carrier=carrier,
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def complete(self, actor_id: str | None = None, actor_role: str | None = None) -> None:
        """Record delivery; the customer confirms unless the system or an arbiter does."""
        if actor_id is not None and actor_role not in (ActorRole.SYSTEM.value, ActorRole.ARBITER.value):
            self._assert_customer(actor_id, "confirm delivery")
        self._assert_can_transition(OrderStatus.COMPLETED)

        now = datetime.now(UTC)
        previous = self._transition(OrderStatus.COMPLETED, TimelineEventType.DELIVERED, actor_id, now=now)
        self.delivered_at = now
        self.raise_(
            OrderCompleted(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, actor_id: str, reason: str | None = None, actor_role: str | None = None) -> None:
        if actor_role != ActorRole.ARBITER.value and not self.is_party(actor_id):
            raise PermissionDenied("Only the customer, the provider or an arbiter can cancel the order")
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        previous = self._transition(
            OrderStatus.CANCELLED,
            TimelineEventType.ORDER_CANCELLED,
            actor_id,
            metadata={"reason": reason, "refundable_balance": self.refundable_balance},
            now=now,
        )
        self.cancellation_reason = reason
        self.cancelled_by = actor_id
        self.cancelled_at = now
        self.raise_(
            OrderCancelled(
                **self._party_ids(),
                previous_status=previous.value,
                status=self.status,
                cancelled_by=actor_id,
                reason=reason,
                escrow_amount=self.escrow_amount,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Escrow bookkeeping (driven by production.escrow.ledger)
    # -------------------------------------------------------------------
    def assert_releasable(self) -> None:
        if OrderStatus(self.status) != OrderStatus.COMPLETED:
            raise InvalidTransition(f"Escrow cannot be released while the order is {self.status}")
        if self.escrow_released_at is not None:
            raise EscrowAlreadyReleased(f"Escrow for order {self.id} was already released")

    def record_escrow_release(
        self,
        provider_amount: float,
        platform_fee: float,
        fee_rate: float,
        payout_reference: str | None = None,
    ) -> Settlement:
        self.assert_releasable()

        now = datetime.now(UTC)
        self.settlement = Settlement(
            provider_amount=provider_amount,
            platform_fee=platform_fee,
            fee_rate=fee_rate,
            payout_reference=payout_reference,
            released_at=now,
        )
        self.escrow_released_at = now
        self.updated_at = now
        recorder.record(
            self,
            TimelineEventType.ESCROW_RELEASED,
            metadata={
                "provider_amount": provider_amount,
                "platform_fee": platform_fee,
                "fee_rate": fee_rate,
                "payout_reference": payout_reference,
            },
            occurred_at=now,
        )
        self.raise_(
            EscrowReleased(
                **self._party_ids(),
                escrow_amount=self.escrow_amount,
                provider_amount=provider_amount,
                platform_fee=platform_fee,
                fee_rate=fee_rate,
                payout_reference=payout_reference,
                released_at=now,
            )
        )
        return self.settlement

    def assert_refundable(self, amount: float) -> None:
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than zero"]})
        if self.is_fully_refunded:
            raise EscrowAlreadyRefunded(f"Escrow for order {self.id} has already been fully refunded")
        if amount > self.refundable_balance + _CENT:
            raise RefundExceedsEscrow(
                f"Refund of {amount:.2f} exceeds the refundable balance of {self.refundable_balance:.2f}"
            )

    def apply_escrow_refund(
        self,
        amount: float,
        reason: str | None = None,
        refund_id: str | None = None,
        payout_reference: str | None = None,
        actor_id: str | None = None,
    ) -> float:
        """Record money returned to the customer; returns the remaining balance."""
        self.assert_refundable(amount)

        now = datetime.now(UTC)
        self.escrow_refunded_amount = round((self.escrow_refunded_amount or 0.0) + amount, 2)
        self.updated_at = now
        remaining = self.refundable_balance
        recorder.record(
            self,
            TimelineEventType.ESCROW_REFUNDED,
            actor_id=actor_id,
            metadata={
                "refund_amount": round(amount, 2),
                "remaining_balance": remaining,
                "refund_id": refund_id,
                "reason": reason,
                "payout_reference": payout_reference,
            },
            occurred_at=now,
        )
        self.raise_(
            EscrowRefunded(
                **self._party_ids(),
                amount=round(amount, 2),
                remaining_balance=remaining,
                escrow_released=self.escrow_released_at is not None,
                refund_id=refund_id,
                reason=reason,
                payout_reference=payout_reference,
                refunded_at=now,
            )
        )
        return remaining

    # -------------------------------------------------------------------
    # Timeline annotations
    # -------------------------------------------------------------------
    def record_refund_activity(
        self,
        event_type: TimelineEventType,
        refund_id: str,
        actor_id: str | None,
        metadata: dict | None = None,
    ) -> TimelineEvent:
        self.updated_at = datetime.now(UTC)
        return recorder.record(
            self,
            event_type,
            actor_id=actor_id,
            metadata={"refund_id": refund_id, **(metadata or {})},
        )

    def add_note(self, actor_id: str, note: str, actor_role: str | None = None) -> TimelineEvent:
        if actor_role != ActorRole.ARBITER.value and not self.is_party(actor_id):
            raise PermissionDenied("Only parties to the order can add notes")
        if not note or not note.strip():
            raise ValidationError({"note": ["Note cannot be empty"]})

        self.updated_at = datetime.now(UTC)
        return recorder.record(
            self,
            TimelineEventType.NOTE,
            actor_id=actor_id,
            metadata={"actor_role": actor_role},
            description=note.strip(),
        )


def load_order(order_id: str) -> ProductionOrder:
    """Fetch an order, translating a repository miss into NotFound."""
    try:
        return current_domain.repository_for(ProductionOrder).get(order_id)
    except ObjectNotFoundError:
        raise NotFound(f"Production order {order_id} does not exist", field="order_id") from None
