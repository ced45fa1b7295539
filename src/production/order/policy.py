"""Proofing policies — decide how proofs gate an order's progress.

An order carries a snapshot of its listing's proofing configuration, taken
once at placement. The snapshot selects one of two policies:

    RequiresProofApproval
        Production cannot start, and the order cannot be marked ready for
        delivery, until the latest proof version is approved. Submitting a
        proof moves the order to PENDING_APPROVAL.

    NoProofing
        Proofs may still be shared but never gate anything and never
        change the order status. They are stored as INFORMATIONAL and take
        no customer decision. Service listings always use this policy.

Changing a listing's configuration later never affects existing orders
because policy_for() only ever sees the order's own snapshot.
"""

from abc import ABC, abstractmethod

from protean.exceptions import ValidationError

from production.errors import ProofingRequired
from production.order.statuses import ListingType, OrderStatus, ProofStatus


class ProofingPolicy(ABC):
    requires_proof_approval: bool
    bypass_reason: str | None = None
    proof_statuses: frozenset[OrderStatus] = frozenset()
    submitted_proof_status: ProofStatus = ProofStatus.PENDING

    def accepts_proofs_in(self, status: OrderStatus) -> bool:
        return status in self.proof_statuses

    @abstractmethod
    def status_after_submission(self, current: OrderStatus) -> OrderStatus:
        """Status the order moves to once a proof is submitted from ``current``."""
        ...

    @abstractmethod
    def assert_can_start_production(self, order) -> None: ...

    @abstractmethod
    def assert_can_mark_ready(self, order) -> None: ...


class RequiresProofApproval(ProofingPolicy):
    requires_proof_approval = True
    proof_statuses = frozenset(
        {
            OrderStatus.ORDER_RECEIVED,
            OrderStatus.IN_PRODUCTION,
            OrderStatus.PENDING_APPROVAL,
        }
    )

    def status_after_submission(self, current: OrderStatus) -> OrderStatus:
        return OrderStatus.PENDING_APPROVAL

    def assert_can_start_production(self, order) -> None:
        self._assert_latest_approved(order, "start production")

    def assert_can_mark_ready(self, order) -> None:
        self._assert_latest_approved(order, "mark the order ready for delivery")

    @staticmethod
    def _assert_latest_approved(order, action: str) -> None:
        latest = order.current_proof
        if latest is None:
            raise ProofingRequired(f"A proof must be submitted and approved before you can {action}")
        if latest.status != ProofStatus.APPROVED.value:
            raise ProofingRequired(
                f"Proof version {latest.version_number} is {latest.status}; "
                f"the latest proof must be approved before you can {action}"
            )


class NoProofing(ProofingPolicy):
    requires_proof_approval = False
    submitted_proof_status = ProofStatus.INFORMATIONAL
    proof_statuses = frozenset(
        {
            OrderStatus.ORDER_RECEIVED,
            OrderStatus.IN_PRODUCTION,
            OrderStatus.READY_FOR_DELIVERY,
        }
    )

    def __init__(self, bypass_reason: str | None = None) -> None:
        self.bypass_reason = bypass_reason

    def status_after_submission(self, current: OrderStatus) -> OrderStatus:
        return current

    def assert_can_start_production(self, order) -> None:
        return None

    def assert_can_mark_ready(self, order) -> None:
        return None


SERVICE_BYPASS_REASON = "Service listings are delivered without proof approval"
PROVIDER_BYPASS_REASON = "Proof approval disabled for this listing"


def resolve_policy(listing_type: str, requires_proof_approval: bool | None) -> ProofingPolicy:
    """Pick the policy for a new order from its listing's configuration.

    Custom-service listings default to requiring proof approval when the
    listing does not say otherwise.
    """
    try:
        kind = ListingType(listing_type)
    except ValueError:
        raise ValidationError({"listing_type": [f"Unknown listing type: {listing_type}"]}) from None

    if kind == ListingType.SERVICE:
        return NoProofing(SERVICE_BYPASS_REASON)
    if requires_proof_approval is False:
        return NoProofing(PROVIDER_BYPASS_REASON)
    return RequiresProofApproval()


def policy_for(proofing_required: bool, bypass_reason: str | None = None) -> ProofingPolicy:
    """Rebuild the policy from an order's proofing snapshot."""
    if proofing_required:
        return RequiresProofApproval()
    return NoProofing(bypass_reason)
