"""Production lifecycle engine — the application-facing entry points.

Each mutating call takes the per-order lock, processes one command
synchronously, and returns the freshly persisted aggregate. Business-rule
failures surface as the typed errors in production.errors and leave the
order untouched.
"""

import json

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from production.errors import NotFound
from production.locking import order_lock
from production.order.cancellation import CancelOrder
from production.order.completion import CompleteOrder, ReleaseEscrow
from production.order.notes import RecordTimelineNote
from production.order.order import ProductionOrder, ProofSubmission, Settlement, load_order
from production.order.placement import PlaceOrder
from production.order.progress import MarkReadyForDelivery, StartProduction
from production.order.proofing import ResolveProof, SubmitProof
from production.order.receipt import CompleteConsultation, ConfirmReceipt
from production.order.shipping import MarkShipped
from production.order.timeline import TimelineEvent, history
from production.projections.proof_lookup import ProofLookup
from production.projections.provider_stats import ProviderProductionStats
from production.refund.refund import RefundRequest, load_refund, refunds_for_order
from production.refund.workflow import RequestRefund, RespondToRefund, WithdrawRefund


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_order(order_id: str) -> ProductionOrder:
    return load_order(order_id)


def get_refund(refund_id: str) -> RefundRequest:
    return load_refund(refund_id)


def list_proofs(order_id: str) -> list[ProofSubmission]:
    return get_order(order_id).sorted_proofs


def timeline_for(order_id: str) -> list[TimelineEvent]:
    return history(get_order(order_id))


def refundable_balance(order_id: str) -> float:
    return get_order(order_id).refundable_balance


def refunds_for(order_id: str) -> list[RefundRequest]:
    get_order(order_id)
    return refunds_for_order(order_id)


def order_id_for_proof(proof_id: str) -> str:
    try:
        return str(current_domain.repository_for(ProofLookup).get(proof_id).order_id)
    except ObjectNotFoundError:
        raise NotFound(f"Proof {proof_id} does not exist", field="proof_id") from None


def provider_stats(provider_id: str) -> ProviderProductionStats:
    try:
        return current_domain.repository_for(ProviderProductionStats).get(provider_id)
    except ObjectNotFoundError:
        return ProviderProductionStats(provider_id=provider_id)


# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------
def place_order(
    customer_id: str,
    provider_id: str,
    listing_id: str,
    escrow_amount: float,
    currency: str = "USD",
    title: str | None = None,
    listing_type: str | None = None,
    requires_proof_approval: bool | None = None,
    requires_consultation: bool = False,
) -> ProductionOrder:
    order_id = _process(
        PlaceOrder(
            customer_id=customer_id,
            provider_id=provider_id,
            listing_id=listing_id,
            escrow_amount=escrow_amount,
            currency=currency,
            title=title,
            listing_type=listing_type,
            requires_proof_approval=requires_proof_approval,
            requires_consultation=requires_consultation,
        )
    )
    return get_order(order_id)


def complete_consultation(order_id: str, provider_id: str, notes: str | None = None) -> ProductionOrder:
    with order_lock(order_id):
        _process(CompleteConsultation(order_id=order_id, provider_id=provider_id, notes=notes))
    return get_order(order_id)


def confirm_receipt(order_id: str, provider_id: str) -> ProductionOrder:
    with order_lock(order_id):
        _process(ConfirmReceipt(order_id=order_id, provider_id=provider_id))
    return get_order(order_id)


def start_production(
    order_id: str,
    provider_id: str,
    estimated_completion_days: int | None = None,
) -> ProductionOrder:
    with order_lock(order_id):
        _process(
            StartProduction(
                order_id=order_id,
                provider_id=provider_id,
                estimated_completion_days=estimated_completion_days,
            )
        )
    return get_order(order_id)


def submit_proof(
    order_id: str,
    provider_id: str,
    proof_images: list[str],
    design_files: list[str] | None = None,
    provider_notes: str | None = None,
) -> ProofSubmission:
    with order_lock(order_id):
        proof_id = _process(
            SubmitProof(
                order_id=order_id,
                provider_id=provider_id,
                proof_images=json.dumps(list(proof_images or [])),
                design_files=json.dumps(list(design_files)) if design_files else None,
                provider_notes=provider_notes,
            )
        )
    return get_order(order_id).proof(proof_id)


def resolve_proof(
    proof_id: str,
    customer_id: str,
    decision: str,
    feedback: str | None = None,
) -> ProofSubmission:
    order_id = order_id_for_proof(proof_id)
    with order_lock(order_id):
        _process(
            ResolveProof(
                order_id=order_id,
                proof_id=proof_id,
                customer_id=customer_id,
                decision=decision,
                feedback=feedback,
            )
        )
    return get_order(order_id).proof(proof_id)


def mark_ready_for_delivery(order_id: str, provider_id: str) -> ProductionOrder:
    with order_lock(order_id):
        _process(MarkReadyForDelivery(order_id=order_id, provider_id=provider_id))
    return get_order(order_id)


def mark_shipped(
    order_id: str,
    provider_id: str,
    tracking_number: str | None = None,
    carrier: str | None = None,
) -> ProductionOrder:
    with order_lock(order_id):
        _process(
            MarkShipped(
                order_id=order_id,
                provider_id=provider_id,
                tracking_number=tracking_number,
                carrier=carrier,
            )
        )
    return get_order(order_id)


def complete_order(order_id: str, actor_id: str | None = None, actor_role: str | None = None) -> ProductionOrder:
    with order_lock(order_id):
        _process(CompleteOrder(order_id=order_id, actor_id=actor_id, actor_role=actor_role))
    return get_order(order_id)


def cancel_order(
    order_id: str,
    actor_id: str,
    reason: str | None = None,
    actor_role: str | None = None,
) -> ProductionOrder:
    with order_lock(order_id):
        _process(CancelOrder(order_id=order_id, actor_id=actor_id, actor_role=actor_role, reason=reason))
    return get_order(order_id)


def record_timeline_note(
    order_id: str,
    actor_id: str,
    note: str,
    actor_role: str | None = None,
) -> TimelineEvent:
    with order_lock(order_id):
        sequence = _process(RecordTimelineNote(order_id=order_id, actor_id=actor_id, actor_role=actor_role, note=note))
    return next(e for e in timeline_for(order_id) if e.sequence == sequence)


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------
def release_escrow(order_id: str) -> Settlement:
    with order_lock(order_id):
        _process(ReleaseEscrow(order_id=order_id))
    return get_order(order_id).settlement


def refund_escrow(order_id: str, amount: float, reason: str) -> RefundRequest:
    """Open a pending refund request on the customer's behalf."""
    order = get_order(order_id)
    return request_refund(order_id, str(order.customer_id), amount, reason)


# ---------------------------------------------------------------------------
# Refund workflow
# ---------------------------------------------------------------------------
def request_refund(
    order_id: str,
    customer_id: str,
    amount: float,
    reason: str,
    notes: str | None = None,
) -> RefundRequest:
    with order_lock(order_id):
        refund_id = _process(
            RequestRefund(
                order_id=order_id,
                customer_id=customer_id,
                amount=amount,
                reason=reason,
                notes=notes,
            )
        )
    return get_refund(refund_id)


def respond_to_refund(
    refund_id: str,
    actor_id: str,
    decision: str,
    response: str | None = None,
    actor_role: str | None = None,
) -> RefundRequest:
    order_id = str(get_refund(refund_id).order_id)
    with order_lock(order_id):
        _process(
            RespondToRefund(
                refund_id=refund_id,
                actor_id=actor_id,
                actor_role=actor_role,
                decision=decision,
                response=response,
            )
        )
    return get_refund(refund_id)


def withdraw_refund(refund_id: str, customer_id: str) -> RefundRequest:
    order_id = str(get_refund(refund_id).order_id)
    with order_lock(order_id):
        _process(WithdrawRefund(refund_id=refund_id, customer_id=customer_id))
    return get_refund(refund_id)
