"""FastAPI routes for the production domain.

The caller's identity arrives in the ``X-Actor-Id`` header (and, for
arbiters, ``X-Actor-Role``) as set by the upstream identity gateway. Domain
errors are translated into HTTP statuses with a stable ``code`` in the
response detail.
"""

from contextlib import contextmanager

from fastapi import APIRouter, Header, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError

from production import engine
from production.api.schemas import (
    CancelOrderRequest,
    ConsultationRequest,
    MarkShippedRequest,
    OrderResponse,
    PlaceOrderRequest,
    ProofResponse,
    ProviderStatsResponse,
    RefundResponse,
    RequestRefundRequest,
    ResolveProofRequest,
    RespondToRefundRequest,
    SettlementResponse,
    StartProductionRequest,
    SubmitProofRequest,
    TimelineEntryResponse,
    TimelineNoteRequest,
)
from production.errors import InfrastructureError, LifecycleError, NotFound, PermissionDenied


@contextmanager
def domain_errors():
    """Translate production errors raised inside the block into HTTP errors."""
    try:
        yield
    except NotFound as exc:
        raise HTTPException(status_code=404, detail={"code": exc.code, "message": exc.message}) from exc
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": str(exc)}) from exc
    except PermissionDenied as exc:
        raise HTTPException(status_code=403, detail={"code": exc.code, "message": exc.message}) from exc
    except LifecycleError as exc:
        raise HTTPException(status_code=409, detail={"code": exc.code, "message": exc.message}) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"code": "validation_error", "message": exc.messages}) from exc
    except InfrastructureError as exc:
        raise HTTPException(status_code=503, detail={"code": exc.code, "message": exc.message}) from exc


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _order_response(order) -> OrderResponse:
    settlement = None
    if order.settlement:
        settlement = SettlementResponse(
            provider_amount=order.settlement.provider_amount,
            platform_fee=order.settlement.platform_fee,
            fee_rate=order.settlement.fee_rate,
            payout_reference=order.settlement.payout_reference,
            released_at=order.settlement.released_at,
        )
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        provider_id=str(order.provider_id),
        listing_id=str(order.listing_id),
        listing_type=order.listing_type,
        title=order.title,
        status=order.status,
        proofing_required=bool(order.proofing_required),
        proofing_bypassed=bool(order.proofing_bypassed),
        proofing_bypass_reason=order.proofing_bypass_reason,
        escrow_amount=order.escrow_amount,
        escrow_refunded_amount=order.escrow_refunded_amount or 0.0,
        refundable_balance=order.refundable_balance,
        currency=order.currency,
        settlement=settlement,
        tracking_number=order.shipment.tracking_number if order.shipment else None,
        carrier=order.shipment.carrier if order.shipment else None,
        estimated_completion_at=order.estimated_completion_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _proof_response(proof) -> ProofResponse:
    return ProofResponse(
        proof_id=str(proof.id),
        version_number=proof.version_number,
        status=proof.status,
        proof_images=proof.images,
        design_files=proof.files,
        provider_notes=proof.provider_notes,
        customer_feedback=proof.customer_feedback,
        submitted_at=proof.submitted_at,
        resolved_at=proof.resolved_at,
    )


def _refund_response(refund) -> RefundResponse:
    return RefundResponse(
        refund_id=str(refund.id),
        order_id=str(refund.order_id),
        customer_id=str(refund.customer_id),
        amount=refund.amount,
        reason=refund.reason,
        status=refund.status,
        provider_response=refund.provider_response,
        payout_reference=refund.payout_reference,
        requested_at=refund.requested_at,
        responded_at=refund.responded_at,
    )


# ---------------------------------------------------------------------------
# Production order router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/production-orders", tags=["production-orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, x_actor_id: str = Header()) -> OrderResponse:
    """Place an order; the calling customer's payment is already in escrow."""
    with domain_errors():
        order = engine.place_order(
            customer_id=x_actor_id,
            provider_id=body.provider_id,
            listing_id=body.listing_id,
            escrow_amount=body.escrow_amount,
            currency=body.currency,
            title=body.title,
            listing_type=body.listing_type,
            requires_proof_approval=body.requires_proof_approval,
            requires_consultation=body.requires_consultation,
        )
    return _order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    with domain_errors():
        return _order_response(engine.get_order(order_id))


@order_router.post("/{order_id}/consultation/complete", response_model=OrderResponse)
async def complete_consultation(
    order_id: str, body: ConsultationRequest | None = None, x_actor_id: str = Header()
) -> OrderResponse:
    with domain_errors():
        order = engine.complete_consultation(order_id, x_actor_id, notes=body.notes if body else None)
    return _order_response(order)


@order_router.post("/{order_id}/receipt", response_model=OrderResponse)
async def confirm_receipt(order_id: str, x_actor_id: str = Header()) -> OrderResponse:
    with domain_errors():
        return _order_response(engine.confirm_receipt(order_id, x_actor_id))


@order_router.post("/{order_id}/production/start", response_model=OrderResponse)
async def start_production(
    order_id: str, body: StartProductionRequest | None = None, x_actor_id: str = Header()
) -> OrderResponse:
    with domain_errors():
        order = engine.start_production(
            order_id,
            x_actor_id,
            estimated_completion_days=body.estimated_completion_days if body else None,
        )
    return _order_response(order)


@order_router.post("/{order_id}/ready", response_model=OrderResponse)
async def mark_ready_for_delivery(order_id: str, x_actor_id: str = Header()) -> OrderResponse:
    with domain_errors():
        return _order_response(engine.mark_ready_for_delivery(order_id, x_actor_id))


@order_router.post("/{order_id}/shipment", response_model=OrderResponse)
async def mark_shipped(order_id: str, body: MarkShippedRequest, x_actor_id: str = Header()) -> OrderResponse:
    with domain_errors():
        order = engine.mark_shipped(
            order_id,
            x_actor_id,
            tracking_number=body.tracking_number,
            carrier=body.carrier,
        )
    return _order_response(order)


@order_router.post("/{order_id}/completion", response_model=OrderResponse)
async def complete_order(
    order_id: str, x_actor_id: str = Header(), x_actor_role: str | None = Header(default=None)
) -> OrderResponse:
    """Confirm delivery; completing releases the escrow."""
    with domain_errors():
        return _order_response(engine.complete_order(order_id, actor_id=x_actor_id, actor_role=x_actor_role))


@order_router.post("/{order_id}/cancellation", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    x_actor_id: str = Header(),
    x_actor_role: str | None = Header(default=None),
) -> OrderResponse:
    with domain_errors():
        order = engine.cancel_order(order_id, x_actor_id, reason=body.reason, actor_role=x_actor_role)
    return _order_response(order)


@order_router.post("/{order_id}/escrow/release", response_model=SettlementResponse)
async def release_escrow(order_id: str) -> SettlementResponse:
    with domain_errors():
        settlement = engine.release_escrow(order_id)
    return SettlementResponse(
        provider_amount=settlement.provider_amount,
        platform_fee=settlement.platform_fee,
        fee_rate=settlement.fee_rate,
        payout_reference=settlement.payout_reference,
        released_at=settlement.released_at,
    )


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------
@order_router.post("/{order_id}/proofs", status_code=201, response_model=ProofResponse)
async def submit_proof(order_id: str, body: SubmitProofRequest, x_actor_id: str = Header()) -> ProofResponse:
    with domain_errors():
        proof = engine.submit_proof(
            order_id,
            x_actor_id,
            proof_images=body.proof_images,
            design_files=body.design_files,
            provider_notes=body.provider_notes,
        )
    return _proof_response(proof)


@order_router.get("/{order_id}/proofs", response_model=list[ProofResponse])
async def list_proofs(order_id: str) -> list[ProofResponse]:
    with domain_errors():
        return [_proof_response(p) for p in engine.list_proofs(order_id)]


@order_router.post("/proofs/{proof_id}/resolution", response_model=ProofResponse)
async def resolve_proof(proof_id: str, body: ResolveProofRequest, x_actor_id: str = Header()) -> ProofResponse:
    with domain_errors():
        proof = engine.resolve_proof(proof_id, x_actor_id, body.decision, feedback=body.feedback)
    return _proof_response(proof)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------
@order_router.get("/{order_id}/timeline", response_model=list[TimelineEntryResponse])
async def get_timeline(order_id: str) -> list[TimelineEntryResponse]:
    """Timeline entries, newest first."""
    with domain_errors():
        entries = engine.timeline_for(order_id)
    return [
        TimelineEntryResponse(
            sequence=e.sequence,
            event_type=e.event_type,
            description=e.description,
            actor_id=str(e.actor_id) if e.actor_id else None,
            from_status=e.from_status,
            to_status=e.to_status,
            metadata=e.parsed_details(),
            occurred_at=e.occurred_at,
        )
        for e in reversed(entries)
    ]


@order_router.post("/{order_id}/notes", status_code=201, response_model=TimelineEntryResponse)
async def add_note(
    order_id: str,
    body: TimelineNoteRequest,
    x_actor_id: str = Header(),
    x_actor_role: str | None = Header(default=None),
) -> TimelineEntryResponse:
    with domain_errors():
        entry = engine.record_timeline_note(order_id, x_actor_id, body.note, actor_role=x_actor_role)
    return TimelineEntryResponse(
        sequence=entry.sequence,
        event_type=entry.event_type,
        description=entry.description,
        actor_id=str(entry.actor_id) if entry.actor_id else None,
        metadata=entry.parsed_details(),
        occurred_at=entry.occurred_at,
    )


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------
@order_router.post("/{order_id}/refunds", status_code=201, response_model=RefundResponse)
async def request_refund(order_id: str, body: RequestRefundRequest, x_actor_id: str = Header()) -> RefundResponse:
    with domain_errors():
        refund = engine.request_refund(order_id, x_actor_id, body.amount, body.reason, notes=body.notes)
    return _refund_response(refund)


@order_router.get("/{order_id}/refunds", response_model=list[RefundResponse])
async def list_refunds(order_id: str) -> list[RefundResponse]:
    with domain_errors():
        return [_refund_response(r) for r in engine.refunds_for(order_id)]


refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.get("/{refund_id}", response_model=RefundResponse)
async def get_refund(refund_id: str) -> RefundResponse:
    with domain_errors():
        return _refund_response(engine.get_refund(refund_id))


@refund_router.post("/{refund_id}/response", response_model=RefundResponse)
async def respond_to_refund(
    refund_id: str,
    body: RespondToRefundRequest,
    x_actor_id: str = Header(),
    x_actor_role: str | None = Header(default=None),
) -> RefundResponse:
    with domain_errors():
        refund = engine.respond_to_refund(
            refund_id,
            x_actor_id,
            body.decision,
            response=body.response,
            actor_role=x_actor_role,
        )
    return _refund_response(refund)


@refund_router.post("/{refund_id}/withdrawal", response_model=RefundResponse)
async def withdraw_refund(refund_id: str, x_actor_id: str = Header()) -> RefundResponse:
    with domain_errors():
        return _refund_response(engine.withdraw_refund(refund_id, x_actor_id))


# ---------------------------------------------------------------------------
# Provider dashboard
# ---------------------------------------------------------------------------
provider_router = APIRouter(prefix="/providers", tags=["providers"])


@provider_router.get("/{provider_id}/production-stats", response_model=ProviderStatsResponse)
async def get_provider_stats(provider_id: str) -> ProviderStatsResponse:
    stats = engine.provider_stats(provider_id)
    return ProviderStatsResponse(
        provider_id=str(stats.provider_id),
        total_orders=stats.total_orders or 0,
        active_orders=stats.active_orders or 0,
        awaiting_approval=stats.awaiting_approval or 0,
        completed_orders=stats.completed_orders or 0,
        cancelled_orders=stats.cancelled_orders or 0,
        escrow_held=stats.escrow_held or 0.0,
        released_earnings=stats.released_earnings or 0.0,
        platform_fees=stats.platform_fees or 0.0,
        refunded_amount=stats.refunded_amount or 0.0,
    )
