"""Pydantic API schemas for the production domain.

These are the external API contracts, kept separate from domain commands.
Routes translate between them and the lifecycle engine.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    provider_id: str
    listing_id: str
    escrow_amount: float = Field(gt=0)
    currency: str = "USD"
    title: str | None = None
    listing_type: str | None = None
    requires_proof_approval: bool | None = None
    requires_consultation: bool = False


class ConsultationRequest(BaseModel):
    notes: str | None = None


class StartProductionRequest(BaseModel):
    estimated_completion_days: int | None = Field(default=None, ge=1)


class SubmitProofRequest(BaseModel):
    proof_images: list[str]
    design_files: list[str] = []
    provider_notes: str | None = None


class ResolveProofRequest(BaseModel):
    decision: str
    feedback: str | None = None


class MarkShippedRequest(BaseModel):
    tracking_number: str | None = None
    carrier: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class TimelineNoteRequest(BaseModel):
    note: str


class RequestRefundRequest(BaseModel):
    amount: float
    reason: str
    notes: str | None = None


class RespondToRefundRequest(BaseModel):
    decision: str
    response: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class SettlementResponse(BaseModel):
    provider_amount: float
    platform_fee: float
    fee_rate: float
    payout_reference: str | None = None
    released_at: datetime | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    provider_id: str
    listing_id: str
    listing_type: str
    title: str | None = None
    status: str
    proofing_required: bool
    proofing_bypassed: bool
    proofing_bypass_reason: str | None = None
    escrow_amount: float
    escrow_refunded_amount: float
    refundable_balance: float
    currency: str
    settlement: SettlementResponse | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_completion_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProofResponse(BaseModel):
    proof_id: str
    version_number: int
    status: str
    proof_images: list[str]
    design_files: list[str]
    provider_notes: str | None = None
    customer_feedback: str | None = None
    submitted_at: datetime | None = None
    resolved_at: datetime | None = None


class TimelineEntryResponse(BaseModel):
    sequence: int
    event_type: str
    description: str | None = None
    actor_id: str | None = None
    from_status: str | None = None
    to_status: str | None = None
    metadata: dict
    occurred_at: datetime


class RefundResponse(BaseModel):
    refund_id: str
    order_id: str
    customer_id: str
    amount: float
    reason: str
    status: str
    provider_response: str | None = None
    payout_reference: str | None = None
    requested_at: datetime | None = None
    responded_at: datetime | None = None


class ProviderStatsResponse(BaseModel):
    provider_id: str
    total_orders: int
    active_orders: int
    awaiting_approval: int
    completed_orders: int
    cancelled_orders: int
    escrow_held: float
    released_earnings: float
    platform_fees: float
    refunded_amount: float
