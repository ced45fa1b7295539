"""Provider production stats — per-provider dashboard counters.

``escrow_held`` is the balance still held for the provider's unreleased
orders; ``awaiting_approval`` counts orders currently in PENDING_APPROVAL.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, Integer
from protean.utils.globals import current_domain

from production.domain import production
from production.order.events import (
    EscrowRefunded,
    EscrowReleased,
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderReadyForDelivery,
    ProductionStarted,
    ProofSubmitted,
)
from production.order.order import ProductionOrder
from production.order.statuses import OrderStatus


@production.projection
class ProviderProductionStats:
    provider_id = Identifier(identifier=True, required=True)
    total_orders = Integer(default=0)
    active_orders = Integer(default=0)
    awaiting_approval = Integer(default=0)
    completed_orders = Integer(default=0)
    cancelled_orders = Integer(default=0)
    escrow_held = Float(default=0.0)
    released_earnings = Float(default=0.0)
    platform_fees = Float(default=0.0)
    refunded_amount = Float(default=0.0)
    updated_at = DateTime()


def _load(provider_id) -> ProviderProductionStats:
    repo = current_domain.repository_for(ProviderProductionStats)
    try:
        return repo.get(str(provider_id))
    except ObjectNotFoundError:
        return ProviderProductionStats(provider_id=str(provider_id))


def _save(stats: ProviderProductionStats, at) -> None:
    stats.updated_at = at
    current_domain.repository_for(ProviderProductionStats).add(stats)


def _track_approval(stats: ProviderProductionStats, previous_status: str, status: str) -> None:
    pending = OrderStatus.PENDING_APPROVAL.value
    if previous_status == pending and status != pending:
        stats.awaiting_approval = max((stats.awaiting_approval or 0) - 1, 0)
    elif status == pending and previous_status != pending:
        stats.awaiting_approval = (stats.awaiting_approval or 0) + 1


@production.projector(projector_for=ProviderProductionStats, aggregates=[ProductionOrder])
class ProviderProductionStatsProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        stats = _load(event.provider_id)
        stats.total_orders = (stats.total_orders or 0) + 1
        stats.active_orders = (stats.active_orders or 0) + 1
        stats.escrow_held = round((stats.escrow_held or 0.0) + event.escrow_amount, 2)
        _save(stats, event.placed_at)

    @on(ProofSubmitted)
    def on_proof_submitted(self, event):
        stats = _load(event.provider_id)
        _track_approval(stats, event.previous_status, event.status)
        _save(stats, event.submitted_at)

    @on(ProductionStarted)
    def on_production_started(self, event):
        stats = _load(event.provider_id)
        _track_approval(stats, event.previous_status, event.status)
        _save(stats, event.started_at)

    @on(OrderReadyForDelivery)
    def on_ready_for_delivery(self, event):
        stats = _load(event.provider_id)
        _track_approval(stats, event.previous_status, event.status)
        _save(stats, event.ready_at)

    @on(OrderCompleted)
    def on_order_completed(self, event):
        stats = _load(event.provider_id)
        stats.active_orders = max((stats.active_orders or 0) - 1, 0)
        stats.completed_orders = (stats.completed_orders or 0) + 1
        _save(stats, event.completed_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        stats = _load(event.provider_id)
        _track_approval(stats, event.previous_status, event.status)
        stats.active_orders = max((stats.active_orders or 0) - 1, 0)
        stats.cancelled_orders = (stats.cancelled_orders or 0) + 1
        _save(stats, event.cancelled_at)

    @on(EscrowReleased)
    def on_escrow_released(self, event):
        stats = _load(event.provider_id)
        settled = event.provider_amount + event.platform_fee
        stats.escrow_held = max(round((stats.escrow_held or 0.0) - settled, 2), 0.0)
        stats.released_earnings = round((stats.released_earnings or 0.0) + event.provider_amount, 2)
        stats.platform_fees = round((stats.platform_fees or 0.0) + event.platform_fee, 2)
        _save(stats, event.released_at)

    @on(EscrowRefunded)
    def on_escrow_refunded(self, event):
        stats = _load(event.provider_id)
        stats.refunded_amount = round((stats.refunded_amount or 0.0) + event.amount, 2)
        if not event.escrow_released:
            stats.escrow_held = max(round((stats.escrow_held or 0.0) - event.amount, 2), 0.0)
        _save(stats, event.refunded_at)
