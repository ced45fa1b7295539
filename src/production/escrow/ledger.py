"""Escrow ledger — settles and refunds the funds held for a production order.

The ledger owns the money arithmetic and the conversation with the payout
processor; the ProductionOrder aggregate owns the resulting bookkeeping
(settlement value object, refunded running total, timeline entries).

Amounts are split with Decimal arithmetic and rounded half-up to cents. The
platform fee is rounded first and the provider receives the remainder, so
``provider_amount + platform_fee`` always equals the settled balance.

A release is idempotent: once settled, asking again returns the stored
settlement without instructing another payout. Release and refund both check
the order's guards before the processor is instructed. Processor failures raise
InfrastructureError before the aggregate is touched, so the surrounding unit
of work rolls back and the call can be retried safely.
"""

from decimal import ROUND_HALF_UP, Decimal

import structlog

from production.config import platform_fee_rate
from production.errors import EscrowAlreadyReleased, InfrastructureError
from production.order.order import ProductionOrder, Settlement
from production.payouts import get_processor
from production.payouts.port import PaymentProcessor

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def to_cents(amount: float | Decimal) -> Decimal:
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def split_amount(amount: float, fee_rate: float) -> tuple[float, float]:
    """Split ``amount`` into (provider_amount, platform_fee)."""
    if not 0 <= fee_rate <= 1:
        raise ValueError(f"Platform fee rate must be between 0 and 1, got {fee_rate}")
    gross = to_cents(amount)
    fee = (gross * Decimal(str(fee_rate))).quantize(CENT, rounding=ROUND_HALF_UP)
    return float(gross - fee), float(fee)


class EscrowLedger:
    def __init__(self, processor: PaymentProcessor | None = None, fee_rate: float | None = None) -> None:
        self.processor = processor or get_processor()
        self.fee_rate = platform_fee_rate() if fee_rate is None else fee_rate

    def release(self, order: ProductionOrder, require_new: bool = False) -> Settlement:
        """Settle a completed order's remaining balance to provider and platform.

        With ``require_new`` an already-released escrow is an error instead of
        returning the stored settlement.
        """
        if order.escrow_released_at is not None:
            if require_new:
                raise EscrowAlreadyReleased(f"Escrow for order {order.id} was already released")
            logger.info("Escrow already released, returning settlement", order_id=str(order.id))
            return order.settlement

        order.assert_releasable()
        provider_amount, platform_fee = split_amount(order.refundable_balance, self.fee_rate)
        result = self.processor.release_funds(
            order_id=str(order.id),
            provider_id=str(order.provider_id),
            provider_amount=provider_amount,
            platform_fee=platform_fee,
            currency=order.currency,
            idempotency_key=f"release:{order.id}",
        )
        if not result.success:
            logger.error(
                "Escrow release payout failed",
                order_id=str(order.id),
                reason=result.failure_reason,
            )
            raise InfrastructureError(f"Payout processor rejected escrow release: {result.failure_reason}")

        settlement = order.record_escrow_release(
            provider_amount=provider_amount,
            platform_fee=platform_fee,
            fee_rate=self.fee_rate,
            payout_reference=result.reference,
        )
        logger.info(
            "Escrow released",
            order_id=str(order.id),
            provider_amount=provider_amount,
            platform_fee=platform_fee,
        )
        return settlement

    def refund(
        self,
        order: ProductionOrder,
        amount: float,
        reason: str | None = None,
        refund_id: str | None = None,
        actor_id: str | None = None,
    ) -> str | None:
        """Return ``amount`` of the escrow to the customer; returns the payout reference."""
        amount = float(to_cents(amount))
        order.assert_refundable(amount)

        result = self.processor.refund_funds(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            amount=amount,
            currency=order.currency,
            reason=reason or "",
            idempotency_key=f"refund:{refund_id or order.id}",
        )
        if not result.success:
            logger.error("Escrow refund payout failed", order_id=str(order.id), reason=result.failure_reason)
            raise InfrastructureError(f"Payout processor rejected refund: {result.failure_reason}")

        remaining = order.apply_escrow_refund(
            amount,
            reason=reason,
            refund_id=refund_id,
            payout_reference=result.reference,
            actor_id=actor_id,
        )
        logger.info("Escrow refunded", order_id=str(order.id), amount=amount, remaining=remaining)
        return result.reference

    def refund_remaining(self, order: ProductionOrder, reason: str | None = None, actor_id: str | None = None) -> float:
        """Refund whatever is still held and return the refunded amount."""
        if order.is_fully_refunded:
            return 0.0
        amount = order.refundable_balance
        self.refund(order, amount, reason=reason, actor_id=actor_id)
        return amount
