"""Payout processor port (abstract interface).

The escrow ledger never moves money itself. It hands release and refund
instructions to a processor adapter and records the outcome.
Implementations must honour ``idempotency_key``: a repeated instruction with
the same key must not move funds twice.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PayoutResult:
    """Outcome of a payout instruction."""

    success: bool
    reference: str | None = None
    failure_reason: str | None = None


class PaymentProcessor(ABC):
    """Abstract payout processor interface."""

    @abstractmethod
    def release_funds(
        self,
        order_id: str,
        provider_id: str,
        provider_amount: float,
        platform_fee: float,
        currency: str,
        idempotency_key: str,
    ) -> PayoutResult:
        """Pay the provider share of a settled escrow."""
        ...

    @abstractmethod
    def refund_funds(
        self,
        order_id: str,
        customer_id: str,
        amount: float,
        currency: str,
        reason: str,
        idempotency_key: str,
    ) -> PayoutResult:
        """Return escrowed funds to the customer."""
        ...
