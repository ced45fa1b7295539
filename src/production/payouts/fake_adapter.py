"""In-memory payout processor for development and testing.

Records every instruction in ``calls`` and replays the first result for a
repeated idempotency key, the way a real processor deduplicates requests.
"""

from uuid import uuid4

from production.payouts.port import PaymentProcessor, PayoutResult


class FakePaymentProcessor(PaymentProcessor):
    """Configurable fake payout processor."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Processor unavailable"
        self.calls: list[dict] = []
        self._results: dict[str, PayoutResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Processor unavailable") -> None:
        """Configure processor behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def releases(self) -> list[dict]:
        return [c for c in self.calls if c["method"] == "release_funds"]

    def refunds(self) -> list[dict]:
        return [c for c in self.calls if c["method"] == "refund_funds"]

    def release_funds(
        self,
        order_id: str,
        provider_id: str,
        provider_amount: float,
        platform_fee: float,
        currency: str,
        idempotency_key: str,
    ) -> PayoutResult:
        return self._execute(
            "release_funds",
            "fake_payout",
            idempotency_key,
            order_id=order_id,
            provider_id=provider_id,
            provider_amount=provider_amount,
            platform_fee=platform_fee,
            currency=currency,
        )

    def refund_funds(
        self,
        order_id: str,
        customer_id: str,
        amount: float,
        currency: str,
        reason: str,
        idempotency_key: str,
    ) -> PayoutResult:
        return self._execute(
            "refund_funds",
            "fake_refund",
            idempotency_key,
            order_id=order_id,
            customer_id=customer_id,
            amount=amount,
            currency=currency,
            reason=reason,
        )

    def _execute(self, method: str, prefix: str, idempotency_key: str, **details) -> PayoutResult:
        if idempotency_key in self._results:
            return self._results[idempotency_key]

        self.calls.append({"method": method, "idempotency_key": idempotency_key, **details})

        if not self.should_succeed:
            return PayoutResult(success=False, failure_reason=self.failure_reason)

        result = PayoutResult(success=True, reference=f"{prefix}_{uuid4().hex[:12]}")
        self._results[idempotency_key] = result
        return result
