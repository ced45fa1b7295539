"""Payout processor factory.

Provides get_processor() / set_processor() to swap implementations.
Defaults to the in-memory FakePaymentProcessor.
"""

from production.payouts.fake_adapter import FakePaymentProcessor
from production.payouts.port import PaymentProcessor

_current_processor: PaymentProcessor | None = None


def get_processor() -> PaymentProcessor:
    """Return the active payout processor. Defaults to FakePaymentProcessor."""
    global _current_processor
    if _current_processor is None:
        _current_processor = FakePaymentProcessor()
    return _current_processor


def set_processor(processor: PaymentProcessor) -> None:
    """Override the active payout processor (useful for tests)."""
    global _current_processor
    _current_processor = processor


def reset_processor() -> None:
    global _current_processor
    _current_processor = None
