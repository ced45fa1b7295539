"""Notification dispatcher port.

Lifecycle notifications are fire-and-forget: a failing dispatcher must never
fail the transition that triggered it.
"""

from abc import ABC, abstractmethod


class NotificationDispatcher(ABC):
    @abstractmethod
    def dispatch(self, recipient_id: str, kind: str, payload: dict) -> None:
        """Deliver a notification of ``kind`` to ``recipient_id``."""
        ...
