"""Notification dispatcher factory.

Defaults to the RecordingDispatcher; a real channel adapter is installed
with set_dispatcher() at application startup.
"""

import structlog

from production.notifications.fake_adapter import RecordingDispatcher
from production.notifications.port import NotificationDispatcher

logger = structlog.get_logger(__name__)

_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = RecordingDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    global _current_dispatcher
    _current_dispatcher = None


def notify(recipient_id: str, kind: str, **payload) -> None:
    """Dispatch a notification, logging and dropping any delivery failure."""
    if not recipient_id:
        return
    try:
        get_dispatcher().dispatch(str(recipient_id), kind, payload)
    except Exception as exc:
        logger.warning(
            "Notification dispatch failed",
            recipient_id=str(recipient_id),
            kind=kind,
            error=str(exc),
        )
