"""Recording notification dispatcher for development and testing."""

import structlog

from production.notifications.port import NotificationDispatcher

logger = structlog.get_logger(__name__)


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every dispatched notification in ``sent``; can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.should_fail: bool = False

    def configure(self, should_fail: bool) -> None:
        self.should_fail = should_fail

    def dispatch(self, recipient_id: str, kind: str, payload: dict) -> None:
        if self.should_fail:
            raise ConnectionError(f"Notification channel unavailable for {kind}")

        self.sent.append({"recipient_id": recipient_id, "kind": kind, "payload": payload})
        logger.info("[FAKE NOTIFY] Dispatched", recipient_id=recipient_id, kind=kind)

    def kinds_for(self, recipient_id: str) -> list[str]:
        return [n["kind"] for n in self.sent if n["recipient_id"] == recipient_id]
