"""Per-order serialization.

Concurrent commands against one order are serialized in-process by a
re-entrant lock per order id, held across load → mutate → persist. A caller
that cannot get the lock within ``lock_timeout_seconds`` gets an
InfrastructureError and may retry.

Registry entries are reference counted and dropped once no caller holds or
waits on them, so the registry only tracks orders currently in use.

This serializes callers within one process only. Deployments running
several workers need the repository's row lock instead.
"""

import threading
from contextlib import contextmanager

import structlog

from production.config import lock_timeout_seconds
from production.errors import InfrastructureError

logger = structlog.get_logger(__name__)


class _OrderLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


_registry_guard = threading.Lock()
_order_locks: dict[str, _OrderLock] = {}


def _checkout(order_id: str) -> _OrderLock:
    with _registry_guard:
        entry = _order_locks.get(order_id)
        if entry is None:
            entry = _order_locks[order_id] = _OrderLock()
        entry.users += 1
        return entry


def _checkin(order_id: str, entry: _OrderLock) -> None:
    with _registry_guard:
        entry.users -= 1
        if entry.users == 0 and _order_locks.get(order_id) is entry:
            del _order_locks[order_id]


@contextmanager
def order_lock(order_id: str, timeout: float | None = None):
    """Hold the lock for ``order_id`` for the duration of the block."""
    order_id = str(order_id)
    timeout = lock_timeout_seconds() if timeout is None else timeout
    entry = _checkout(order_id)
    try:
        if not entry.lock.acquire(timeout=timeout):
            logger.warning("Timed out waiting for order lock", order_id=order_id, timeout=timeout)
            raise InfrastructureError(f"Order {order_id} is busy; retry the operation")
        try:
            yield
        finally:
            entry.lock.release()
    finally:
        _checkin(order_id, entry)


def tracked_orders() -> int:
    """Number of orders with a lock currently held or awaited."""
    with _registry_guard:
        return len(_order_locks)


def reset_locks() -> None:
    with _registry_guard:
        _order_locks.clear()
