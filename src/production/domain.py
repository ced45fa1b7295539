"""Production bounded context — custom (made-to-order) service lifecycle.

Handles the production order state machine (CQRS), versioned proofing,
escrow settlement, timeline auditing, and customer refund requests.
"""

import structlog
from protean.domain import Domain

production = Domain(name="production")

logger = structlog.get_logger(__name__)
