"""Production lifecycle errors.

Every rejection raised by the production context carries a stable ``code``
so API consumers can branch on the failure kind. Business-rule rejections
are ``ValidationError`` subclasses (Protean rolls back the unit of work on
them); lookups that miss are ``ObjectNotFoundError`` subclasses.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class _CodedError:
    code = "production_error"
    field = "order"

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        super().__init__({field or self.field: [message]})


class LifecycleError(_CodedError, ValidationError):
    """Base for business-rule rejections in the production lifecycle."""


class InvalidTransition(LifecycleError):
    code = "invalid_transition"
    field = "status"


class PermissionDenied(LifecycleError):
    code = "permission_denied"
    field = "actor_id"


class ProofingRequired(LifecycleError):
    code = "proofing_required"
    field = "proofs"


class StaleProof(LifecycleError):
    code = "stale_proof"
    field = "proof_id"


class EscrowAlreadyReleased(LifecycleError):
    code = "escrow_already_released"
    field = "escrow"


class EscrowAlreadyRefunded(LifecycleError):
    code = "escrow_already_refunded"
    field = "escrow"


class RefundExceedsEscrow(LifecycleError):
    code = "refund_exceeds_escrow"
    field = "amount"


class NotFound(_CodedError, ObjectNotFoundError):
    code = "not_found"
    field = "id"


class InfrastructureError(Exception):
    """A collaborator (payout processor, lock) failed; the operation can be retried."""

    code = "infrastructure_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
