"""Proof lookup — resolves a proof id to the order that owns it."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from production.domain import production
from production.order.events import ProofSubmitted
from production.order.order import ProductionOrder


@production.projection
class ProofLookup:
    proof_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    version_number = Integer(required=True)
    submitted_at = DateTime()


@production.projector(projector_for=ProofLookup, aggregates=[ProductionOrder])
class ProofLookupProjector:
    @on(ProofSubmitted)
    def on_proof_submitted(self, event):
        current_domain.repository_for(ProofLookup).add(
            ProofLookup(
                proof_id=event.proof_id,
                order_id=event.order_id,
                version_number=event.version_number,
                submitted_at=event.submitted_at,
            )
        )
