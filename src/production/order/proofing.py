"""Proof submission and resolution — commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from production.domain import production
from production.order.order import ProductionOrder, load_order
from production.order.statuses import ProofDecision


@production.command(part_of="ProductionOrder")
class SubmitProof:
    """Provider submits the next proof version for customer review."""

    order_id = Identifier(required=True)
    provider_id = Identifier(required=True)
    proof_images = Text(required=True)  # JSON list of image URLs
    design_files = Text()  # JSON list of file URLs
    provider_notes = Text()


@production.command(part_of="ProductionOrder")
class ResolveProof:
    """Customer approves, rejects, or asks for a revision of a proof."""

    order_id = Identifier(required=True)
    proof_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    decision = String(required=True, choices=ProofDecision)
    feedback = Text()


@production.command_handler(part_of=ProductionOrder)
class ProofingHandler:
    @handle(SubmitProof)
    def submit_proof(self, command):
        order = load_order(command.order_id)
        proof = order.submit_proof(
            str(command.provider_id),
            proof_images=json.loads(command.proof_images),
            design_files=json.loads(command.design_files) if command.design_files else None,
            provider_notes=command.provider_notes,
        )
        current_domain.repository_for(ProductionOrder).add(order)
        return str(proof.id)

    @handle(ResolveProof)
    def resolve_proof(self, command):
        order = load_order(command.order_id)
        proof = order.resolve_proof(
            str(command.proof_id),
            str(command.customer_id),
            command.decision,
            feedback=command.feedback,
        )
        current_domain.repository_for(ProductionOrder).add(order)
        return proof.status
