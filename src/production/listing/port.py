"""Listing catalog port.

Production orders snapshot the proofing configuration of their listing at
placement time. The catalog is owned by another system; this port is the
read-only view the production context needs of it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ListingProofingConfig:
    """Proofing configuration of a marketplace listing."""

    listing_id: str
    listing_type: str
    requires_proof_approval: bool = True
    requires_consultation: bool = False
    title: str | None = None


class ListingCatalog(ABC):
    @abstractmethod
    def proofing_config(self, listing_id: str) -> ListingProofingConfig | None:
        """Return the listing's proofing configuration, or None if unknown."""
        ...
