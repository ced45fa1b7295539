"""In-memory listing catalog, seeded by tests and the development server."""

from production.listing.port import ListingCatalog, ListingProofingConfig


class InMemoryListingCatalog(ListingCatalog):
    def __init__(self) -> None:
        self._listings: dict[str, ListingProofingConfig] = {}

    def register(
        self,
        listing_id: str,
        listing_type: str = "CustomService",
        requires_proof_approval: bool = True,
        requires_consultation: bool = False,
        title: str | None = None,
    ) -> ListingProofingConfig:
        config = ListingProofingConfig(
            listing_id=listing_id,
            listing_type=listing_type,
            requires_proof_approval=requires_proof_approval,
            requires_consultation=requires_consultation,
            title=title,
        )
        self._listings[listing_id] = config
        return config

    def proofing_config(self, listing_id: str) -> ListingProofingConfig | None:
        return self._listings.get(listing_id)
