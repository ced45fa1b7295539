"""Listing catalog factory.

get_catalog() returns the in-memory catalog unless another adapter has been
installed with set_catalog().
"""

from production.listing.memory_adapter import InMemoryListingCatalog
from production.listing.port import ListingCatalog

_current_catalog: ListingCatalog | None = None


def get_catalog() -> ListingCatalog:
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryListingCatalog()
    return _current_catalog


def set_catalog(catalog: ListingCatalog) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
