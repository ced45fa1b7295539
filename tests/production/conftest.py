import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

from production.listing import get_catalog, reset_catalog
from production.locking import reset_locks
from production.notifications import get_dispatcher, reset_dispatcher
from production.payouts import get_processor, reset_processor


@pytest.fixture(scope="session")
def production_bed():
    from production.domain import production

    bed = DomainFixture(production)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(production_bed):
    with production_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_processor()
    reset_dispatcher()
    reset_catalog()
    reset_locks()


@pytest.fixture()
def processor():
    """The in-memory payout processor used by the escrow ledger."""
    return get_processor()


@pytest.fixture()
def dispatcher():
    return get_dispatcher()


@pytest.fixture()
def catalog():
    """The in-memory listing catalog, seeded with one listing per proofing mode."""
    listings = get_catalog()
    listings.register("lst-proofed", listing_type="CustomService", requires_proof_approval=True, title="Wedding Cake")
    listings.register("lst-direct", listing_type="CustomService", requires_proof_approval=False, title="Logo Sketch")
    listings.register("lst-service", listing_type="Service", title="Lawn Mowing")
    listings.register(
        "lst-consult",
        listing_type="CustomService",
        requires_proof_approval=True,
        requires_consultation=True,
        title="Custom Furniture",
    )
    return listings
