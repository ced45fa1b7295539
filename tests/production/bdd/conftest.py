"""Shared BDD fixtures and step definitions for the production domain."""

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError
from pytest_bdd import given, parsers, then, when

from production import engine
from production.errors import InfrastructureError

ACTORS = {
    "customer": "cust-bdd-001",
    "provider": "prov-bdd-001",
    "arbiter": "arb-bdd-001",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the error raised by the last When step."""
    return {"exc": None}


@pytest.fixture()
def actors():
    return ACTORS


@pytest.fixture()
def proof_ids():
    """Proof ids in submission order."""
    return []


@pytest.fixture()
def attempt(error):
    def _run(fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (ValidationError, ObjectNotFoundError, InfrastructureError) as exc:
            error["exc"] = exc
            return None

    return _run


def _deliver(order_id):
    provider = ACTORS["provider"]
    engine.start_production(order_id, provider)
    engine.mark_ready_for_delivery(order_id, provider)
    engine.mark_shipped(order_id, provider, tracking_number="TRK-BDD")
    engine.complete_order(order_id, ACTORS["customer"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a "{listing_id}" order for {amount:g}'), target_fixture="order_id")
def _(catalog, listing_id, amount):
    order = engine.place_order(ACTORS["customer"], ACTORS["provider"], listing_id, amount)
    return str(order.id)


@given("the provider confirmed receipt")
def _(order_id):
    engine.confirm_receipt(order_id, ACTORS["provider"])


@given("the provider submitted a proof")
def _(order_id, proof_ids):
    version = len(proof_ids) + 1
    proof = engine.submit_proof(order_id, ACTORS["provider"], [f"https://cdn.example.com/v{version}.png"])
    proof_ids.append(str(proof.id))


@given("the customer approved the latest proof")
def _(proof_ids):
    engine.resolve_proof(proof_ids[-1], ACTORS["customer"], "approve")


@given("the customer requested a revision of the latest proof")
def _(proof_ids):
    engine.resolve_proof(proof_ids[-1], ACTORS["customer"], "request_revision", feedback="Try again")


@given("the order was delivered")
def _(order_id):
    _deliver(order_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert engine.get_order(order_id).status == status


@then(parsers.cfparse('the action fails with "{code}"'))
def _(error, code):
    assert error["exc"] is not None, "Expected the action to fail but it succeeded"
    assert getattr(error["exc"], "code", "validation_error") == code, f"Got {error['exc']!r}"


@then("the action succeeds")
def _(error):
    assert error["exc"] is None, f"Unexpected error: {error['exc']!r}"


@then(parsers.cfparse("the refundable balance is {amount:g}"))
def _(order_id, amount):
    assert engine.refundable_balance(order_id) == pytest.approx(amount)


@then(parsers.cfparse("the provider was paid {provider_amount:g} with a platform fee of {fee:g}"))
def _(order_id, provider_amount, fee):
    settlement = engine.get_order(order_id).settlement
    assert settlement is not None
    assert settlement.provider_amount == pytest.approx(provider_amount)
    assert settlement.platform_fee == pytest.approx(fee)


# ---------------------------------------------------------------------------
# When steps shared across features
# ---------------------------------------------------------------------------
@when("the provider starts production")
def _(order_id, attempt):
    attempt(engine.start_production, order_id, ACTORS["provider"])
