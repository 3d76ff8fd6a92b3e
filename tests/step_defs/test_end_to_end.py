"""
Step definitions for claiming a POAP through the manager.

These tests drive the whole chain of components through the HostEngine:
manager -> POAP -> token collection, with the eligibility query answered
by the mock domain service.

BDD Flow: Feature file -> Step definitions -> Implementation
"""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from poap_cvm.query.codec import WireShape
from poap_cvm.query.mocks import MOCK_USER

# Load scenarios from feature file
scenarios("../features/end_to_end.feature")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {
        "manager": None,
        "poap": None,
        "collection": None,
        "result": None,
    }


def _deploy(test_context, engine, codes, manager_msg, query_shapes=None):
    result = engine.dispatch(
        "instantiate",
        {"code_id": codes["manager"], "msg": manager_msg(query_shapes=query_shapes)},
        sender="admin",
    )
    assert result.ok, result.error_message
    manager = result.data["address"]
    poap = engine.vm.query(manager, {"config": {}})["poap_contract_address"]
    test_context["manager"] = manager
    test_context["poap"] = poap
    test_context["collection"] = engine.vm.query(poap, {"config": {}})["collection_address"]


def _claim(test_context, engine, user):
    test_context["result"] = engine.dispatch(
        "execute", {"contract": test_context["manager"], "msg": {"claim": {}}}, sender=user
    )
    return test_context["result"]


# =============================================================================
# Given Steps
# =============================================================================


@given("a manager deployed by the admin")
def deploy_manager(test_context, engine, codes, manager_msg):
    _deploy(test_context, engine, codes, manager_msg)


@given(parsers.parse('a manager deployed with profiles queries "{shape}"'))
def deploy_manager_with_shape(test_context, engine, codes, manager_msg, shape):
    _deploy(test_context, engine, codes, manager_msg, query_shapes={"profiles": shape})


@given("the admin enabled minting on the POAP")
def enable_minting(test_context, engine):
    result = engine.dispatch(
        "execute", {"contract": test_context["poap"], "msg": {"enable_mint": {}}}, sender="admin"
    )
    assert result.ok, result.error_message


@given("the mock user claimed once")
def claimed_once(test_context, engine):
    assert _claim(test_context, engine, MOCK_USER).ok


@given("the domain service is offline")
def domain_offline(domain):
    domain.offline = True


@given("the block time is past the event end")
def past_event_end(engine, event_window):
    assert engine.dispatch("block", {"time": event_window[1] + 1}).ok


# =============================================================================
# When Steps
# =============================================================================


@when("the mock user claims")
def mock_user_claims(test_context, engine):
    _claim(test_context, engine, MOCK_USER)


@when(parsers.parse('"{user}" claims'))
def user_claims(test_context, engine, user):
    _claim(test_context, engine, user)


@when(parsers.parse('"{user}" mints to "{recipient}" through the manager'))
def mint_through_manager(test_context, engine, user, recipient):
    test_context["result"] = engine.dispatch(
        "execute",
        {"contract": test_context["manager"], "msg": {"mint_to": {"recipient": recipient}}},
        sender=user,
    )


@when(parsers.parse('"{user}" hands the manager admin role to "{new_admin}"'))
def hands_manager_admin(test_context, engine, user, new_admin):
    test_context["result"] = engine.dispatch(
        "execute",
        {"contract": test_context["manager"], "msg": {"update_admin": {"new_admin": new_admin}}},
        sender=user,
    )


# =============================================================================
# Then Steps
# =============================================================================


@then("the claim succeeds")
def claim_succeeds(test_context):
    result = test_context["result"]
    assert result.ok, f"{result.error_kind}: {result.error_message}"


@then(parsers.parse('the claim fails with "{expected_kind}"'))
def claim_fails(test_context, expected_kind):
    result = test_context["result"]
    assert not result.ok
    assert result.error_kind == expected_kind


@then(parsers.parse('token "{token_id}" of the collection belongs to the mock user'))
def token_belongs_to_mock_user(test_context, engine, token_id):
    collection = test_context["collection"]
    assert engine.vm.query(collection, {"owner_of": {"token_id": token_id}})["owner"] == MOCK_USER
    info = engine.vm.query(collection, {"nft_info": {"token_id": token_id}})
    assert info["extension"] == {"claimer": MOCK_USER}

    # The forwarded mint carried the token id back up the chain
    events = test_context["result"].data["events"]
    minted = [
        attr["value"]
        for event in events
        if event["type"] == "wasm"
        for attr in event["attributes"]
        if attr["key"] == "token_id"
    ]
    assert minted == [token_id]


@then(parsers.parse("the mock user has minted {count:d} POAP"))
def mock_user_minted(test_context, engine, count):
    amount = engine.vm.query(test_context["poap"], {"minted_amount": {"user": MOCK_USER}})
    assert amount["amount"] == count


@then(parsers.parse("the collection holds {count:d} token"))
def collection_holds(test_context, engine, count):
    assert engine.vm.query(test_context["collection"], {"num_tokens": {}}) == {"count": count}


@then(parsers.parse('the domain service received an envelope shaped "{shape}"'))
def domain_shape(domain, shape):
    assert domain.shapes[-1] is WireShape(shape)
    assert domain.requests[-1]["route"] == "profiles"


@then(parsers.parse('the manager admin is "{admin}"'))
def manager_admin_is(test_context, engine, admin):
    assert engine.vm.query(test_context["manager"], {"config": {}})["admin"] == admin
