"""
Step definitions for admission-controlled minting.

These tests verify the behaviors of a deployed POAP:
- mints are admitted only while enabled and inside the inclusive window
- the per-address limit holds for own and directed mints
- enable / disable follow the configured policy
- admin and minter roles can be handed over

BDD Flow: Feature file -> Step definitions -> Implementation
"""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

# Load scenarios from feature file
scenarios("../features/admission.feature")

MOMENTS = {
    "the event start": (0, 0),
    "the event end": (1, 0),
    "one second before the event start": (0, -1),
    "one second after the event end": (1, 1),
}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {
        "poap": None,
        "collection": None,
        "result": None,
    }


def _deploy(test_context, engine, codes, poap_msg, policy=None):
    result = engine.dispatch(
        "instantiate",
        {"code_id": codes["poap"], "msg": poap_msg(policy=policy, per_address_limit=1)},
        sender="admin",
    )
    assert result.ok, result.error_message
    poap = result.data["address"]
    test_context["poap"] = poap
    test_context["collection"] = engine.vm.query(poap, {"config": {}})["collection_address"]


def _execute(test_context, engine, sender, msg):
    result = engine.dispatch("execute", {"contract": test_context["poap"], "msg": msg}, sender=sender)
    test_context["result"] = result
    return result


# =============================================================================
# Background Steps
# =============================================================================


@given("a POAP deployed by the admin with a per-address limit of 1")
def deploy_default(test_context, engine, codes, poap_msg):
    _deploy(test_context, engine, codes, poap_msg)


# =============================================================================
# Given Steps
# =============================================================================


@given(parsers.parse('a POAP deployed with policy reenable "{reenable}"'))
def deploy_reenable(test_context, engine, codes, poap_msg, reenable):
    _deploy(test_context, engine, codes, poap_msg, policy={"reenable": reenable})


@given("a POAP deployed with policy allow_disable")
def deploy_allow_disable(test_context, engine, codes, poap_msg):
    _deploy(test_context, engine, codes, poap_msg, policy={"allow_disable": True})


@given(parsers.parse('a POAP deployed with policy mint_to_quota "{mode}"'))
def deploy_mint_to_quota(test_context, engine, codes, poap_msg, mode):
    _deploy(test_context, engine, codes, poap_msg, policy={"mint_to_quota": mode})


@given("the admin enabled minting")
def admin_enabled(test_context, engine):
    assert _execute(test_context, engine, "admin", {"enable_mint": {}}).ok


@given(parsers.parse('"{user}" minted once'))
def minted_once(test_context, engine, user):
    assert _execute(test_context, engine, user, {"mint": {}}).ok


@given(parsers.parse('"{user}" minted to "{recipient}" once'))
def minted_to_once(test_context, engine, user, recipient):
    assert _execute(test_context, engine, user, {"mint_to": {"recipient": recipient}}).ok


@given(parsers.parse("the block time is {moment}"))
def block_time(engine, event_window, moment):
    bound, offset = MOMENTS[moment]
    assert engine.dispatch("block", {"time": event_window[bound] + offset}).ok


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse('"{user}" mints'))
def mints(test_context, engine, user):
    _execute(test_context, engine, user, {"mint": {}})


@when(parsers.parse('"{user}" mints to "{recipient}"'))
def mints_to(test_context, engine, user, recipient):
    _execute(test_context, engine, user, {"mint_to": {"recipient": recipient}})


@when(parsers.parse('"{user}" enables minting'))
def enables(test_context, engine, user):
    _execute(test_context, engine, user, {"enable_mint": {}})


@when(parsers.parse('"{user}" disables minting'))
def disables(test_context, engine, user):
    _execute(test_context, engine, user, {"disable_mint": {}})


@when(parsers.parse('"{user}" hands the admin role to "{new_admin}"'))
def hands_admin(test_context, engine, user, new_admin):
    _execute(test_context, engine, user, {"update_admin": {"new_admin": new_admin}})


@when(parsers.parse('"{user}" makes "{new_minter}" the minter'))
def makes_minter(test_context, engine, user, new_minter):
    _execute(test_context, engine, user, {"update_minter": {"new_minter": new_minter}})


# =============================================================================
# Then Steps
# =============================================================================


@then("the call succeeds")
def call_succeeds(test_context):
    result = test_context["result"]
    assert result.ok, f"{result.error_kind}: {result.error_message}"


@then(parsers.parse('the call fails with "{expected_kind}"'))
def call_fails(test_context, expected_kind):
    result = test_context["result"]
    assert not result.ok
    assert result.error_kind == expected_kind


@then(parsers.parse('the attribute "{key}" is "{value}"'))
def attribute_is(test_context, key, value):
    attributes = [
        attr
        for event in test_context["result"].data["events"]
        if event["type"] == "wasm"
        for attr in event["attributes"]
    ]
    assert {"key": key, "value": value} in attributes


@then(parsers.parse('token "{token_id}" is owned by "{owner}" with claimer "{claimer}"'))
def token_owned(test_context, engine, token_id, owner, claimer):
    info = engine.vm.query(test_context["poap"], {"all_nft_info": {"token_id": token_id}})
    assert info["access"]["owner"] == owner
    assert info["info"]["extension"] == {"claimer": claimer}
    assert info["info"]["token_uri"] == "ipfs://poap"

    tokens = engine.vm.query(test_context["poap"], {"tokens": {"owner": owner}})
    assert token_id in tokens["tokens"]


@then(parsers.parse('"{user}" has minted {count:d} tokens'))
def minted_amount(test_context, engine, user, count):
    assert engine.vm.query(test_context["poap"], {"minted_amount": {"user": user}}) == {
        "user": user,
        "amount": count,
    }


@then(parsers.parse("the collection holds {count:d} tokens"))
def collection_count(test_context, engine, count):
    assert engine.vm.query(test_context["collection"], {"num_tokens": {}}) == {"count": count}


@then(parsers.parse('"{user}" cannot mint because of "{expected_kind}"'))
def cannot_mint(test_context, engine, user, expected_kind):
    result = _execute(test_context, engine, user, {"mint": {}})
    assert result.error_kind == expected_kind


@then(parsers.parse('"{user}" cannot enable minting any more'))
def cannot_enable(test_context, engine, user):
    result = _execute(test_context, engine, user, {"enable_mint": {}})
    assert result.error_kind == "authorization_error"


@then(parsers.parse('"{user}" can enable minting'))
def can_enable(test_context, engine, user):
    assert _execute(test_context, engine, user, {"enable_mint": {}}).ok
    assert engine.vm.query(test_context["poap"], {"config": {}})["admin"] == user


@then(parsers.parse('the POAP admin is still "{admin}"'))
def poap_admin_is(test_context, engine, admin):
    assert engine.vm.query(test_context["poap"], {"config": {}})["admin"] == admin


@then(parsers.parse('"{user}" cannot mint to "{recipient}" any more'))
def cannot_mint_to(test_context, engine, user, recipient):
    result = _execute(test_context, engine, user, {"mint_to": {"recipient": recipient}})
    assert result.error_kind == "authorization_error"
