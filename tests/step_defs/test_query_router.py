"""
Step definitions for dual-shape domain query routing.

These tests verify:
- each route is encoded in its configured envelope shape
- decoding accepts both shapes and detects which one arrived
- the router maps every failure to a transport error

BDD Flow: Feature file -> Step definitions -> Implementation
"""

import json

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from poap_cvm.kernel.errors import TransportError
from poap_cvm.query import posts, profiles, relationships, subspaces
from poap_cvm.query.codec import WireShape, decode, detect_shape, encode, encode_bytes
from poap_cvm.query.mocks import MOCK_USER
from poap_cvm.query.querier import ProfilesQuerier, QueryRouter
from poap_cvm.query.types import DomainRoute

# Load scenarios from feature file
scenarios("../features/query_router.feature")

SAMPLE_OPERATIONS = {
    "profiles": profiles.Profile(user=MOCK_USER),
    "relationships": relationships.Relationships(user=MOCK_USER, subspace_id=1),
    "subspaces": subspaces.Subspace(subspace_id=1),
    "posts": posts.Reports(post_id="1"),
}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {
        "shapes": {},
        "envelope": None,
        "decoded": None,
        "response": None,
        "error": None,
    }


# =============================================================================
# Given Steps
# =============================================================================


@given("a domain service knowing the mock user")
def domain_service(domain):
    assert domain.directory.get(MOCK_USER) is not None


@given("the domain service is offline")
def domain_offline(domain):
    domain.offline = True


@given(parsers.parse('the router sends profiles queries "{shape}"'))
def override_shape(test_context, shape):
    test_context["shapes"][DomainRoute.PROFILES] = WireShape(shape)


@given(parsers.parse("a profile query envelope in the {shape} shape"))
def profile_envelope(test_context, shape):
    test_context["envelope"] = encode(profiles.Profile(user=MOCK_USER), WireShape(shape))


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse("a {route} query is encoded"))
def encode_route(test_context, route):
    test_context["envelope"] = encode(SAMPLE_OPERATIONS[route])


@when("the envelope is decoded")
def decode_envelope(test_context):
    test_context["decoded"] = decode(test_context["envelope"])


@when(parsers.parse("the router asks for the profile of the mock user"))
def ask_mock_profile(test_context, domain):
    _ask_profile(test_context, domain, MOCK_USER)


@when(parsers.parse('the router asks for the profile of "{user}"'))
def ask_profile(test_context, domain, user):
    _ask_profile(test_context, domain, user)


def _ask_profile(test_context, domain, user):
    querier = ProfilesQuerier(QueryRouter(domain, test_context["shapes"]))
    try:
        test_context["response"] = querier.query_profile(user)
    except TransportError as exc:
        test_context["error"] = exc


@when(parsers.parse("the raw envelope {raw} is decoded"))
def decode_raw(test_context, raw):
    try:
        decode(raw)
    except TransportError as exc:
        test_context["error"] = exc


# =============================================================================
# Then Steps
# =============================================================================


@then(parsers.parse('the envelope route is "{route}"'))
def envelope_route(test_context, route):
    assert test_context["envelope"]["route"] == route
    assert set(test_context["envelope"]) == {"route", "query_data"}


@then(parsers.parse('the envelope shape is "{shape}"'))
def envelope_shape(test_context, shape):
    envelope = test_context["envelope"]
    assert detect_shape(envelope) is WireShape(shape)
    if shape == "wrapped":
        assert list(envelope["query_data"]) == [envelope["route"]]
    # Round trip through the wire encoding
    operation = SAMPLE_OPERATIONS[envelope["route"]]
    assert json.loads(encode_bytes(operation)) == envelope
    assert decode(encode_bytes(operation)).operation == operation


@then("the decoded operation is a profile query for the mock user")
def decoded_profile(test_context):
    decoded = test_context["decoded"]
    assert decoded.route is DomainRoute.PROFILES
    assert decoded.tag == "profile"
    assert decoded.operation == profiles.Profile(user=MOCK_USER)


@then(parsers.parse('the detected shape is "{shape}"'))
def detected_shape(test_context, shape):
    assert detect_shape(test_context["envelope"]) is WireShape(shape)


@then(parsers.parse('the profile DTag is "{dtag}"'))
def profile_dtag(test_context, dtag):
    assert test_context["error"] is None
    profile = test_context["response"].profile
    assert profile.dtag == dtag
    assert profile.account.address == MOCK_USER


@then(parsers.parse('the service received an envelope shaped "{shape}"'))
def service_shape(domain, shape):
    assert domain.shapes[-1] is WireShape(shape)


@then(parsers.parse('the query fails with a transport error mentioning "{text}"'))
def query_transport_error(test_context, text):
    assert test_context["response"] is None
    assert isinstance(test_context["error"], TransportError)
    assert text in test_context["error"].message


@then("decoding fails with a transport error")
def decoding_failed(test_context):
    assert isinstance(test_context["error"], TransportError)
    assert test_context["error"].kind == "transport_error"
