"""
Tests for the query envelope codec: every operation of every route in both
wire shapes, and the bounds of the unsigned wire integers.
"""
import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from poap_cvm.kernel.errors import TransportError
from poap_cvm.query import posts, profiles, relationships, subspaces
from poap_cvm.query.codec import SCHEMAS, QueryEnvelope, WireShape, decode, detect_shape, encode
from poap_cvm.query.mocks import MOCK_RECEIVER, MOCK_USER, MockDomainService
from poap_cvm.query.types import PageRequest

PAGE = PageRequest(key="Mg==", offset=3, limit=10, count_total=True, reverse=True)

OPERATIONS = [
    profiles.Profile(user=MOCK_USER),
    profiles.IncomingDtagTransferRequests(receiver=MOCK_RECEIVER, pagination=PAGE),
    profiles.ChainLinks(user=MOCK_USER, pagination=PAGE),
    profiles.UserChainLink(user=MOCK_USER, chain_name="cosmos", target="cosmos1target"),
    profiles.AppLinks(user=MOCK_USER),
    profiles.UserAppLinks(user=MOCK_USER, application="twitter", username="goldrake"),
    profiles.ApplicationLinkByChainId(client_id="client-1"),
    relationships.Relationships(user=MOCK_USER, counterparty=MOCK_RECEIVER, subspace_id=1, pagination=PAGE),
    relationships.Blocks(blocker=MOCK_USER, subspace_id=2**64 - 1),
    subspaces.Subspaces(pagination=PAGE),
    subspaces.Subspace(subspace_id=7),
    subspaces.UserGroups(subspace_id=1, pagination=PAGE),
    subspaces.UserGroup(subspace_id=1, group_id=2),
    subspaces.UserGroupMembers(subspace_id=1, group_id=2**32 - 1),
    subspaces.UserPermissions(subspace_id=1, user=MOCK_USER),
    posts.Posts(),
    posts.Reports(post_id="post-1"),
    posts.Reactions(post_id="post-1"),
]


def _label(operation):
    return type(operation).__name__


def test_every_operation_has_a_sample():
    covered = {type(operation) for operation in OPERATIONS}
    declared = {model for union in SCHEMAS.values() for _, model in union.variants()}
    assert covered == declared


@pytest.mark.parametrize("shape", list(WireShape))
@pytest.mark.parametrize("operation", OPERATIONS, ids=_label)
def test_round_trip_in_both_shapes(operation, shape):
    envelope = encode(operation, shape)

    assert detect_shape(envelope) is shape
    assert decode(envelope) == QueryEnvelope.of(operation)
    assert decode(json.dumps(envelope)).operation == operation
    assert decode(envelope, shape).operation == operation


def test_unsigned_integers_travel_as_strings():
    envelope = encode(subspaces.Subspaces(pagination=PageRequest(offset=2, limit=5)))
    assert envelope["query_data"]["subspaces"]["pagination"]["offset"] == "2"
    assert envelope["query_data"]["subspaces"]["pagination"]["limit"] == "5"


@pytest.mark.parametrize(
    "query_data",
    [
        {"subspaces": {"pagination": {"offset": "-2", "limit": "-1"}}},
        {"subspaces": {"pagination": {"limit": str(2**64)}}},
        {"subspace": {"subspace_id": "-7"}},
        {"user_group": {"subspace_id": "1", "group_id": -1}},
        {"user_group": {"subspace_id": "1", "group_id": 2**32}},
    ],
)
def test_out_of_range_unsigned_values_are_transport_errors(query_data):
    with pytest.raises(TransportError):
        decode({"route": "subspaces", "query_data": query_data})


def test_negative_pagination_never_reaches_the_service():
    service = MockDomainService()
    request = {
        "route": "subspaces",
        "query_data": {"subspaces": {"pagination": {"offset": "-1"}}},
    }
    with pytest.raises(TransportError):
        service(request)


def test_negative_values_cannot_be_built():
    with pytest.raises(PydanticValidationError):
        PageRequest(offset=-1)
    with pytest.raises(PydanticValidationError):
        subspaces.Subspace(subspace_id=-1)
