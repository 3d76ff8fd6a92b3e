"""
Tests for the typed domain queriers against the in-process domain service.
"""
import base64

import pytest

from poap_cvm.kernel.errors import TransportError
from poap_cvm.kernel.store import ChainStore
from poap_cvm.query.codec import WireShape
from poap_cvm.query.mocks import MOCK_RECEIVER, MOCK_USER, MockDomainService, MockPostsQueries
from poap_cvm.query.querier import (
    PostsQuerier,
    ProfilesQuerier,
    QueryRouter,
    RelationshipsQuerier,
    SubspacesQuerier,
)
from poap_cvm.query.service import DomainService, StoreProfileDirectory, new_profile, paginate
from poap_cvm.query.types import DomainRoute, PageRequest


@pytest.fixture
def service():
    return MockDomainService()


@pytest.fixture
def router(service):
    return QueryRouter(service)


# =============================================================================
# Profiles
# =============================================================================


def test_profile(router):
    profile = ProfilesQuerier(router).query_profile(MOCK_USER).profile
    assert profile.dtag == "goldrake"
    assert profile.account.proto_type == "/cosmos.auth.v1beta1.BaseAccount"


def test_incoming_dtag_transfer_requests(router):
    response = ProfilesQuerier(router).query_incoming_dtag_transfer_requests(MOCK_RECEIVER)
    assert [r.sender for r in response.requests] == [MOCK_USER]
    assert ProfilesQuerier(router).query_incoming_dtag_transfer_requests(MOCK_USER).requests == []


def test_chain_links(router):
    querier = ProfilesQuerier(router)
    links = querier.query_chain_links(MOCK_USER).links
    assert [link.chain_config.name for link in links] == ["cosmos"]

    link = querier.query_user_chain_link(
        MOCK_USER, "cosmos", "cosmos18xnmlzqrqr6zt526pnczxe65zk3f4xgmndpxn2"
    ).link
    assert link.address.prefix == "cosmos"

    with pytest.raises(TransportError):
        querier.query_user_chain_link(MOCK_USER, "cosmos", "cosmos1other")


def test_application_links(router):
    querier = ProfilesQuerier(router)
    assert len(querier.query_application_links(MOCK_USER).links) == 1

    link = querier.query_user_application_link(MOCK_USER, "twitter", "goldrake").link
    assert link.state == "APPLICATION_LINK_STATE_VERIFICATION_SUCCESS"

    by_client = querier.query_application_link_by_client_id(f"{MOCK_USER}-twitter-goldrake").link
    assert by_client == link

    with pytest.raises(TransportError):
        querier.query_application_link_by_client_id("unknown")


# =============================================================================
# Relationships
# =============================================================================


def test_relationships(router):
    querier = RelationshipsQuerier(router)
    found = querier.query_relationships(1, user=MOCK_USER).relationships
    assert [r.counterparty for r in found] == [MOCK_RECEIVER]
    assert querier.query_relationships(2).relationships == []


def test_blocks(router):
    blocks = RelationshipsQuerier(router).query_blocks(1, blocker=MOCK_USER).blocks
    assert [b.reason for b in blocks] == ["test"]


# =============================================================================
# Subspaces
# =============================================================================


def test_subspaces(router):
    querier = SubspacesQuerier(router)
    assert [s.id for s in querier.query_subspaces().subspaces] == [1]
    assert querier.query_subspace(1).subspace.name == "Test subspace"
    with pytest.raises(TransportError):
        querier.query_subspace(99)


def test_user_groups(router):
    querier = SubspacesQuerier(router)
    assert [g.name for g in querier.query_user_groups(1).groups] == ["Test group"]
    assert querier.query_user_group(1, 1).group.id == 1
    assert querier.query_user_group_members(1, 1).members == [MOCK_USER]
    assert querier.query_user_group_members(1, 2).members == []


def test_user_permissions(router):
    response = SubspacesQuerier(router).query_user_permissions(1, MOCK_USER)
    assert response.permissions == 1
    assert response.details[0].user == MOCK_USER


# =============================================================================
# Posts
# =============================================================================


def test_posts(service, router):
    querier = PostsQuerier(router)
    post_id = MockPostsQueries.get_mock_post().post_id

    assert [p.creator for p in querier.query_posts().posts] == [MOCK_USER]
    assert [r.kind for r in querier.query_post_reports(post_id).reports] == ["scam"]
    assert [r.short_code for r in querier.query_post_reactions(post_id).reactions] == [":heart:"]
    assert querier.query_post_reports("unknown").reports == []

    assert service.shapes == [WireShape.ADJACENT] * 4
    assert service.requests[0] == {"route": "posts", "query_data": {"posts": {}}}


# =============================================================================
# Shapes
# =============================================================================


def test_router_uses_default_shapes(service, router):
    ProfilesQuerier(router).query_profile(MOCK_USER)
    SubspacesQuerier(router).query_subspace(1)
    assert service.shapes == [WireShape.WRAPPED, WireShape.ADJACENT]
    assert service.requests[0]["query_data"] == {"profiles": {"profile": {"user": MOCK_USER}}}
    assert service.requests[1]["query_data"] == {"subspace": {"subspace_id": "1"}}


def test_router_shape_overrides(service):
    router = QueryRouter(
        service,
        {DomainRoute.PROFILES: WireShape.ADJACENT, DomainRoute.SUBSPACES: WireShape.WRAPPED},
    )
    ProfilesQuerier(router).query_profile(MOCK_USER)
    SubspacesQuerier(router).query_subspace(1)
    assert service.shapes == [WireShape.ADJACENT, WireShape.WRAPPED]
    assert router.shapes[DomainRoute.RELATIONSHIPS] is WireShape.ADJACENT


def test_router_rejects_responses_of_the_wrong_type(service):
    router = QueryRouter(lambda request: {"unexpected": True})
    with pytest.raises(TransportError):
        ProfilesQuerier(router).query_profile(MOCK_USER)


# =============================================================================
# Service
# =============================================================================


def test_paginate_by_limit_and_key():
    items = list(range(5))

    page, cursor = paginate(items, PageRequest(limit=2, count_total=True))
    assert page == [0, 1]
    assert cursor.total == 5
    assert base64.b64decode(cursor.next_key) == b"2"

    page, cursor = paginate(items, PageRequest(key=cursor.next_key, limit=2))
    assert page == [2, 3]

    page, cursor = paginate(items, PageRequest(key=cursor.next_key, limit=2))
    assert page == [4]
    assert cursor.next_key is None


def test_paginate_reverse_and_offset():
    page, _ = paginate(["a", "b", "c"], PageRequest(offset=1, reverse=True))
    assert page == ["b", "a"]


def test_paginate_rejects_garbage_keys():
    with pytest.raises(TransportError):
        paginate([1], PageRequest(key="!!!"))


def test_paginated_query_over_the_wire(service, router):
    service.data.subspaces.append(
        service.data.subspaces[0].model_copy(update={"id": 2, "name": "Second"})
    )
    querier = SubspacesQuerier(router)
    first = querier.query_subspaces(PageRequest(limit=1, count_total=True))
    assert [s.id for s in first.subspaces] == [1]
    assert first.pagination.total == 2

    second = querier.query_subspaces(PageRequest(key=first.pagination.next_key, limit=1))
    assert [s.id for s in second.subspaces] == [2]


def test_store_profile_directory_round_trip(temp_db):
    store = ChainStore(temp_db)
    try:
        directory = StoreProfileDirectory(store)
        directory.add(new_profile("desmos1alice", "alice"))
        directory.add(new_profile("desmos1bob", "bob", nickname="Bob"))

        service = DomainService(directory)
        profile = ProfilesQuerier(QueryRouter(service)).query_profile("desmos1bob").profile
        assert profile.nickname == "Bob"
        assert [p.dtag for p in directory.list()] == ["alice", "bob"]
        assert store.kv_dump("contract0") == []
    finally:
        store.close()
