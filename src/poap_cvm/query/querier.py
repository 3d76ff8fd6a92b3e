"""
Typed access to the domain query service.

    router = QueryRouter(deps.querier.query_custom)
    profile = ProfilesQuerier(router).query_profile("desmos1...")

``QueryRouter`` owns the envelope shape per route and turns every failure on
the way out and back into a ``TransportError``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel

from ..kernel.errors import ContractError, TransportError
from . import posts, profiles, relationships, subspaces
from .codec import DEFAULT_SHAPES, QueryEnvelope, WireShape, decode_response, encode
from .types import DomainRoute, PageRequest

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

Channel = Callable[[Dict[str, Any]], Any]


class QueryRouter:
    def __init__(
        self,
        channel: Channel,
        shapes: Optional[Mapping[DomainRoute, WireShape]] = None,
    ) -> None:
        self._channel = channel
        self.shapes: Dict[DomainRoute, WireShape] = {**DEFAULT_SHAPES, **(shapes or {})}

    def request(self, operation: BaseModel, response_type: Type[R]) -> R:
        envelope = QueryEnvelope.of(operation)
        request = encode(envelope, self.shapes[envelope.route])
        logger.debug("domain query %s.%s", envelope.route.value, envelope.tag)
        try:
            raw = self._channel(request)
        except ContractError as exc:
            if isinstance(exc, TransportError):
                raise
            raise TransportError(f"{exc.kind}: {exc.message}") from exc
        except Exception as exc:
            raise TransportError(f"domain query channel failed: {exc}") from exc
        return decode_response(raw, response_type)


class ProfilesQuerier:
    def __init__(self, router: QueryRouter) -> None:
        self._router = router

    def query_profile(self, user: str) -> profiles.QueryProfileResponse:
        return self._router.request(
            profiles.Profile(user=user), profiles.QueryProfileResponse
        )

    def query_incoming_dtag_transfer_requests(
        self, receiver: str, pagination: Optional[PageRequest] = None
    ) -> profiles.QueryIncomingDtagTransferRequestResponse:
        return self._router.request(
            profiles.IncomingDtagTransferRequests(receiver=receiver, pagination=pagination),
            profiles.QueryIncomingDtagTransferRequestResponse,
        )

    def query_chain_links(
        self, user: str, pagination: Optional[PageRequest] = None
    ) -> profiles.QueryChainLinksResponse:
        return self._router.request(
            profiles.ChainLinks(user=user, pagination=pagination),
            profiles.QueryChainLinksResponse,
        )

    def query_user_chain_link(
        self, user: str, chain_name: str, target: str
    ) -> profiles.QueryUserChainLinkResponse:
        return self._router.request(
            profiles.UserChainLink(user=user, chain_name=chain_name, target=target),
            profiles.QueryUserChainLinkResponse,
        )

    def query_application_links(
        self, user: str, pagination: Optional[PageRequest] = None
    ) -> profiles.QueryApplicationLinksResponse:
        return self._router.request(
            profiles.AppLinks(user=user, pagination=pagination),
            profiles.QueryApplicationLinksResponse,
        )

    def query_user_application_link(
        self, user: str, application: str, username: str
    ) -> profiles.QueryUserApplicationLinkResponse:
        return self._router.request(
            profiles.UserAppLinks(user=user, application=application, username=username),
            profiles.QueryUserApplicationLinkResponse,
        )

    def query_application_link_by_client_id(
        self, client_id: str
    ) -> profiles.QueryApplicationLinkByClientIdResponse:
        return self._router.request(
            profiles.ApplicationLinkByChainId(client_id=client_id),
            profiles.QueryApplicationLinkByClientIdResponse,
        )


class RelationshipsQuerier:
    def __init__(self, router: QueryRouter) -> None:
        self._router = router

    def query_relationships(
        self,
        subspace_id: int,
        user: Optional[str] = None,
        counterparty: Optional[str] = None,
        pagination: Optional[PageRequest] = None,
    ) -> relationships.QueryRelationshipsResponse:
        return self._router.request(
            relationships.Relationships(
                user=user,
                counterparty=counterparty,
                subspace_id=subspace_id,
                pagination=pagination,
            ),
            relationships.QueryRelationshipsResponse,
        )

    def query_blocks(
        self,
        subspace_id: int,
        blocker: Optional[str] = None,
        blocked: Optional[str] = None,
        pagination: Optional[PageRequest] = None,
    ) -> relationships.QueryBlocksResponse:
        return self._router.request(
            relationships.Blocks(
                blocker=blocker,
                blocked=blocked,
                subspace_id=subspace_id,
                pagination=pagination,
            ),
            relationships.QueryBlocksResponse,
        )


class SubspacesQuerier:
    def __init__(self, router: QueryRouter) -> None:
        self._router = router

    def query_subspaces(
        self, pagination: Optional[PageRequest] = None
    ) -> subspaces.QuerySubspacesResponse:
        return self._router.request(
            subspaces.Subspaces(pagination=pagination), subspaces.QuerySubspacesResponse
        )

    def query_subspace(self, subspace_id: int) -> subspaces.QuerySubspaceResponse:
        return self._router.request(
            subspaces.Subspace(subspace_id=subspace_id), subspaces.QuerySubspaceResponse
        )

    def query_user_groups(
        self, subspace_id: int, pagination: Optional[PageRequest] = None
    ) -> subspaces.QueryUserGroupsResponse:
        return self._router.request(
            subspaces.UserGroups(subspace_id=subspace_id, pagination=pagination),
            subspaces.QueryUserGroupsResponse,
        )

    def query_user_group(self, subspace_id: int, group_id: int) -> subspaces.QueryUserGroupResponse:
        return self._router.request(
            subspaces.UserGroup(subspace_id=subspace_id, group_id=group_id),
            subspaces.QueryUserGroupResponse,
        )

    def query_user_group_members(
        self, subspace_id: int, group_id: int, pagination: Optional[PageRequest] = None
    ) -> subspaces.QueryUserGroupMembersResponse:
        return self._router.request(
            subspaces.UserGroupMembers(
                subspace_id=subspace_id, group_id=group_id, pagination=pagination
            ),
            subspaces.QueryUserGroupMembersResponse,
        )

    def query_user_permissions(
        self, subspace_id: int, user: str
    ) -> subspaces.QueryUserPermissionsResponse:
        return self._router.request(
            subspaces.UserPermissions(subspace_id=subspace_id, user=user),
            subspaces.QueryUserPermissionsResponse,
        )


class PostsQuerier:
    def __init__(self, router: QueryRouter) -> None:
        self._router = router

    def query_posts(self) -> posts.PostsResponse:
        return self._router.request(posts.Posts(), posts.PostsResponse)

    def query_post_reports(self, post_id: str) -> posts.ReportsResponse:
        return self._router.request(posts.Reports(post_id=post_id), posts.ReportsResponse)

    def query_post_reactions(self, post_id: str) -> posts.ReactionsResponse:
        return self._router.request(posts.Reactions(post_id=post_id), posts.ReactionsResponse)
