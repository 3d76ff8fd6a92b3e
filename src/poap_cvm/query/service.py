"""
In-process domain query service.

Serves query envelopes of either wire shape from local data so the host can
run without an external chain. Profiles live in a ``ProfileDirectory``: the
CLI persists them in the host store, tests keep them in memory.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, TypeVar

from pydantic import BaseModel

from ..kernel.errors import TransportError
from ..kernel.storage import Map, Storage
from ..kernel.store import ChainStore
from . import posts, profiles, relationships, subspaces
from .codec import QueryEnvelope, decode, encode_response
from .types import PageRequest, PageResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Host store namespace for persisted domain data
DOMAIN_NAMESPACE = "_domain"


class ProfileDirectory(Protocol):
    def get(self, user: str) -> Optional[profiles.ProfileData]: ...

    def add(self, profile: profiles.ProfileData) -> None: ...

    def list(self) -> List[profiles.ProfileData]: ...


class MemoryProfileDirectory:
    def __init__(self, entries: Iterable[profiles.ProfileData] = ()) -> None:
        self._profiles: Dict[str, profiles.ProfileData] = {}
        for profile in entries:
            self.add(profile)

    def get(self, user: str) -> Optional[profiles.ProfileData]:
        return self._profiles.get(user)

    def add(self, profile: profiles.ProfileData) -> None:
        self._profiles[profile.account.address] = profile

    def list(self) -> List[profiles.ProfileData]:
        return [self._profiles[user] for user in sorted(self._profiles)]


class StoreProfileDirectory:
    """Profiles kept in the host store, outside any component namespace."""

    PROFILES: Map[str, profiles.ProfileData] = Map("profile", str, profiles.ProfileData)

    def __init__(self, store: ChainStore) -> None:
        self._storage = Storage(store, DOMAIN_NAMESPACE)

    def get(self, user: str) -> Optional[profiles.ProfileData]:
        return self.PROFILES.may_load(self._storage, user)

    def add(self, profile: profiles.ProfileData) -> None:
        self.PROFILES.save(self._storage, profile.account.address, profile)

    def list(self) -> List[profiles.ProfileData]:
        return [profile for _, profile in self.PROFILES.range(self._storage)]


def new_profile(address: str, dtag: str, nickname: str = "", bio: str = "") -> profiles.ProfileData:
    """A profile with a base account and no pictures."""
    return profiles.ProfileData(
        account=profiles.Account(
            proto_type="/cosmos.auth.v1beta1.BaseAccount",
            address=address,
            pub_key=profiles.PubKey(proto_type="/cosmos.crypto.secp256k1.PubKey", key=""),
            account_number="0",
            sequence="0",
        ),
        dtag=dtag,
        nickname=nickname or dtag,
        bio=bio,
        pictures=profiles.Pictures(profile="", cover=""),
        creation_date="",
    )


def paginate(items: Sequence[T], pagination: Optional[PageRequest]) -> Tuple[List[T], PageResponse]:
    """
    Offset pagination. ``key`` is the base64 encoded offset returned as
    ``next_key`` by the previous page and takes precedence over ``offset``.
    """
    page = pagination or PageRequest()
    ordered = list(reversed(items)) if page.reverse else list(items)
    start = page.offset
    if page.key:
        try:
            start = int(base64.b64decode(page.key).decode())
        except ValueError:
            raise TransportError(f"invalid pagination key: {page.key!r}") from None
    end = start + page.limit if page.limit else len(ordered)
    next_key = base64.b64encode(str(end).encode()).decode() if end < len(ordered) else None
    total = len(ordered) if page.count_total else None
    return ordered[start:end], PageResponse(next_key=next_key, total=total)


@dataclass
class DomainData:
    """Everything but profiles, which come from the directory."""

    dtag_requests: List[profiles.DtagTransferRequest] = field(default_factory=list)
    chain_links: List[profiles.ChainLink] = field(default_factory=list)
    app_links: List[profiles.ApplicationLink] = field(default_factory=list)
    relationships: List[relationships.Relationship] = field(default_factory=list)
    blocks: List[relationships.UserBlock] = field(default_factory=list)
    subspaces: List[subspaces.SubspaceData] = field(default_factory=list)
    groups: List[subspaces.UserGroupData] = field(default_factory=list)
    members: Dict[Tuple[int, int], List[str]] = field(default_factory=dict)
    permissions: Dict[Tuple[int, str], List[subspaces.PermissionDetail]] = field(default_factory=dict)
    posts: List[posts.Post] = field(default_factory=list)
    reports: List[posts.Report] = field(default_factory=list)
    reactions: List[posts.Reaction] = field(default_factory=list)


class DomainService:
    """
    Callable query channel: ``service(envelope) -> response dict``.

    Lookups that find nothing raise ``TransportError``, as the chain's query
    service answers with an error instead of an empty body.
    """

    def __init__(
        self,
        directory: Optional[ProfileDirectory] = None,
        data: Optional[DomainData] = None,
    ) -> None:
        self.directory: ProfileDirectory = directory or MemoryProfileDirectory()
        self.data = data or DomainData()
        self._handlers: Dict[type, Callable[[Any], BaseModel]] = {
            profiles.Profile: self._profile,
            profiles.IncomingDtagTransferRequests: self._incoming_dtag_transfer_requests,
            profiles.ChainLinks: self._chain_links,
            profiles.UserChainLink: self._user_chain_link,
            profiles.AppLinks: self._app_links,
            profiles.UserAppLinks: self._user_app_links,
            profiles.ApplicationLinkByChainId: self._application_link_by_chain_id,
            relationships.Relationships: self._relationships,
            relationships.Blocks: self._blocks,
            subspaces.Subspaces: self._subspaces,
            subspaces.Subspace: self._subspace,
            subspaces.UserGroups: self._user_groups,
            subspaces.UserGroup: self._user_group,
            subspaces.UserGroupMembers: self._user_group_members,
            subspaces.UserPermissions: self._user_permissions,
            posts.Posts: self._posts,
            posts.Reports: self._reports,
            posts.Reactions: self._reactions,
        }

    def __call__(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        envelope = decode(request)
        return encode_response(self.handle(envelope))

    def handle(self, envelope: QueryEnvelope) -> BaseModel:
        logger.debug("serving %s.%s", envelope.route.value, envelope.tag)
        return self._handlers[type(envelope.operation)](envelope.operation)

    # =========================================================================
    # profiles
    # =========================================================================

    def _profile(self, op: profiles.Profile) -> profiles.QueryProfileResponse:
        profile = self.directory.get(op.user)
        if profile is None:
            raise TransportError(f"profile with address {op.user} not found")
        return profiles.QueryProfileResponse(profile=profile)

    def _incoming_dtag_transfer_requests(
        self, op: profiles.IncomingDtagTransferRequests
    ) -> profiles.QueryIncomingDtagTransferRequestResponse:
        found = [r for r in self.data.dtag_requests if r.receiver == op.receiver]
        page, cursor = paginate(found, op.pagination)
        return profiles.QueryIncomingDtagTransferRequestResponse(requests=page, pagination=cursor)

    def _chain_links(self, op: profiles.ChainLinks) -> profiles.QueryChainLinksResponse:
        found = [link for link in self.data.chain_links if link.user == op.user]
        page, cursor = paginate(found, op.pagination)
        return profiles.QueryChainLinksResponse(links=page, pagination=cursor)

    def _user_chain_link(self, op: profiles.UserChainLink) -> profiles.QueryUserChainLinkResponse:
        for link in self.data.chain_links:
            if (
                link.user == op.user
                and link.chain_config.name == op.chain_name
                and link.address.value == op.target
            ):
                return profiles.QueryUserChainLinkResponse(link=link)
        raise TransportError(f"chain link {op.chain_name}/{op.target} of {op.user} not found")

    def _app_links(self, op: profiles.AppLinks) -> profiles.QueryApplicationLinksResponse:
        found = [link for link in self.data.app_links if link.user == op.user]
        page, cursor = paginate(found, op.pagination)
        return profiles.QueryApplicationLinksResponse(links=page, pagination=cursor)

    def _user_app_links(self, op: profiles.UserAppLinks) -> profiles.QueryUserApplicationLinkResponse:
        for link in self.data.app_links:
            if (
                link.user == op.user
                and link.data.application == op.application
                and link.data.username == op.username
            ):
                return profiles.QueryUserApplicationLinkResponse(link=link)
        raise TransportError(f"application link {op.application}/{op.username} of {op.user} not found")

    def _application_link_by_chain_id(
        self, op: profiles.ApplicationLinkByChainId
    ) -> profiles.QueryApplicationLinkByClientIdResponse:
        for link in self.data.app_links:
            if link.oracle_request.client_id == op.client_id:
                return profiles.QueryApplicationLinkByClientIdResponse(link=link)
        raise TransportError(f"application link with client id {op.client_id} not found")

    # =========================================================================
    # relationships
    # =========================================================================

    def _relationships(self, op: relationships.Relationships) -> relationships.QueryRelationshipsResponse:
        found = [
            rel
            for rel in self.data.relationships
            if rel.subspace_id == op.subspace_id
            and (op.user is None or rel.creator == op.user)
            and (op.counterparty is None or rel.counterparty == op.counterparty)
        ]
        page, cursor = paginate(found, op.pagination)
        return relationships.QueryRelationshipsResponse(relationships=page, pagination=cursor)

    def _blocks(self, op: relationships.Blocks) -> relationships.QueryBlocksResponse:
        found = [
            block
            for block in self.data.blocks
            if block.subspace_id == op.subspace_id
            and (op.blocker is None or block.blocker == op.blocker)
            and (op.blocked is None or block.blocked == op.blocked)
        ]
        page, cursor = paginate(found, op.pagination)
        return relationships.QueryBlocksResponse(blocks=page, pagination=cursor)

    # =========================================================================
    # subspaces
    # =========================================================================

    def _subspaces(self, op: subspaces.Subspaces) -> subspaces.QuerySubspacesResponse:
        page, cursor = paginate(self.data.subspaces, op.pagination)
        return subspaces.QuerySubspacesResponse(subspaces=page, pagination=cursor)

    def _subspace(self, op: subspaces.Subspace) -> subspaces.QuerySubspaceResponse:
        for subspace in self.data.subspaces:
            if subspace.id == op.subspace_id:
                return subspaces.QuerySubspaceResponse(subspace=subspace)
        raise TransportError(f"subspace {op.subspace_id} not found")

    def _user_groups(self, op: subspaces.UserGroups) -> subspaces.QueryUserGroupsResponse:
        found = [g for g in self.data.groups if g.subspace_id == op.subspace_id]
        page, cursor = paginate(found, op.pagination)
        return subspaces.QueryUserGroupsResponse(groups=page, pagination=cursor)

    def _user_group(self, op: subspaces.UserGroup) -> subspaces.QueryUserGroupResponse:
        for group in self.data.groups:
            if group.subspace_id == op.subspace_id and group.id == op.group_id:
                return subspaces.QueryUserGroupResponse(group=group)
        raise TransportError(f"group {op.group_id} of subspace {op.subspace_id} not found")

    def _user_group_members(self, op: subspaces.UserGroupMembers) -> subspaces.QueryUserGroupMembersResponse:
        members = self.data.members.get((op.subspace_id, op.group_id), [])
        page, cursor = paginate(members, op.pagination)
        return subspaces.QueryUserGroupMembersResponse(members=page, pagination=cursor)

    def _user_permissions(self, op: subspaces.UserPermissions) -> subspaces.QueryUserPermissionsResponse:
        details = self.data.permissions.get((op.subspace_id, op.user), [])
        combined = 0
        for detail in details:
            combined |= detail.permissions
        return subspaces.QueryUserPermissionsResponse(permissions=combined, details=details)

    # =========================================================================
    # posts
    # =========================================================================

    def _posts(self, op: posts.Posts) -> posts.PostsResponse:
        return posts.PostsResponse(posts=self.data.posts)

    def _reports(self, op: posts.Reports) -> posts.ReportsResponse:
        return posts.ReportsResponse(
            reports=[r for r in self.data.reports if r.post_id == op.post_id]
        )

    def _reactions(self, op: posts.Reactions) -> posts.ReactionsResponse:
        return posts.ReactionsResponse(
            reactions=[r for r in self.data.reactions if r.post_id == op.post_id]
        )
