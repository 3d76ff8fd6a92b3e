"""Subspaces domain: subspaces, user groups and permissions."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .types import PageRequest, PageResponse, Uint32, Uint64, WireModel


class Subspaces(WireModel):
    pagination: Optional[PageRequest] = None


class Subspace(WireModel):
    subspace_id: Uint64


class UserGroups(WireModel):
    subspace_id: Uint64
    pagination: Optional[PageRequest] = None


class UserGroup(WireModel):
    subspace_id: Uint64
    group_id: Uint32


class UserGroupMembers(WireModel):
    subspace_id: Uint64
    group_id: Uint32
    pagination: Optional[PageRequest] = None


class UserPermissions(WireModel):
    subspace_id: Uint64
    user: str


OPERATIONS = {
    "subspaces": Subspaces,
    "subspace": Subspace,
    "user_groups": UserGroups,
    "user_group": UserGroup,
    "user_group_members": UserGroupMembers,
    "user_permissions": UserPermissions,
}


class SubspaceData(WireModel):
    id: Uint64
    name: str
    description: str
    treasury: str
    owner: str
    creator: str
    creation_time: str


class UserGroupData(WireModel):
    subspace_id: Uint64
    id: Uint32
    name: str
    description: str
    permissions: Uint32


class PermissionDetail(WireModel):
    """Exactly one of ``user`` / ``group`` is set."""

    user: Optional[str] = None
    group: Optional[Uint32] = None
    permissions: Uint32


class QuerySubspacesResponse(WireModel):
    subspaces: List[SubspaceData]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QuerySubspaceResponse(WireModel):
    subspace: SubspaceData


class QueryUserGroupsResponse(WireModel):
    groups: List[UserGroupData]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryUserGroupResponse(WireModel):
    group: UserGroupData


class QueryUserGroupMembersResponse(WireModel):
    members: List[str]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryUserPermissionsResponse(WireModel):
    permissions: Uint32
    details: List[PermissionDetail] = Field(default_factory=list)
