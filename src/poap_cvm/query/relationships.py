"""Relationships domain: relationships and user blocks scoped to a subspace."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .types import PageRequest, PageResponse, Uint64, WireModel


class Relationships(WireModel):
    user: Optional[str] = None
    counterparty: Optional[str] = None
    subspace_id: Uint64
    pagination: Optional[PageRequest] = None


class Blocks(WireModel):
    blocker: Optional[str] = None
    blocked: Optional[str] = None
    subspace_id: Uint64
    pagination: Optional[PageRequest] = None


OPERATIONS = {
    "relationships": Relationships,
    "blocks": Blocks,
}


class Relationship(WireModel):
    creator: str
    counterparty: str
    subspace_id: Uint64


class UserBlock(WireModel):
    blocker: str
    blocked: str
    reason: str
    subspace_id: Uint64


class QueryRelationshipsResponse(WireModel):
    relationships: List[Relationship]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryBlocksResponse(WireModel):
    blocks: List[UserBlock]
    pagination: PageResponse = Field(default_factory=PageResponse)
