"""Posts domain: posts, their reports and their reactions."""

from __future__ import annotations

from typing import List, Optional

from .types import Uint64, WireModel


class Posts(WireModel):
    pass


class Reports(WireModel):
    post_id: str


class Reactions(WireModel):
    post_id: str


OPERATIONS = {
    "posts": Posts,
    "reports": Reports,
    "reactions": Reactions,
}


class Post(WireModel):
    post_id: str
    parent_id: Optional[str] = None
    message: str
    created: str
    last_edited: Optional[str] = None
    subspace_id: Uint64
    creator: str


class Report(WireModel):
    post_id: str
    kind: str
    message: str
    user: str


class Reaction(WireModel):
    post_id: str
    owner: str
    short_code: str
    value: str


class PostsResponse(WireModel):
    posts: List[Post]


class ReportsResponse(WireModel):
    reports: List[Report]


class ReactionsResponse(WireModel):
    reactions: List[Reaction]
