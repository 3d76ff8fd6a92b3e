from __future__ import annotations

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Unsigned 64-bit integers travel as decimal strings
Uint64 = Annotated[
    int,
    Field(ge=0, le=2**64 - 1),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]

# Unsigned 32-bit integers travel as JSON numbers
Uint32 = Annotated[int, Field(ge=0, le=2**32 - 1)]


class DomainRoute(str, Enum):
    PROFILES = "profiles"
    RELATIONSHIPS = "relationships"
    SUBSPACES = "subspaces"
    POSTS = "posts"


class WireModel(BaseModel):
    """Base of every request/response body: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class PageRequest(WireModel):
    key: Optional[str] = None  # opaque, base64
    offset: Uint64 = 0
    limit: Uint64 = 0
    count_total: bool = False
    reverse: bool = False


class PageResponse(WireModel):
    next_key: Optional[str] = None
    total: Optional[Uint64] = None
