from .codec import (
    DEFAULT_SHAPES,
    SCHEMAS,
    QueryEnvelope,
    WireShape,
    decode,
    decode_response,
    detect_shape,
    encode,
)
from .querier import (
    PostsQuerier,
    ProfilesQuerier,
    QueryRouter,
    RelationshipsQuerier,
    SubspacesQuerier,
)
from .service import DomainService, StoreProfileDirectory
from .types import DomainRoute, PageRequest, PageResponse

__all__ = [
    "DEFAULT_SHAPES",
    "SCHEMAS",
    "DomainRoute",
    "DomainService",
    "PageRequest",
    "PageResponse",
    "PostsQuerier",
    "ProfilesQuerier",
    "QueryEnvelope",
    "QueryRouter",
    "RelationshipsQuerier",
    "StoreProfileDirectory",
    "SubspacesQuerier",
    "WireShape",
    "decode",
    "decode_response",
    "detect_shape",
    "encode",
]
