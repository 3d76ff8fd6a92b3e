"""
Query envelope codec.

A domain query names a route and an operation within it. Two envelope shapes
are in use for the same protocol family and both are first-class:

adjacent (route tag next to the operation union):

    {"route": "subspaces", "query_data": {"subspace": {"subspace_id": "1"}}}

wrapped (``query_data`` is a wrapper union keyed by the route again):

    {"route": "profiles", "query_data": {"profiles": {"profile": {"user": "..."}}}}

Encoding picks the route's shape unless told otherwise. Decoding detects the
shape from the structure when none is given. Every failure is a
``TransportError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..kernel.errors import TransportError, ValidationError
from ..kernel.tagged import TaggedUnion
from . import posts, profiles, relationships, subspaces
from .types import DomainRoute

M = TypeVar("M", bound=BaseModel)


class WireShape(str, Enum):
    ADJACENT = "adjacent"
    WRAPPED = "wrapped"


SCHEMAS: Dict[DomainRoute, TaggedUnion] = {
    DomainRoute.PROFILES: TaggedUnion("ProfilesQuery", profiles.OPERATIONS),
    DomainRoute.RELATIONSHIPS: TaggedUnion("RelationshipsQuery", relationships.OPERATIONS),
    DomainRoute.SUBSPACES: TaggedUnion("SubspacesQuery", subspaces.OPERATIONS),
    DomainRoute.POSTS: TaggedUnion("PostsQuery", posts.OPERATIONS),
}

DEFAULT_SHAPES: Dict[DomainRoute, WireShape] = {
    DomainRoute.PROFILES: WireShape.WRAPPED,
    DomainRoute.RELATIONSHIPS: WireShape.ADJACENT,
    DomainRoute.SUBSPACES: WireShape.ADJACENT,
    DomainRoute.POSTS: WireShape.ADJACENT,
}


@dataclass(frozen=True)
class QueryEnvelope:
    route: DomainRoute
    operation: BaseModel

    @classmethod
    def of(cls, operation: BaseModel) -> "QueryEnvelope":
        """Build the envelope of ``operation``, looking up its route."""
        for route, schema in SCHEMAS.items():
            if type(operation) in dict(schema.variants()).values():
                return cls(route=route, operation=operation)
        raise TransportError(f"{type(operation).__name__} belongs to no known route")

    @property
    def tag(self) -> str:
        return SCHEMAS[self.route].tag_of(self.operation)


def encode(
    query: Union[QueryEnvelope, BaseModel],
    shape: Optional[WireShape] = None,
) -> Dict[str, Any]:
    envelope = query if isinstance(query, QueryEnvelope) else QueryEnvelope.of(query)
    schema = SCHEMAS.get(envelope.route)
    if schema is None:
        raise TransportError(f"unknown route: {envelope.route!r}")
    try:
        inner = schema.dump(envelope.operation)
    except ValidationError as exc:
        raise TransportError(exc.message) from exc

    shape = shape or DEFAULT_SHAPES[envelope.route]
    route = envelope.route.value
    if shape is WireShape.WRAPPED:
        return {"route": route, "query_data": {route: inner}}
    return {"route": route, "query_data": inner}


def encode_bytes(query: Union[QueryEnvelope, BaseModel], shape: Optional[WireShape] = None) -> bytes:
    return json.dumps(encode(query, shape), sort_keys=True).encode()


def _load_raw(raw: Union[bytes, str, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError(f"undecodable envelope: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise TransportError("envelope must be a JSON object")
    return raw


def _route_of(raw: Mapping[str, Any]) -> DomainRoute:
    try:
        return DomainRoute(raw.get("route"))
    except ValueError:
        raise TransportError(f"unknown route: {raw.get('route')!r}") from None


def detect_shape(raw: Union[bytes, str, Mapping[str, Any]]) -> WireShape:
    """
    Wrapped iff ``query_data`` is ``{route: {op: ...}}`` with ``op`` an
    operation of that route. Operation params never carry a key named after
    an operation, so a route whose operation shares its name stays unambiguous.
    """
    envelope = _load_raw(raw)
    route = _route_of(envelope)
    data = envelope.get("query_data")
    if isinstance(data, Mapping) and len(data) == 1 and route.value in data:
        inner = data[route.value]
        if isinstance(inner, Mapping) and len(inner) == 1 and next(iter(inner)) in SCHEMAS[route]:
            return WireShape.WRAPPED
    return WireShape.ADJACENT


def decode(
    raw: Union[bytes, str, Mapping[str, Any]],
    shape: Optional[WireShape] = None,
) -> QueryEnvelope:
    envelope = _load_raw(raw)
    if set(envelope) != {"route", "query_data"}:
        raise TransportError(f"envelope keys must be route and query_data, got {sorted(envelope)}")
    route = _route_of(envelope)
    shape = shape or detect_shape(envelope)
    data = envelope["query_data"]

    if shape is WireShape.WRAPPED:
        if not isinstance(data, Mapping) or len(data) != 1:
            raise TransportError("wrapped query_data must have exactly one key")
        (wrapper, data), = data.items()
        if wrapper != route.value:
            raise TransportError(f"wrapper {wrapper!r} does not match route {route.value!r}")

    try:
        operation = SCHEMAS[route].load(data)
    except ValidationError as exc:
        raise TransportError(exc.message) from exc
    return QueryEnvelope(route=route, operation=operation)


def decode_response(raw: Union[bytes, str, Mapping[str, Any]], model: Type[M]) -> M:
    """Validate a response body against the type the caller expects."""
    body = _load_raw(raw)
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        raise TransportError(f"response does not match {model.__name__}: {exc}") from exc


def encode_response(response: BaseModel) -> Dict[str, Any]:
    return response.model_dump(mode="json", by_alias=True)
