"""
Externally tagged unions.

Messages on the wire are single-key JSON objects whose key names the variant:

    {"mint_to": {"recipient": "user"}}

pydantic discriminated unions expect the tag inside the object, so variants
are registered here by tag and (de)serialized explicitly.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class TaggedUnion:
    def __init__(self, title: str, variants: Mapping[str, Type[BaseModel]]) -> None:
        self.title = title
        self._by_tag: Dict[str, Type[BaseModel]] = dict(variants)
        self._by_type: Dict[Type[BaseModel], str] = {
            model: tag for tag, model in self._by_tag.items()
        }

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(self._by_tag)

    def variants(self) -> Iterable[Tuple[str, Type[BaseModel]]]:
        return self._by_tag.items()

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def tag_of(self, value: BaseModel) -> str:
        try:
            return self._by_type[type(value)]
        except KeyError:
            raise ValidationError(
                f"{type(value).__name__} is not a variant of {self.title}"
            ) from None

    def split(self, raw: Any) -> Tuple[str, Any]:
        """Return ``(tag, params)`` of a single-key object without validating params."""
        if not isinstance(raw, Mapping) or len(raw) != 1:
            raise ValidationError(f"{self.title} must be an object with exactly one key")
        (tag, params), = raw.items()
        if tag not in self._by_tag:
            raise ValidationError(f"unknown {self.title} variant: {tag!r}")
        return tag, params

    def load(self, raw: Any) -> BaseModel:
        tag, params = self.split(raw)
        if params is None:
            params = {}
        try:
            return self._by_tag[tag].model_validate(params)
        except PydanticValidationError as exc:
            raise ValidationError(f"invalid {self.title}.{tag}: {exc}") from exc

    def dump(self, value: BaseModel) -> Dict[str, Any]:
        return {self.tag_of(value): value.model_dump(mode="json")}

    def json_schema(self, description: Optional[str] = None) -> Dict[str, Any]:
        """JSON Schema with one ``oneOf`` branch per variant."""
        branches = []
        for tag, model in self._by_tag.items():
            branch: Dict[str, Any] = {
                "type": "object",
                "required": [tag],
                "properties": {tag: model.model_json_schema()},
                "additionalProperties": False,
            }
            if model.__doc__:
                branch["description"] = " ".join(model.__doc__.split())
            branches.append(branch)
        schema: Dict[str, Any] = {"title": self.title, "oneOf": branches}
        if description:
            schema["description"] = description
        return schema


def load_model(model: Type[M], raw: Any) -> M:
    """Validate ``raw`` as ``model``, reporting failures as ``ValidationError``."""
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"invalid {model.__name__}: {exc}") from exc
