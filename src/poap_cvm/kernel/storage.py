"""
Typed storage helpers over a component's key-value namespace.

``Item`` holds a singleton value, ``Map`` a keyed collection. Values are
validated and dumped through pydantic ``TypeAdapter`` so component state is
plain JSON in the store.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import TypeAdapter

from .errors import NotFoundError
from .store import ChainStore

T = TypeVar("T")
K = TypeVar("K", str, int)

# Separates a map namespace from its keys
_SEP = ":"


class Storage:
    """A component's view of the store, namespaced by its address."""

    def __init__(self, store: ChainStore, namespace: str) -> None:
        self._store = store
        self.namespace = namespace

    def get(self, key: str) -> Optional[Any]:
        return self._store.kv_get(self.namespace, key)

    def set(self, key: str, value: Any) -> None:
        self._store.kv_set(self.namespace, key, value)

    def remove(self, key: str) -> None:
        self._store.kv_remove(self.namespace, key)

    def range(
        self,
        prefix: str,
        start_after: Optional[str] = None,
        limit: Optional[int] = None,
        reverse: bool = False,
    ) -> List[Tuple[str, Any]]:
        return self._store.kv_range(self.namespace, prefix, start_after, limit, reverse)


class Item(Generic[T]):
    def __init__(self, key: str, value_type: Type[T]) -> None:
        self.key = key
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    def may_load(self, storage: Storage) -> Optional[T]:
        raw = storage.get(self.key)
        if raw is None:
            return None
        return self._adapter.validate_python(raw)

    def load(self, storage: Storage) -> T:
        value = self.may_load(storage)
        if value is None:
            raise NotFoundError(f"{self.key} not found")
        return value

    def save(self, storage: Storage, value: T) -> None:
        storage.set(self.key, self._adapter.dump_python(value, mode="json"))

    def update(self, storage: Storage, action: Callable[[T], T]) -> T:
        """Load, apply ``action``, save. Nothing is written if ``action`` raises."""
        value = action(self.load(storage))
        self.save(storage, value)
        return value


class Map(Generic[K, T]):
    def __init__(self, namespace: str, key_type: Type[K], value_type: Type[T]) -> None:
        self.namespace = namespace
        self._key_type = key_type
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    def _encode_key(self, key: Union[str, int]) -> str:
        # Integers are zero padded so keys sort numerically
        if self._key_type is int:
            return f"{self.namespace}{_SEP}{int(key):020d}"
        return f"{self.namespace}{_SEP}{key}"

    def _decode_key(self, raw: str) -> K:
        suffix = raw[len(self.namespace) + 1:]
        if self._key_type is int:
            return int(suffix)  # type: ignore[return-value]
        return suffix  # type: ignore[return-value]

    def may_load(self, storage: Storage, key: K) -> Optional[T]:
        raw = storage.get(self._encode_key(key))
        if raw is None:
            return None
        return self._adapter.validate_python(raw)

    def load(self, storage: Storage, key: K) -> T:
        value = self.may_load(storage, key)
        if value is None:
            raise NotFoundError(f"{self.namespace}[{key}] not found")
        return value

    def save(self, storage: Storage, key: K, value: T) -> None:
        storage.set(self._encode_key(key), self._adapter.dump_python(value, mode="json"))

    def remove(self, storage: Storage, key: K) -> None:
        storage.remove(self._encode_key(key))

    def range(
        self,
        storage: Storage,
        start_after: Optional[K] = None,
        limit: Optional[int] = None,
        reverse: bool = False,
    ) -> List[Tuple[K, T]]:
        bound = self._encode_key(start_after) if start_after is not None else None
        rows = storage.range(self.namespace + _SEP, bound, limit, reverse)
        return [
            (self._decode_key(key), self._adapter.validate_python(value))
            for key, value in rows
        ]
