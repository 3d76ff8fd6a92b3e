"""
Domain: Config
Storage: config item + per-actor counter map

The singleton configuration of a component and its per-actor counters,
loaded and saved explicitly within one call. Key layout stays with the
``Item`` / ``Map`` declarations the component passes in.
"""
from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from ..kernel.errors import HostError, ValidationError
from ..kernel.storage import Item, Map, Storage

C = TypeVar("C", bound=BaseModel)


class ConfigStore(Generic[C]):
    def __init__(
        self,
        storage: Storage,
        config: Item[C],
        counters: Optional[Map[str, int]] = None,
    ) -> None:
        self.storage = storage
        self._config = config
        self._counters = counters

    def load(self) -> C:
        return self._config.load(self.storage)

    def may_load(self) -> Optional[C]:
        return self._config.may_load(self.storage)

    def save(self, config: C) -> None:
        self._config.save(self.storage, config)

    def load_counter(self, actor: str) -> int:
        return self._counter_map().may_load(self.storage, actor) or 0

    def save_counter(self, actor: str, count: int) -> None:
        """Counters never go down."""
        current = self.load_counter(actor)
        if count < current:
            raise ValidationError(
                f"counter of {actor} cannot decrease from {current} to {count}"
            )
        self._counter_map().save(self.storage, actor, count)

    def _counter_map(self) -> Map[str, int]:
        if self._counters is None:
            raise HostError("this config store keeps no counters")
        return self._counters
