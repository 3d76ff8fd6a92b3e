from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module
from typing import Any, Dict, Optional, Protocol

from .errors import HostError
from .schema import CodeEntity
from .store import ChainStore


class Component(Protocol):
    """Entry points every deployable component implements."""

    def instantiate(self, deps: Any, env: Any, info: Any, msg: Dict[str, Any]) -> Any: ...

    def execute(self, deps: Any, env: Any, info: Any, msg: Dict[str, Any]) -> Any: ...

    def query(self, deps: Any, env: Any, msg: Dict[str, Any]) -> Dict[str, Any]: ...


@dataclass
class CodeRecord:
    entity: CodeEntity
    component: Optional[Component]


class CodeRegistry:
    """Code id -> component instance, resolved from the code's ``python_ref``."""

    def __init__(self) -> None:
        self._registry: Dict[int, CodeRecord] = {}

    def register_from_entity(self, entity: CodeEntity) -> None:
        component: Optional[Component] = None
        python_ref = entity.data.python_ref
        try:
            module_name, class_name = python_ref.rsplit(".", 1)
            component_cls = getattr(import_module(module_name), class_name)
            component = component_cls()
        except (ImportError, AttributeError, ValueError, TypeError):
            component = None

        self._registry[entity.id] = CodeRecord(entity=entity, component=component)

    def register(self, entity: CodeEntity, component: Component) -> None:
        """Bind an already constructed component, bypassing ``python_ref``."""
        self._registry[entity.id] = CodeRecord(entity=entity, component=component)

    def get(self, code_id: int) -> CodeRecord:
        try:
            return self._registry[code_id]
        except KeyError:
            raise HostError(f"unknown code id: {code_id}") from None

    def resolve(self, code_id: int) -> Component:
        record = self.get(code_id)
        if record.component is None:
            raise HostError(
                f"code {code_id} could not be loaded from {record.entity.data.python_ref}"
            )
        return record.component

    def __contains__(self, code_id: object) -> bool:
        return code_id in self._registry


def hydrate_codes(store: ChainStore, registry: CodeRegistry) -> None:
    """Load every stored code into the registry."""
    for entity in store.iter_codes():
        registry.register_from_entity(entity)
