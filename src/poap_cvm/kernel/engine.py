"""
HostEngine: the single entry point for the CLI and the HTTP API.

    CLI ────┐
            ├──> HostEngine.dispatch() ──> ComponentVM ──> components
    API ────┘

The engine owns the store, the code registry and the VM, and turns every
outcome into a ``DispatchResult`` so interfaces never handle exceptions
themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .deps import CustomQuery
from .errors import ContractError, HostError, ValidationError
from .registry import CodeRegistry, hydrate_codes
from .store import ChainStore
from .vm import ComponentVM

logger = logging.getLogger(__name__)


class Intent(Enum):
    """The calls an interface can dispatch."""
    INSTANTIATE = "instantiate"
    EXECUTE = "execute"
    QUERY = "query"
    BLOCK = "block"


@dataclass
class DispatchResult:
    """Result of a dispatch operation."""
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {"ok": self.ok, "data": self.data}
        if not self.ok:
            result["error_kind"] = self.error_kind
            result["error_message"] = self.error_message
        return result


class HostEngine:
    """
    Example:
        engine = HostEngine("poap-cvm.db")
        result = engine.dispatch("query", {"contract": "contract0", "msg": {"config": {}}})
    """

    def __init__(
        self,
        db_path: str,
        domain_channel: Optional[CustomQuery] = None,
        chain_id: str = "poap-local",
        create: bool = False,
    ):
        """
        Args:
            db_path: Path to the host SQLite database.
            domain_channel: Synchronous channel to the domain query service.
            chain_id: Reported in every block.
            create: Create the database when missing instead of failing.
        """
        self.db_path = db_path
        self.domain_channel = domain_channel
        self._chain_id = chain_id
        self._create = create
        self._store: Optional[ChainStore] = None
        self._vm: Optional[ComponentVM] = None

    def _ensure_hydrated(self) -> None:
        """Lazily open the store and load stored code."""
        if self._vm is not None:
            return

        if not self._create and self.db_path != ":memory:" and not Path(self.db_path).exists():
            raise FileNotFoundError(f"Database not found: {self.db_path}")

        self._store = ChainStore(self.db_path)
        registry = CodeRegistry()
        hydrate_codes(self._store, registry)
        self._vm = ComponentVM(
            self._store,
            registry,
            domain_channel=self.domain_channel,
            chain_id=self._chain_id,
        )

    @property
    def store(self) -> ChainStore:
        self._ensure_hydrated()
        assert self._store is not None
        return self._store

    @property
    def vm(self) -> ComponentVM:
        self._ensure_hydrated()
        assert self._vm is not None
        return self._vm

    def list_codes(self) -> List[Dict[str, Any]]:
        return [
            {"code_id": code.id, **code.data.model_dump()}
            for code in self.store.iter_codes()
        ]

    def list_components(self) -> List[Dict[str, Any]]:
        return [
            {
                "address": component.address,
                **component.data.model_dump(),
                "version": self.store.kv_get(component.address, "contract_info"),
            }
            for component in self.store.iter_components()
        ]

    def list_events(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return [event.model_dump(mode="json") for event in self.store.iter_events(limit)]

    def dispatch(
        self,
        intent: str,
        inputs: Optional[Dict[str, Any]] = None,
        sender: Optional[str] = None,
        output_sink: Optional[Callable[[str], None]] = None,
    ) -> DispatchResult:
        """
        Resolve ``intent`` and run it against the VM.

        Args:
            intent: One of ``instantiate``, ``execute``, ``query``, ``block``.
            inputs: Intent parameters (code_id/msg/label, contract/msg, time/height).
            sender: Acting address for instantiate and execute.
            output_sink: Receives a one-line summary of the outcome.

        Returns:
            DispatchResult containing success/failure and data.
        """
        inputs = inputs or {}
        try:
            resolved = Intent(intent)
        except ValueError:
            return DispatchResult(
                ok=False,
                error_kind="intent_not_found",
                error_message=f"Could not resolve intent: {intent}",
            )

        try:
            data = self._run(resolved, inputs, sender)
        except ContractError as exc:
            result = DispatchResult(ok=False, error_kind=exc.kind, error_message=exc.message)
        except FileNotFoundError as exc:
            result = DispatchResult(ok=False, error_kind="database_not_found", error_message=str(exc))
        except Exception as exc:
            logger.exception("%s failed unexpectedly", intent)
            result = DispatchResult(ok=False, error_kind="execution_error", error_message=str(exc))
        else:
            result = DispatchResult(ok=True, data=data)

        if output_sink:
            if result.ok:
                output_sink(f"✓ {intent}")
            else:
                output_sink(f"✗ {intent}: [{result.error_kind}] {result.error_message}")
        return result

    def _run(self, intent: Intent, inputs: Dict[str, Any], sender: Optional[str]) -> Dict[str, Any]:
        vm = self.vm
        if intent is Intent.QUERY:
            return vm.query(_require(inputs, "contract"), _require(inputs, "msg"))

        if intent is Intent.BLOCK:
            if inputs.get("advance"):
                block = vm.advance(int(inputs["advance"]))
            else:
                block = vm.set_block(time=inputs.get("time"), height=inputs.get("height"))
            return block.model_dump()

        if not sender:
            raise ValidationError(f"{intent.value} requires a sender")

        if intent is Intent.INSTANTIATE:
            result = vm.instantiate(
                code_id=int(_require(inputs, "code_id")),
                sender=sender,
                msg=_require(inputs, "msg"),
                label=inputs.get("label") or f"code-{inputs['code_id']}",
                admin=inputs.get("admin"),
            )
        elif intent is Intent.EXECUTE:
            result = vm.execute(_require(inputs, "contract"), sender, _require(inputs, "msg"))
        else:
            raise HostError(f"unhandled intent: {intent.value}")

        return {
            "address": result.address,
            "data": result.data,
            "events": [event.model_dump() for event in result.events],
        }

    def close(self) -> None:
        """Close the engine and release resources."""
        if self._store:
            self._store.close()
            self._store = None
        self._vm = None


def _require(inputs: Dict[str, Any], key: str) -> Any:
    if key not in inputs or inputs[key] is None:
        raise ValidationError(f"missing input: {key}")
    return inputs[key]
