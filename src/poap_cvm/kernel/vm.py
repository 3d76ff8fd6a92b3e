"""
Component Virtual Machine: the transactional host.

A top-level call runs the target entry point, then the sub-messages its
``Response`` attached, in order and depth-first. Each sub-message runs in a
nested savepoint. When it fails and the caller did not ask for an error
reply, the failure propagates and the whole top-level call is rolled back.
Replies are delivered to the caller's ``reply`` entry point carrying the
sub-message id, which components use as a correlation token.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .deps import Api, CustomQuery, Deps, Querier
from .errors import ContractError, HostError, NotFoundError, TransportError, error_kind
from .registry import CodeRegistry, Component
from .schema import (
    Attribute,
    BlockInfo,
    CodeData,
    ComponentData,
    ComponentEntity,
    ContractInfo,
    CosmosMsg,
    Env,
    Event,
    EventClock,
    EventOp,
    EventRecord,
    EventType,
    MessageInfo,
    Reply,
    ReplyOn,
    Response,
    SubMsgFailure,
    SubMsgSuccess,
    WasmExecute,
    WasmInstantiate,
)
from .storage import Storage
from .store import ChainStore

logger = logging.getLogger(__name__)

GENESIS_TIME = 1_571_797_419  # seconds
BLOCK_INTERVAL = 5  # seconds per block
MAX_CALL_DEPTH = 16


@dataclass
class ExecutionResult:
    """Outcome of a successful top-level call."""

    events: List[Event] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    address: Optional[str] = None

    def attributes(self, event_type: str = "wasm") -> List[Attribute]:
        found: List[Attribute] = []
        for event in self.events:
            if event.type == event_type:
                found.extend(event.attributes)
        return found


class ComponentVM:
    def __init__(
        self,
        store: ChainStore,
        registry: CodeRegistry,
        domain_channel: Optional[CustomQuery] = None,
        chain_id: str = "poap-local",
    ) -> None:
        self.store = store
        self.registry = registry
        self._domain_channel = domain_channel
        self._chain_id = chain_id
        self._api = Api()
        self._depth = 0

    # =========================================================================
    # Clock
    # =========================================================================

    def block(self) -> BlockInfo:
        return BlockInfo(
            height=int(self.store.get_meta("block_height", 1)),
            time=int(self.store.get_meta("block_time", GENESIS_TIME)),
            chain_id=self._chain_id,
        )

    def set_block(self, time: Optional[int] = None, height: Optional[int] = None) -> BlockInfo:
        if time is not None:
            self.store.set_meta("block_time", int(time))
        if height is not None:
            self.store.set_meta("block_height", int(height))
        block = self.block()
        self._record(EventType.BLOCK, EventOp.SUCCESS, "host", block.model_dump())
        return block

    def advance(self, blocks: int = 1) -> BlockInfo:
        current = self.block()
        return self.set_block(
            time=current.time + blocks * BLOCK_INTERVAL,
            height=current.height + blocks,
        )

    # =========================================================================
    # Code
    # =========================================================================

    def store_code(self, python_ref: str, label: str, description: Optional[str] = None) -> int:
        with self.store.transaction():
            entity = self.store.save_code(
                CodeData(python_ref=python_ref, label=label, description=description)
            )
        self.registry.register_from_entity(entity)
        self._record(
            EventType.STORE_CODE,
            EventOp.SUCCESS,
            "host",
            {"code_id": entity.id, "python_ref": python_ref},
        )
        logger.info("stored code %s (%s) as id %d", label, python_ref, entity.id)
        return entity.id

    # =========================================================================
    # Top-level calls
    # =========================================================================

    def instantiate(
        self,
        code_id: int,
        sender: str,
        msg: Dict[str, Any],
        label: str,
        admin: Optional[str] = None,
    ) -> ExecutionResult:
        def run() -> ExecutionResult:
            address, events, data = self._instantiate(code_id, sender, msg, label, admin)
            return ExecutionResult(events=events, data=data, address=address)

        payload = {"code_id": code_id, "sender": sender, "msg": msg, "label": label}
        return self._top_level(EventType.INSTANTIATE, sender, payload, run)

    def execute(self, contract_addr: str, sender: str, msg: Dict[str, Any]) -> ExecutionResult:
        def run() -> ExecutionResult:
            events, data = self._execute(contract_addr, sender, msg)
            return ExecutionResult(events=events, data=data, address=contract_addr)

        payload = {"contract": contract_addr, "sender": sender, "msg": msg}
        return self._top_level(EventType.EXECUTE, sender, payload, run)

    def reply(self, contract_addr: str, reply: Reply) -> ExecutionResult:
        """Deliver ``reply`` to a component as its own top-level call."""

        def run() -> ExecutionResult:
            events, data = self._reply(contract_addr, reply)
            return ExecutionResult(events=events, data=data, address=contract_addr)

        payload = {"contract": contract_addr, "reply": reply.model_dump(mode="json")}
        return self._top_level(EventType.REPLY, contract_addr, payload, run)

    def query(self, contract_addr: str, msg: Dict[str, Any]) -> Dict[str, Any]:
        component, _ = self._load(contract_addr)
        deps = self._deps(contract_addr)
        return component.query(deps, self._env(contract_addr), msg)

    def custom_query(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Forward a domain query envelope to the out-of-process service."""
        if self._domain_channel is None:
            raise TransportError("domain query service unavailable")
        try:
            return self._domain_channel(request)
        except ContractError:
            raise
        except Exception as exc:
            raise TransportError(f"domain query failed: {exc}") from exc

    def _top_level(
        self,
        event_type: EventType,
        actor: str,
        payload: Dict[str, Any],
        run: Callable[[], ExecutionResult],
    ) -> ExecutionResult:
        try:
            with self.store.transaction():
                result = run()
        except Exception as exc:
            logger.warning("%s by %s reverted: %s", event_type.value, actor, exc)
            self._record(
                event_type,
                EventOp.ERROR,
                actor,
                {**payload, "error_kind": error_kind(exc), "error_message": str(exc)},
            )
            raise
        self._record(
            event_type,
            EventOp.SUCCESS,
            actor,
            {**payload, "address": result.address, "data": result.data},
        )
        return result

    def _record(self, event_type: EventType, op: EventOp, actor: str, payload: Dict[str, Any]) -> None:
        seq = self.store.next_sequence("event")
        self.store.append(
            EventRecord(
                id=f"event-{uuid.uuid4()}",
                clock=EventClock(actor=actor, seq=seq),
                type=event_type,
                op=op,
                height=self.block().height,
                payload=payload,
            )
        )

    # =========================================================================
    # Entry points
    # =========================================================================

    def _instantiate(
        self,
        code_id: int,
        sender: str,
        msg: Dict[str, Any],
        label: str,
        admin: Optional[str],
    ) -> Tuple[str, List[Event], Dict[str, Any]]:
        component = self.registry.resolve(code_id)
        address = f"contract{self.store.next_sequence('contract')}"
        self.store.save_component(
            ComponentEntity(
                id=address,
                data=ComponentData(
                    code_id=code_id,
                    label=label,
                    creator=sender,
                    admin=admin,
                    created_height=self.block().height,
                ),
            )
        )
        logger.debug("instantiating code %d at %s for %s", code_id, address, sender)

        with self._frame():
            response = component.instantiate(
                self._deps(address), self._env(address), MessageInfo(sender=sender), msg
            )
            events = [
                Event(
                    type="instantiate",
                    attributes=[
                        Attribute(key="_contract_address", value=address),
                        Attribute(key="code_id", value=str(code_id)),
                    ],
                )
            ]
            sub_events, data = self._finish(address, response)

        events.extend(sub_events)
        return address, events, {"contract_address": address, "data": data}

    def _execute(
        self, contract_addr: str, sender: str, msg: Dict[str, Any]
    ) -> Tuple[List[Event], Optional[Dict[str, Any]]]:
        component, _ = self._load(contract_addr)
        logger.debug("executing %s from %s: %s", contract_addr, sender, msg)
        with self._frame():
            response = component.execute(
                self._deps(contract_addr),
                self._env(contract_addr),
                MessageInfo(sender=sender),
                msg,
            )
            events = [
                Event(
                    type="execute",
                    attributes=[Attribute(key="_contract_address", value=contract_addr)],
                )
            ]
            sub_events, data = self._finish(contract_addr, response)
        events.extend(sub_events)
        return events, data

    def _reply(
        self, contract_addr: str, reply: Reply
    ) -> Tuple[List[Event], Optional[Dict[str, Any]]]:
        component, entity = self._load(contract_addr)
        handler = getattr(component, "reply", None)
        if handler is None:
            raise HostError(f"code {entity.data.code_id} has no reply entry point")
        logger.debug("reply %d to %s (ok=%s)", reply.id, contract_addr, reply.ok)
        with self._frame():
            response = handler(self._deps(contract_addr), self._env(contract_addr), reply)
            events = [
                Event(
                    type="reply",
                    attributes=[
                        Attribute(key="_contract_address", value=contract_addr),
                        Attribute(key="mode", value="handle_success" if reply.ok else "handle_failure"),
                    ],
                )
            ]
            sub_events, data = self._finish(contract_addr, response)
        events.extend(sub_events)
        return events, data

    # =========================================================================
    # Sub-messages
    # =========================================================================

    def _finish(
        self, contract_addr: str, response: Any
    ) -> Tuple[List[Event], Optional[Dict[str, Any]]]:
        """Emit the response's events, then run its sub-messages."""
        if not isinstance(response, Response):
            raise HostError(f"{contract_addr} returned {type(response).__name__}, not a Response")

        events: List[Event] = []
        if response.attributes:
            events.append(
                Event(
                    type="wasm",
                    attributes=[Attribute(key="_contract_address", value=contract_addr)]
                    + list(response.attributes),
                )
            )
        for event in response.events:
            events.append(
                Event(
                    type=f"wasm-{event.type}",
                    attributes=[Attribute(key="_contract_address", value=contract_addr)]
                    + list(event.attributes),
                )
            )

        data = response.data
        for submsg in response.messages:
            try:
                with self.store.transaction():
                    sub_events, sub_data = self._dispatch(contract_addr, submsg.msg)
            except ContractError as exc:
                if submsg.reply_on not in (ReplyOn.ERROR, ReplyOn.ALWAYS):
                    raise
                logger.info("sub-message %d of %s failed, replying: %s", submsg.id, contract_addr, exc)
                failure = Reply(
                    id=submsg.id,
                    result=SubMsgFailure(error=f"{exc.kind}: {exc.message}"),
                )
                reply_events, reply_data = self._reply(contract_addr, failure)
                events.extend(reply_events)
                if reply_data is not None:
                    data = reply_data
                continue

            events.extend(sub_events)
            if submsg.reply_on in (ReplyOn.SUCCESS, ReplyOn.ALWAYS):
                success = Reply(
                    id=submsg.id,
                    result=SubMsgSuccess(events=sub_events, data=sub_data),
                )
                reply_events, reply_data = self._reply(contract_addr, success)
                events.extend(reply_events)
                if reply_data is not None:
                    data = reply_data
        return events, data

    def _dispatch(
        self, sender: str, msg: CosmosMsg
    ) -> Tuple[List[Event], Optional[Dict[str, Any]]]:
        if isinstance(msg, WasmInstantiate):
            _, events, data = self._instantiate(msg.code_id, sender, msg.msg, msg.label, msg.admin)
            return events, data
        if isinstance(msg, WasmExecute):
            return self._execute(msg.contract_addr, sender, msg.msg)
        raise HostError(f"unsupported message: {type(msg).__name__}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load(self, contract_addr: str) -> Tuple[Component, ComponentEntity]:
        entity = self.store.load_component(contract_addr)
        if entity is None:
            raise NotFoundError(f"no component at {contract_addr}")
        return self.registry.resolve(entity.data.code_id), entity

    def _deps(self, contract_addr: str) -> Deps:
        return Deps(
            storage=Storage(self.store, contract_addr),
            api=self._api,
            querier=Querier(smart=self.query, custom=self.custom_query),
        )

    def _env(self, contract_addr: str) -> Env:
        return Env(block=self.block(), contract=ContractInfo(address=contract_addr))

    def _frame(self) -> "_CallFrame":
        return _CallFrame(self)


class _CallFrame:
    """Bounds the nesting of sub-messages."""

    def __init__(self, vm: ComponentVM) -> None:
        self._vm = vm

    def __enter__(self) -> None:
        if self._vm._depth >= MAX_CALL_DEPTH:
            raise HostError(f"call depth exceeded ({MAX_CALL_DEPTH})")
        self._vm._depth += 1

    def __exit__(self, *exc: Any) -> None:
        self._vm._depth -= 1
