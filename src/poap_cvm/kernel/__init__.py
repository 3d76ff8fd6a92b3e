"""
Kernel: the machinery of the host.

This module contains the execution infrastructure:
- schema: code, component, message, reply and event structures
- store: SQLite persistence with savepoint transactions
- storage: typed Item / Map helpers over component namespaces
- registry: code id -> component class
- vm: transactional execution with sub-messages and replies
- engine: the entry point shared by the CLI and the HTTP API

The kernel is distinct from lib/ (the vocabulary components use).
Kernel = machinery. Lib = language.
"""
from .schema import (
    CodeEntity,
    ComponentEntity,
    Env,
    EventRecord,
    MessageInfo,
    Reply,
    ReplyOn,
    Response,
    SubMsg,
    SubMsgFailure,
    SubMsgSuccess,
    WasmExecute,
    WasmInstantiate,
)
from .store import ChainStore
from .registry import CodeRegistry
from .vm import ComponentVM, ExecutionResult
from .engine import DispatchResult, HostEngine

__all__ = [
    # Schema
    "CodeEntity",
    "ComponentEntity",
    "Env",
    "EventRecord",
    "MessageInfo",
    "Reply",
    "ReplyOn",
    "Response",
    "SubMsg",
    "SubMsgFailure",
    "SubMsgSuccess",
    "WasmExecute",
    "WasmInstantiate",
    # Store
    "ChainStore",
    # Registry
    "CodeRegistry",
    # VM
    "ComponentVM",
    "ExecutionResult",
    # Engine
    "DispatchResult",
    "HostEngine",
]
