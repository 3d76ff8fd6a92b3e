from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CodeData(BaseModel):
    python_ref: str
    label: str
    description: Optional[str] = None


class CodeEntity(BaseModel):
    id: int
    type: str = "code"
    data: CodeData


class ComponentData(BaseModel):
    code_id: int
    label: str
    creator: str
    admin: Optional[str] = None
    created_height: int = 0


class ComponentEntity(BaseModel):
    """A deployed component: an address bound to a code id."""

    id: str
    type: str = "component"
    data: ComponentData

    @property
    def address(self) -> str:
        return self.id


class BlockInfo(BaseModel):
    height: int
    time: int  # seconds since epoch
    chain_id: str


class ContractInfo(BaseModel):
    address: str


class Env(BaseModel):
    block: BlockInfo
    contract: ContractInfo


class MessageInfo(BaseModel):
    sender: str


class Attribute(BaseModel):
    key: str
    value: str


class Event(BaseModel):
    type: str
    attributes: List[Attribute] = Field(default_factory=list)


# =============================================================================
# Messages between components
# =============================================================================


class WasmInstantiate(BaseModel):
    kind: Literal["instantiate"] = "instantiate"
    code_id: int
    msg: Dict[str, Any]
    label: str
    admin: Optional[str] = None


class WasmExecute(BaseModel):
    kind: Literal["execute"] = "execute"
    contract_addr: str
    msg: Dict[str, Any]


CosmosMsg = Union[WasmInstantiate, WasmExecute]


class ReplyOn(str, Enum):
    NEVER = "never"
    SUCCESS = "success"
    ERROR = "error"
    ALWAYS = "always"


class SubMsg(BaseModel):
    id: int = 0
    msg: CosmosMsg = Field(discriminator="kind")
    reply_on: ReplyOn = ReplyOn.NEVER

    @classmethod
    def new(cls, msg: CosmosMsg) -> "SubMsg":
        return cls(msg=msg)

    @classmethod
    def reply_on_success(cls, msg: CosmosMsg, id: int) -> "SubMsg":
        return cls(id=id, msg=msg, reply_on=ReplyOn.SUCCESS)


class SubMsgSuccess(BaseModel):
    status: Literal["ok"] = "ok"
    events: List[Event] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = None


class SubMsgFailure(BaseModel):
    status: Literal["error"] = "error"
    error: str


SubMsgResult = Union[SubMsgSuccess, SubMsgFailure]


class Reply(BaseModel):
    """The outcome of a sub-message, delivered at the ``reply`` entry point."""

    id: int
    result: SubMsgResult = Field(discriminator="status")

    @property
    def ok(self) -> bool:
        return isinstance(self.result, SubMsgSuccess)


class Response(BaseModel):
    attributes: List[Attribute] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    messages: List[SubMsg] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = None

    def add_attribute(self, key: str, value: Any) -> "Response":
        self.attributes.append(Attribute(key=key, value=str(value)))
        return self

    def add_message(self, msg: CosmosMsg) -> "Response":
        self.messages.append(SubMsg.new(msg))
        return self

    def add_submessage(self, submsg: SubMsg) -> "Response":
        self.messages.append(submsg)
        return self

    def set_data(self, data: Dict[str, Any]) -> "Response":
        self.data = data
        return self

    def attribute(self, key: str) -> Optional[str]:
        for attr in self.attributes:
            if attr.key == key:
                return attr.value
        return None


class ContractVersion(BaseModel):
    contract: str
    version: str


# =============================================================================
# Event log
# =============================================================================


class EventType(str, Enum):
    STORE_CODE = "store_code"
    INSTANTIATE = "instantiate"
    EXECUTE = "execute"
    REPLY = "reply"
    BLOCK = "block"


class EventOp(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class EventClock(BaseModel):
    actor: str
    seq: int


class EventRecord(BaseModel):
    id: str
    clock: EventClock
    type: EventType
    op: EventOp
    height: int = 0
    payload: Dict[str, Any] = Field(default_factory=dict)
