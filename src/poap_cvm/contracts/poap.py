"""
Poap: proof-of-attendance minting for a single event.

Instantiating deploys a ``TokenCollection`` with this component as its
minter and learns the collection address from the deploy reply. Minting is
gated by ``AdmissionController``; admitted mints are forwarded to the
collection, which assigns the token id.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .. import __version__
from ..kernel.deps import Deps
from ..kernel.schema import Env, MessageInfo, Reply, Response
from ..kernel.storage import Item, Map
from ..kernel.tagged import TaggedUnion, load_model
from ..lib.admission import AdmissionController, EventInfo, MintPolicy, update_admin
from ..lib.config_store import ConfigStore
from ..lib.orchestrator import InstantiationOrchestrator, ReplyCorrelator
from ..lib.version import set_contract_version

logger = logging.getLogger(__name__)

CONTRACT_NAME = "poap-cvm:poap"

DEPLOY_COLLECTION = "instantiate_collection"


# =============================================================================
# Messages
# =============================================================================


class CollectionInstantiateMsg(BaseModel):
    name: str
    symbol: str
    # Replaced by the POAP address on deploy
    minter: str = ""


class InstantiateMsg(BaseModel):
    admin: str
    minter: str
    collection_code_id: int
    collection_instantiate_msg: CollectionInstantiateMsg
    event_info: EventInfo
    policy: MintPolicy = Field(default_factory=MintPolicy)


class EnableMint(BaseModel):
    """Allow minting. Admin only."""


class DisableMint(BaseModel):
    """Stop minting, when the policy allows it. Admin only."""


class Mint(BaseModel):
    """Mint a POAP for the sender."""


class MintTo(BaseModel):
    """Mint a POAP for ``recipient``. Admin or minter only."""

    recipient: str


class UpdateAdmin(BaseModel):
    new_admin: str


class UpdateMinter(BaseModel):
    new_minter: str


EXECUTE = TaggedUnion(
    "PoapExecuteMsg",
    {
        "enable_mint": EnableMint,
        "disable_mint": DisableMint,
        "mint": Mint,
        "mint_to": MintTo,
        "update_admin": UpdateAdmin,
        "update_minter": UpdateMinter,
    },
)


class ConfigQuery(BaseModel):
    pass


class EventInfoQuery(BaseModel):
    pass


class MintedAmount(BaseModel):
    user: str


class Tokens(BaseModel):
    """Tokens owned by ``owner``, answered by the collection."""

    owner: str
    start_after: Optional[str] = None
    limit: Optional[int] = None


class AllNftInfo(BaseModel):
    """Owner and metadata of a token, answered by the collection."""

    token_id: str


QUERY = TaggedUnion(
    "PoapQueryMsg",
    {
        "config": ConfigQuery,
        "event_info": EventInfoQuery,
        "minted_amount": MintedAmount,
        "tokens": Tokens,
        "all_nft_info": AllNftInfo,
    },
)


# =============================================================================
# State
# =============================================================================


class PoapConfig(BaseModel):
    admin: str
    minter: str
    mint_enabled: bool = False
    collection_code_id: int
    collection_address: str = ""
    policy: MintPolicy = Field(default_factory=MintPolicy)


CONFIG: Item[PoapConfig] = Item("config", PoapConfig)
EVENT_INFO: Item[EventInfo] = Item("event_info", EventInfo)
MINTER_ADDRESS: Map[str, int] = Map("minter_address", str, int)


def _configs(deps: Deps) -> ConfigStore[PoapConfig]:
    return ConfigStore(deps.storage, CONFIG, MINTER_ADDRESS)


def _admission(deps: Deps) -> AdmissionController:
    return AdmissionController(_configs(deps), EVENT_INFO.load(deps.storage), deps.api)


class Poap:
    def instantiate(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        init = load_model(InstantiateMsg, msg)
        set_contract_version(deps.storage, CONTRACT_NAME, __version__)

        admin = deps.api.addr_validate(init.admin)
        minter = deps.api.addr_validate(init.minter)
        init.event_info.validate_event(deps.api)
        EVENT_INFO.save(deps.storage, init.event_info)

        collection_msg = init.collection_instantiate_msg.model_copy(
            update={"minter": env.contract.address}
        )
        intent = InstantiationOrchestrator(_configs(deps)).begin_deploy(
            DEPLOY_COLLECTION,
            init.collection_code_id,
            collection_msg,
            label="poap-collection",
            placeholder=PoapConfig(
                admin=admin,
                minter=minter,
                collection_code_id=init.collection_code_id,
                policy=init.policy,
            ),
            address_field="collection_address",
        )
        return (
            Response()
            .add_attribute("action", "instantiate")
            .add_attribute("admin", admin)
            .add_attribute("minter", minter)
            .add_attribute("collection_code_id", init.collection_code_id)
            .add_submessage(intent.submsg)
        )

    def reply(self, deps: Deps, env: Env, reply: Reply) -> Response:
        resolved = ReplyCorrelator(_configs(deps), deps.api).resolve(reply)
        return (
            Response()
            .add_attribute("action", f"{resolved.operation.kind}_reply")
            .add_attribute("collection_address", resolved.address)
        )

    def execute(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        action = EXECUTE.load(msg)
        sender = info.sender
        now = env.block.time

        if isinstance(action, EnableMint):
            changed = _admission(deps).enable(sender)
            return Response().add_attribute("action", "enable_mint").add_attribute("changed", changed)

        if isinstance(action, DisableMint):
            changed = _admission(deps).disable(sender)
            return Response().add_attribute("action", "disable_mint").add_attribute("changed", changed)

        if isinstance(action, Mint):
            forward = _admission(deps).mint(sender, now)
            return (
                Response()
                .add_attribute("action", "mint")
                .add_attribute("sender", sender)
                .add_message(forward)
            )

        if isinstance(action, MintTo):
            forward = _admission(deps).mint_to(sender, action.recipient, now)
            return (
                Response()
                .add_attribute("action", "mint_to")
                .add_attribute("sender", sender)
                .add_attribute("recipient", action.recipient)
                .add_message(forward)
            )

        if isinstance(action, UpdateAdmin):
            update_admin(_configs(deps), deps.api, sender, action.new_admin)
            return (
                Response()
                .add_attribute("action", "update_admin")
                .add_attribute("new_admin", action.new_admin)
            )

        _admission(deps).update_minter(sender, action.new_minter)
        return (
            Response()
            .add_attribute("action", "update_minter")
            .add_attribute("new_minter", action.new_minter)
        )

    def query(self, deps: Deps, env: Env, msg: Dict[str, Any]) -> Dict[str, Any]:
        query = QUERY.load(msg)
        if isinstance(query, ConfigQuery):
            return CONFIG.load(deps.storage).model_dump(mode="json")
        if isinstance(query, EventInfoQuery):
            return EVENT_INFO.load(deps.storage).model_dump(mode="json")
        if isinstance(query, MintedAmount):
            user = deps.api.addr_validate(query.user)
            return {"user": user, "amount": _configs(deps).load_counter(user)}

        collection = CONFIG.load(deps.storage).collection_address
        return deps.querier.query_wasm_smart(collection, QUERY.dump(query))
