"""
PoapManager: deploys a Poap with itself as minter and lets users claim.

A claim is admitted when the domain service knows the sender's profile; the
manager keeps no quota of its own and forwards ``mint_to`` to the Poap,
which applies its own admission rules.
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field

from .. import __version__
from ..kernel.deps import Deps
from ..kernel.errors import ValidationError
from ..kernel.schema import Env, MessageInfo, Reply, Response, WasmExecute
from ..kernel.storage import Item
from ..kernel.tagged import TaggedUnion, load_model
from ..lib.admission import EligibilityGate, require_admin, update_admin
from ..lib.config_store import ConfigStore
from ..lib.orchestrator import InstantiationOrchestrator, ReplyCorrelator
from ..lib.version import set_contract_version
from ..query.codec import WireShape
from ..query.querier import QueryRouter
from ..query.types import DomainRoute
from .poap import InstantiateMsg as PoapInstantiateMsg

CONTRACT_NAME = "poap-cvm:poap-manager"

DEPLOY_POAP = "instantiate_poap"


# =============================================================================
# Messages
# =============================================================================


class InstantiateMsg(BaseModel):
    admin: str
    poap_code_id: int
    poap_instantiate_msg: PoapInstantiateMsg
    # Envelope shape per domain route, overriding the defaults
    query_shapes: Dict[DomainRoute, WireShape] = Field(default_factory=dict)


class Claim(BaseModel):
    """Mint a POAP for the sender if they have a profile."""


class MintTo(BaseModel):
    """Mint a POAP for ``recipient``. Admin only."""

    recipient: str


class UpdateAdmin(BaseModel):
    new_admin: str


EXECUTE = TaggedUnion(
    "PoapManagerExecuteMsg",
    {"claim": Claim, "mint_to": MintTo, "update_admin": UpdateAdmin},
)


class ConfigQuery(BaseModel):
    pass


QUERY = TaggedUnion("PoapManagerQueryMsg", {"config": ConfigQuery})


# =============================================================================
# State
# =============================================================================


class ManagerConfig(BaseModel):
    admin: str
    poap_code_id: int
    poap_address: str = ""
    query_shapes: Dict[DomainRoute, WireShape] = Field(default_factory=dict)


CONFIG: Item[ManagerConfig] = Item("config", ManagerConfig)


def _configs(deps: Deps) -> ConfigStore[ManagerConfig]:
    return ConfigStore(deps.storage, CONFIG)


def _forward_mint(config: ManagerConfig, recipient: str) -> WasmExecute:
    if not config.poap_address:
        raise ValidationError("poap not deployed yet")
    return WasmExecute(contract_addr=config.poap_address, msg={"mint_to": {"recipient": recipient}})


class PoapManager:
    def instantiate(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        init = load_model(InstantiateMsg, msg)
        set_contract_version(deps.storage, CONTRACT_NAME, __version__)
        admin = deps.api.addr_validate(init.admin)

        poap_msg = init.poap_instantiate_msg.model_copy(update={"minter": env.contract.address})
        intent = InstantiationOrchestrator(_configs(deps)).begin_deploy(
            DEPLOY_POAP,
            init.poap_code_id,
            poap_msg,
            label="poap",
            placeholder=ManagerConfig(
                admin=admin,
                poap_code_id=init.poap_code_id,
                query_shapes=init.query_shapes,
            ),
            address_field="poap_address",
        )
        return (
            Response()
            .add_attribute("action", "instantiate")
            .add_attribute("admin", admin)
            .add_attribute("poap_code_id", init.poap_code_id)
            .add_submessage(intent.submsg)
        )

    def reply(self, deps: Deps, env: Env, reply: Reply) -> Response:
        resolved = ReplyCorrelator(_configs(deps), deps.api).resolve(reply)
        return (
            Response()
            .add_attribute("action", f"{resolved.operation.kind}_reply")
            .add_attribute("poap_address", resolved.address)
        )

    def execute(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        action = EXECUTE.load(msg)
        config = _configs(deps).load()
        sender = info.sender

        if isinstance(action, Claim):
            router = QueryRouter(deps.querier.query_custom, config.query_shapes)
            EligibilityGate(router).check(sender)
            return (
                Response()
                .add_attribute("action", "claim")
                .add_attribute("sender", sender)
                .add_message(_forward_mint(config, sender))
            )

        if isinstance(action, MintTo):
            require_admin(config, sender)
            recipient = deps.api.addr_validate(action.recipient)
            return (
                Response()
                .add_attribute("action", "mint_to")
                .add_attribute("sender", sender)
                .add_attribute("recipient", recipient)
                .add_message(_forward_mint(config, recipient))
            )

        update_admin(_configs(deps), deps.api, sender, action.new_admin)
        return (
            Response()
            .add_attribute("action", "update_admin")
            .add_attribute("new_admin", action.new_admin)
        )

    def query(self, deps: Deps, env: Env, msg: Dict[str, Any]) -> Dict[str, Any]:
        QUERY.load(msg)
        config = CONFIG.load(deps.storage)
        return {
            "admin": config.admin,
            "poap_code_id": config.poap_code_id,
            "poap_contract_address": config.poap_address,
        }
