"""
Domain: Orchestration
Storage: pending (token -> PendingOperation), next_reply_id

Deploying a dependent component is asynchronous. ``begin_deploy`` records a
pending operation under a fresh correlation token and hands the host an
instantiate sub-message carrying that token as its id. The host later
resumes the component at ``reply`` with the same id, and
``ReplyCorrelator.resolve`` turns the outcome into the dependent's address
in the component's config.

Continuations are plain rows in the pending table, so they survive the
transaction boundary the host resumes across.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from ..kernel.deps import Api
from ..kernel.errors import CorrelationError, DeployFailedError, ValidationError
from ..kernel.schema import Reply, SubMsg, SubMsgFailure, WasmInstantiate
from ..kernel.storage import Item, Map
from .config_store import ConfigStore

logger = logging.getLogger(__name__)

# Sentinel for "no code stored"
UNSET_CODE_ID = 0


class PendingOperation(BaseModel):
    """What a reply token stands for."""

    kind: str
    code_id: int
    label: str
    address_field: str


PENDING: Map[int, PendingOperation] = Map("pending", int, PendingOperation)
NEXT_REPLY_ID: Item[int] = Item("next_reply_id", int)


@dataclass
class DeployIntent:
    token: int
    submsg: SubMsg


@dataclass
class ResolvedDeploy:
    token: int
    operation: PendingOperation
    address: str


class InstantiationOrchestrator:
    def __init__(self, configs: ConfigStore) -> None:
        self._configs = configs
        self._storage = configs.storage

    def allocate_token(self) -> int:
        """Tokens start at 1 and are never reused."""
        token = NEXT_REPLY_ID.may_load(self._storage) or 1
        NEXT_REPLY_ID.save(self._storage, token + 1)
        return token

    def begin_deploy(
        self,
        kind: str,
        code_id: int,
        init_msg: Union[BaseModel, Dict[str, Any]],
        label: str,
        placeholder: BaseModel,
        address_field: str,
        admin: Optional[str] = None,
    ) -> DeployIntent:
        """
        Persist ``placeholder`` (whose ``address_field`` must still be empty)
        and return the instantiate sub-message to attach to the response.
        """
        if code_id == UNSET_CODE_ID:
            raise ValidationError(f"invalid {kind} code id: {code_id}")
        if getattr(placeholder, address_field):
            raise ValidationError(f"{address_field} must be empty before deploying")

        self._configs.save(placeholder)
        token = self.allocate_token()
        PENDING.save(
            self._storage,
            token,
            PendingOperation(kind=kind, code_id=code_id, label=label, address_field=address_field),
        )
        payload = init_msg.model_dump(mode="json") if isinstance(init_msg, BaseModel) else dict(init_msg)
        logger.debug("deploy %s (code %d) pending under token %d", kind, code_id, token)
        return DeployIntent(
            token=token,
            submsg=SubMsg.reply_on_success(
                WasmInstantiate(code_id=code_id, msg=payload, label=label, admin=admin),
                token,
            ),
        )

    def pending(self) -> List[Tuple[int, PendingOperation]]:
        return PENDING.range(self._storage)


class ReplyCorrelator:
    def __init__(self, configs: ConfigStore, api: Api) -> None:
        self._configs = configs
        self._storage = configs.storage
        self._api = api

    def resolve(self, reply: Reply) -> ResolvedDeploy:
        operation = PENDING.may_load(self._storage, reply.id)
        if operation is None:
            raise CorrelationError(f"no pending operation for reply id {reply.id}", token=reply.id)

        if isinstance(reply.result, SubMsgFailure):
            raise DeployFailedError(
                f"{operation.kind} deploy failed: {reply.result.error}", token=reply.id
            )

        config = self._configs.load()
        if getattr(config, operation.address_field):
            raise CorrelationError(
                f"{operation.address_field} already resolved", token=reply.id
            )

        data = reply.result.data or {}
        address = data.get("contract_address")
        if not address:
            raise ValidationError(f"reply {reply.id} carries no contract address")
        address = self._api.addr_validate(address)

        self._configs.save(config.model_copy(update={operation.address_field: address}))
        PENDING.remove(self._storage, reply.id)
        logger.info("%s resolved to %s (token %d)", operation.kind, address, reply.id)
        return ResolvedDeploy(token=reply.id, operation=operation, address=address)
