"""
TokenCollection: a minimal non-fungible token collection.

Only the minter may mint. Token ids are assigned sequentially as decimal
strings starting at "1", and every token carries the ``Metadata`` extension
naming its claimer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .. import __version__
from ..kernel.deps import Deps
from ..kernel.errors import AuthorizationError, NotFoundError
from ..kernel.schema import Env, MessageInfo, Response
from ..kernel.storage import Item, Map
from ..kernel.tagged import TaggedUnion, load_model
from ..lib.admission import Metadata
from ..lib.version import set_contract_version

CONTRACT_NAME = "poap-cvm:token-collection"

DEFAULT_LIMIT = 10
MAX_LIMIT = 30


# =============================================================================
# Messages
# =============================================================================


class InstantiateMsg(BaseModel):
    name: str
    symbol: str
    minter: str


class Mint(BaseModel):
    owner: str
    token_uri: Optional[str] = None
    extension: Metadata


EXECUTE = TaggedUnion("CollectionExecuteMsg", {"mint": Mint})


class Minter(BaseModel):
    pass


class NumTokens(BaseModel):
    pass


class ContractInfoQuery(BaseModel):
    pass


class NftInfo(BaseModel):
    token_id: str


class OwnerOf(BaseModel):
    token_id: str


class AllNftInfo(BaseModel):
    token_id: str


class Tokens(BaseModel):
    owner: str
    start_after: Optional[str] = None
    limit: Optional[int] = None


class AllTokens(BaseModel):
    start_after: Optional[str] = None
    limit: Optional[int] = None


QUERY = TaggedUnion(
    "CollectionQueryMsg",
    {
        "minter": Minter,
        "num_tokens": NumTokens,
        "contract_info": ContractInfoQuery,
        "nft_info": NftInfo,
        "owner_of": OwnerOf,
        "all_nft_info": AllNftInfo,
        "tokens": Tokens,
        "all_tokens": AllTokens,
    },
)


# =============================================================================
# State
# =============================================================================


class CollectionInfo(BaseModel):
    name: str
    symbol: str
    minter: str


class TokenInfo(BaseModel):
    owner: str
    token_uri: Optional[str] = None
    extension: Metadata
    approvals: List[str] = Field(default_factory=list)


COLLECTION_INFO: Item[CollectionInfo] = Item("collection_info", CollectionInfo)
TOKEN_COUNT: Item[int] = Item("num_tokens", int)
TOKENS: Map[str, TokenInfo] = Map("tokens", str, TokenInfo)


class TokenCollection:
    def instantiate(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        init = load_model(InstantiateMsg, msg)
        set_contract_version(deps.storage, CONTRACT_NAME, __version__)
        minter = deps.api.addr_validate(init.minter)
        COLLECTION_INFO.save(
            deps.storage, CollectionInfo(name=init.name, symbol=init.symbol, minter=minter)
        )
        TOKEN_COUNT.save(deps.storage, 0)
        return (
            Response()
            .add_attribute("action", "instantiate")
            .add_attribute("minter", minter)
        )

    def execute(self, deps: Deps, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Response:
        mint = EXECUTE.load(msg)
        return self._mint(deps, info, mint)

    def _mint(self, deps: Deps, info: MessageInfo, msg: Mint) -> Response:
        collection = COLLECTION_INFO.load(deps.storage)
        if info.sender != collection.minter:
            raise AuthorizationError(f"{info.sender} is not the minter", sender=info.sender)

        owner = deps.api.addr_validate(msg.owner)
        token_id = str(TOKEN_COUNT.update(deps.storage, lambda count: count + 1))
        TOKENS.save(
            deps.storage,
            token_id,
            TokenInfo(owner=owner, token_uri=msg.token_uri, extension=msg.extension),
        )
        return (
            Response()
            .add_attribute("action", "mint")
            .add_attribute("minter", info.sender)
            .add_attribute("owner", owner)
            .add_attribute("token_id", token_id)
            .set_data({"token_id": token_id})
        )

    def query(self, deps: Deps, env: Env, msg: Dict[str, Any]) -> Dict[str, Any]:
        query = QUERY.load(msg)
        if isinstance(query, Minter):
            return {"minter": COLLECTION_INFO.load(deps.storage).minter}
        if isinstance(query, NumTokens):
            return {"count": TOKEN_COUNT.load(deps.storage)}
        if isinstance(query, ContractInfoQuery):
            collection = COLLECTION_INFO.load(deps.storage)
            return {"name": collection.name, "symbol": collection.symbol}
        if isinstance(query, NftInfo):
            return _nft_info(_load_token(deps, query.token_id))
        if isinstance(query, OwnerOf):
            return _access(_load_token(deps, query.token_id))
        if isinstance(query, AllNftInfo):
            token = _load_token(deps, query.token_id)
            return {"access": _access(token), "info": _nft_info(token)}
        if isinstance(query, Tokens):
            owner = deps.api.addr_validate(query.owner)
            return {"tokens": _token_ids(deps, query.start_after, query.limit, owner)}
        return {"tokens": _token_ids(deps, query.start_after, query.limit)}


def _load_token(deps: Deps, token_id: str) -> TokenInfo:
    token = TOKENS.may_load(deps.storage, token_id)
    if token is None:
        raise NotFoundError(f"token {token_id} not found", token_id=token_id)
    return token


def _nft_info(token: TokenInfo) -> Dict[str, Any]:
    return {"token_uri": token.token_uri, "extension": token.extension.model_dump()}


def _access(token: TokenInfo) -> Dict[str, Any]:
    return {"owner": token.owner, "approvals": list(token.approvals)}


def _token_ids(
    deps: Deps,
    start_after: Optional[str],
    limit: Optional[int],
    owner: Optional[str] = None,
) -> List[str]:
    """Ids in key order; the owner filter is applied before the limit."""
    limit = min(limit or DEFAULT_LIMIT, MAX_LIMIT)
    found: List[str] = []
    for token_id, token in TOKENS.range(deps.storage, start_after=start_after):
        if owner is not None and token.owner != owner:
            continue
        found.append(token_id)
        if len(found) == limit:
            break
    return found
