"""
Test doubles for calling component entry points without a running host.

    deps = mock_dependencies()
    response = Poap().instantiate(deps, mock_env(), mock_info("admin"), msg)
"""

from __future__ import annotations

from typing import Optional

from .deps import Api, CustomQuery, Deps, Querier, SmartQuery
from .schema import BlockInfo, ContractInfo, Env, MessageInfo
from .storage import Storage
from .store import ChainStore
from .vm import GENESIS_TIME

MOCK_CONTRACT_ADDR = "cosmos2contract"


def mock_dependencies(
    domain_channel: Optional[CustomQuery] = None,
    smart_channel: Optional[SmartQuery] = None,
    address: str = MOCK_CONTRACT_ADDR,
) -> Deps:
    """In-memory storage, address validation and optional query channels."""
    store = ChainStore(":memory:")
    return Deps(
        storage=Storage(store, address),
        api=Api(),
        querier=Querier(smart=smart_channel, custom=domain_channel),
    )


def mock_env(
    time: int = GENESIS_TIME,
    height: int = 12_345,
    address: str = MOCK_CONTRACT_ADDR,
) -> Env:
    return Env(
        block=BlockInfo(height=height, time=time, chain_id="cosmos-testnet-14002"),
        contract=ContractInfo(address=address),
    )


def mock_info(sender: str) -> MessageInfo:
    return MessageInfo(sender=sender)
