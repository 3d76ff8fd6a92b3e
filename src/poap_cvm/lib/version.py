"""
Domain: Version
Storage: contract_info

Name and version of the component class that wrote a namespace.
"""
from __future__ import annotations

from typing import Optional

from ..kernel.schema import ContractVersion
from ..kernel.storage import Item, Storage

CONTRACT_INFO: Item[ContractVersion] = Item("contract_info", ContractVersion)


def set_contract_version(storage: Storage, contract: str, version: str) -> None:
    CONTRACT_INFO.save(storage, ContractVersion(contract=contract, version=version))


def get_contract_version(storage: Storage) -> Optional[ContractVersion]:
    return CONTRACT_INFO.may_load(storage)
