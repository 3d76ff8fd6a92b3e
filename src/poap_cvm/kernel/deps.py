from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import HostError, TransportError, ValidationError
from .storage import Storage

_ADDRESS_RE = re.compile(r"[a-z0-9]{3,90}")

SmartQuery = Callable[[str, Dict[str, Any]], Dict[str, Any]]
CustomQuery = Callable[[Dict[str, Any]], Dict[str, Any]]


class Api:
    """Address checks offered by the host."""

    def addr_validate(self, address: str) -> str:
        if not isinstance(address, str) or not _ADDRESS_RE.fullmatch(address):
            raise ValidationError(f"invalid address: {address!r}")
        return address


class Querier:
    """
    Synchronous query channel exposed to components.

    Queries never mutate state, so unlike executes they return inline.
    """

    def __init__(
        self,
        smart: Optional[SmartQuery] = None,
        custom: Optional[CustomQuery] = None,
    ) -> None:
        self._smart = smart
        self._custom = custom

    def query_wasm_smart(self, contract_addr: str, msg: Dict[str, Any]) -> Dict[str, Any]:
        if self._smart is None:
            raise HostError("no component query channel configured")
        return self._smart(contract_addr, msg)

    def query_custom(self, request: Dict[str, Any]) -> Dict[str, Any]:
        if self._custom is None:
            raise TransportError("no domain query channel configured")
        return self._custom(request)


@dataclass
class Deps:
    storage: Storage
    api: Api
    querier: Querier
