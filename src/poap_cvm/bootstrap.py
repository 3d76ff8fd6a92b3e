"""
Wiring of a host: engine, local domain service and the stored component code.

    engine = open_engine(load_settings(), create=True)
    codes = ensure_codes(engine)   # {"collection": 1, "poap": 2, "manager": 3}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from .config import HostSettings
from .contracts import COMPONENTS
from .kernel.engine import HostEngine
from .query.service import DomainService, StoreProfileDirectory

logger = logging.getLogger(__name__)

CODE_LABELS = {
    "collection": "Token collection",
    "poap": "POAP",
    "manager": "POAP manager",
}


class StoreDomainChannel:
    """Domain queries answered from the profiles kept in the engine's store."""

    def __init__(self, engine: HostEngine) -> None:
        self._engine = engine

    def __call__(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        service = DomainService(StoreProfileDirectory(self._engine.store))
        return service(request)


def open_engine(settings: HostSettings, create: bool = False) -> HostEngine:
    engine = HostEngine(settings.db_path, chain_id=settings.chain_id, create=create)
    engine.domain_channel = StoreDomainChannel(engine)
    return engine


def ensure_codes(engine: HostEngine) -> Dict[str, int]:
    """Store each component's code once; return name -> code id."""
    codes: Dict[str, int] = {}
    for name, python_ref in COMPONENTS.items():
        existing = engine.store.find_code(python_ref)
        if existing is not None:
            codes[name] = existing.id
            continue
        codes[name] = engine.vm.store_code(python_ref, CODE_LABELS[name])
        logger.info("stored %s as code %d", name, codes[name])
    return codes
