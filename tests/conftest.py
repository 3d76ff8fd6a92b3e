"""
Pytest configuration and shared fixtures for POAP host tests.
"""
import os
import tempfile
from typing import Any, Callable, Dict, Optional

import pytest

from poap_cvm.bootstrap import ensure_codes
from poap_cvm.kernel.engine import HostEngine
from poap_cvm.kernel.vm import GENESIS_TIME
from poap_cvm.query.mocks import MockDomainService

ADMIN = "admin"
MINTER = "minter"
CREATOR = "creator"

# Window around the default block time
EVENT_START = GENESIS_TIME - 100
EVENT_END = GENESIS_TIME + 1_000


@pytest.fixture
def temp_db():
    """Create a temporary database file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def domain():
    """Domain query service knowing the mock user's profile."""
    return MockDomainService()


@pytest.fixture
def engine(temp_db, domain):
    """A fresh host with all component code stored."""
    engine = HostEngine(temp_db, domain_channel=domain, create=True)
    ensure_codes(engine)
    yield engine
    engine.close()


@pytest.fixture
def codes(engine) -> Dict[str, int]:
    return ensure_codes(engine)


@pytest.fixture
def event_window():
    """(start, end) of the default event window."""
    return EVENT_START, EVENT_END


@pytest.fixture
def event_info() -> Callable[..., Dict[str, Any]]:
    def build(
        start_time: int = EVENT_START,
        end_time: int = EVENT_END,
        per_address_limit: int = 1,
        poap_uri: str = "ipfs://poap",
    ) -> Dict[str, Any]:
        return {
            "creator": CREATOR,
            "start_time": start_time,
            "end_time": end_time,
            "per_address_limit": per_address_limit,
            "poap_uri": poap_uri,
        }

    return build


@pytest.fixture
def poap_msg(codes, event_info) -> Callable[..., Dict[str, Any]]:
    """Instantiate message of a POAP whose collection is the stored collection code."""

    def build(
        policy: Optional[Dict[str, Any]] = None,
        collection_code_id: Optional[int] = None,
        **event: Any,
    ) -> Dict[str, Any]:
        msg = {
            "admin": ADMIN,
            "minter": MINTER,
            "collection_code_id": codes["collection"] if collection_code_id is None else collection_code_id,
            "collection_instantiate_msg": {"name": "Test POAP", "symbol": "POAP"},
            "event_info": event_info(**event),
        }
        if policy is not None:
            msg["policy"] = policy
        return msg

    return build


@pytest.fixture
def manager_msg(codes, poap_msg) -> Callable[..., Dict[str, Any]]:
    def build(query_shapes: Optional[Dict[str, str]] = None, **poap: Any) -> Dict[str, Any]:
        msg = {
            "admin": ADMIN,
            "poap_code_id": codes["poap"],
            "poap_instantiate_msg": poap_msg(**poap),
        }
        if query_shapes is not None:
            msg["query_shapes"] = query_shapes
        return msg

    return build
