"""
Host configuration: environment variables, the local context file and
logging setup.

Resolution order for every setting:
1. Explicit flag
2. Environment variable (POAP_DB, POAP_CHAIN_ID, POAP_LOG_LEVEL, POAP_SENDER)
3. Local context file (.poap/context.json), for the sender only
4. Default
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

DEFAULT_DB_PATH = "poap-cvm.db"
DEFAULT_CHAIN_ID = "poap-local"
DEFAULT_LOG_LEVEL = "WARNING"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class HostSettings(BaseModel):
    db_path: str = DEFAULT_DB_PATH
    chain_id: str = DEFAULT_CHAIN_ID
    log_level: str = DEFAULT_LOG_LEVEL
    sender: Optional[str] = None


# =============================================================================
# Context file
# =============================================================================


def get_context_file() -> Path:
    """Get the path to the context file."""
    return Path.cwd() / ".poap" / "context.json"


def load_context() -> Dict[str, Any]:
    """Load context from .poap/context.json if it exists."""
    context_file = get_context_file()
    if context_file.exists():
        return json.loads(context_file.read_text())
    return {}


def save_context(context: Dict[str, Any]) -> None:
    context_file = get_context_file()
    context_file.parent.mkdir(parents=True, exist_ok=True)
    context_file.write_text(json.dumps(context, indent=2))


# =============================================================================
# Resolution
# =============================================================================


def resolve_db_path(explicit: Optional[str] = None) -> str:
    if explicit:
        return explicit
    return os.environ.get("POAP_DB") or DEFAULT_DB_PATH


def resolve_sender(explicit: Optional[str] = None) -> Optional[str]:
    if explicit:
        return explicit
    env_sender = os.environ.get("POAP_SENDER")
    if env_sender:
        return env_sender
    return load_context().get("sender")


def load_settings(
    db_path: Optional[str] = None,
    sender: Optional[str] = None,
    log_level: Optional[str] = None,
) -> HostSettings:
    return HostSettings(
        db_path=resolve_db_path(db_path),
        chain_id=os.environ.get("POAP_CHAIN_ID") or DEFAULT_CHAIN_ID,
        log_level=(log_level or os.environ.get("POAP_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        sender=resolve_sender(sender),
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
