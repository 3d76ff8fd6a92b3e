"""
POAP host HTTP API.

Exposes the same HostEngine as the CLI so external clients can deploy,
execute and query components.

Run with: uvicorn poap_cvm.api:app --port 8000
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from . import __version__
from .bootstrap import ensure_codes, open_engine
from .config import load_settings
from .kernel.engine import DispatchResult, HostEngine

# --- Pydantic Models ---


class InstantiateRequest(BaseModel):
    """Request body for deploying a component."""

    code_id: int
    msg: Dict[str, Any]
    sender: str
    label: Optional[str] = None
    admin: Optional[str] = None


class ExecuteRequest(BaseModel):
    msg: Dict[str, Any]
    sender: str


class QueryRequest(BaseModel):
    msg: Dict[str, Any]


class ComponentListResponse(BaseModel):
    components: List[Dict[str, Any]]
    count: int


# --- FastAPI App ---

app = FastAPI(
    title="POAP Host API",
    description="HTTP interface to the POAP component host",
    version=__version__,
)


# --- Engine Singleton ---

_engine: Optional[HostEngine] = None


def get_engine() -> HostEngine:
    """Get or create the HostEngine singleton."""
    global _engine
    if _engine is None:
        _engine = open_engine(load_settings(), create=True)
        ensure_codes(_engine)
    return _engine


def set_engine(engine: Optional[HostEngine]) -> None:
    """Replace the singleton, used to point the app at another host."""
    global _engine
    _engine = engine


@app.on_event("shutdown")
async def shutdown_engine():
    """Clean up engine resources on shutdown."""
    global _engine
    if _engine:
        _engine.close()
        _engine = None


def _unwrap(result: DispatchResult) -> Dict[str, Any]:
    if not result.ok:
        raise HTTPException(
            status_code=400,
            detail={
                "error_kind": result.error_kind,
                "error_message": result.error_message,
            },
        )
    return result.to_dict()


# --- Endpoints ---


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "poap-cvm"}


@app.get("/components", response_model=ComponentListResponse)
async def list_components():
    components = get_engine().list_components()
    return ComponentListResponse(components=components, count=len(components))


@app.post("/instantiate")
async def instantiate(request: InstantiateRequest):
    """Deploy a component; its deploy replies run within the same call."""
    result = get_engine().dispatch(
        "instantiate",
        {
            "code_id": request.code_id,
            "msg": request.msg,
            "label": request.label,
            "admin": request.admin,
        },
        sender=request.sender,
    )
    return _unwrap(result)


@app.post("/execute/{address}")
async def execute(address: str, request: ExecuteRequest):
    result = get_engine().dispatch(
        "execute", {"contract": address, "msg": request.msg}, sender=request.sender
    )
    return _unwrap(result)


@app.post("/query/{address}")
async def query(address: str, request: QueryRequest):
    result = get_engine().dispatch("query", {"contract": address, "msg": request.msg})
    return _unwrap(result)


@app.get("/events")
async def list_events(limit: int = 50):
    events = get_engine().list_events(limit)
    return {"events": events, "count": len(events)}
