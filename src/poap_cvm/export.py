"""
JSON Schema export for every component message and the domain query unions.

Files are written as ``<component>/<kind>.json``:

    schema/poap/instantiate_msg.json
    schema/poap/execute_msg.json
    schema/poap/query_msg.json
    schema/domain/profiles_query.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .contracts import collection, manager, poap
from .query.codec import SCHEMAS


def component_schemas() -> Dict[str, Dict[str, Any]]:
    schemas: Dict[str, Dict[str, Any]] = {}
    for name, module in (("collection", collection), ("poap", poap), ("manager", manager)):
        schemas[name] = {
            "instantiate_msg": module.InstantiateMsg.model_json_schema(),
            "execute_msg": module.EXECUTE.json_schema(),
            "query_msg": module.QUERY.json_schema(),
        }
    schemas["domain"] = {
        f"{route.value}_query": union.json_schema(f"Operations of the {route.value} route")
        for route, union in SCHEMAS.items()
    }
    return schemas


def write_schemas(out_dir: str) -> List[Path]:
    """Write every schema below ``out_dir``; existing files are overwritten."""
    written: List[Path] = []
    for component, kinds in component_schemas().items():
        target = Path(out_dir) / component
        target.mkdir(parents=True, exist_ok=True)
        for kind, schema in kinds.items():
            path = target / f"{kind}.json"
            path.write_text(json.dumps(schema, indent=2, sort_keys=True) + "\n")
            written.append(path)
    return written
