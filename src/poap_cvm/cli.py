"""
poap: command line membrane over the HostEngine.

Usage:
    poap init [--db path]
    poap instantiate manager --msg '{"admin": "...", ...}' [--sender addr]
    poap execute contract0 --msg '{"claim": {}}' [--sender addr]
    poap query contract0 --msg '{"config": {}}'
    poap block --advance 10
    poap profile add desmos1... --dtag goldrake
    poap login <address>
    poap schema --out schema/
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .bootstrap import ensure_codes, open_engine
from .config import configure_logging, load_context, load_settings, save_context
from .export import write_schemas
from .kernel.engine import HostEngine
from .query.service import StoreProfileDirectory, new_profile


def _engine(args: argparse.Namespace, create: bool = False) -> Optional[HostEngine]:
    settings = load_settings(db_path=args.db)
    if not create and not Path(settings.db_path).exists():
        print(f"✗ Database not found: {settings.db_path}", file=sys.stderr)
        print("  Run `poap init` first.", file=sys.stderr)
        return None
    return open_engine(settings, create=create)


def _parse_json(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON input: {e}", file=sys.stderr)
        return None


def _dispatch(args: argparse.Namespace, intent: str, inputs: Dict[str, Any], sender: Optional[str] = None) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        result = engine.dispatch(intent, inputs, sender=sender, output_sink=print)
    finally:
        engine.close()

    if not result.ok:
        return 1
    print(json.dumps(result.data, indent=2, default=str))
    return 0


# =============================================================================
# Commands
# =============================================================================


def cmd_init(args: argparse.Namespace) -> int:
    """Create the database and store the component code."""
    engine = _engine(args, create=True)
    assert engine is not None
    try:
        codes = ensure_codes(engine)
    finally:
        engine.close()

    print(f"✓ Host ready at {engine.db_path}")
    for name, code_id in codes.items():
        print(f"  {code_id:>3}  {name}")
    return 0


def cmd_codes(args: argparse.Namespace) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        codes = engine.list_codes()
    finally:
        engine.close()

    for code in codes:
        print(f"  {code['code_id']:>3}  {code['label']:20} {code['python_ref']}")
    return 0


def cmd_components(args: argparse.Namespace) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        components = engine.list_components()
    finally:
        engine.close()

    for component in components:
        print(
            f"  {component['address']:12} code {component['code_id']:<3} "
            f"{component['label']:20} by {component['creator']}"
        )
    return 0


def cmd_instantiate(args: argparse.Namespace) -> int:
    msg = _parse_json(args.msg)
    if msg is None:
        return 1

    code_id: Any = args.code
    if not str(code_id).isdigit():
        engine = _engine(args)
        if engine is None:
            return 1
        try:
            code_id = ensure_codes(engine).get(args.code)
        finally:
            engine.close()
        if code_id is None:
            print(f"✗ Unknown component: {args.code}", file=sys.stderr)
            return 1

    inputs = {"code_id": int(code_id), "msg": msg, "label": args.label, "admin": args.admin}
    return _dispatch(args, "instantiate", inputs, sender=load_settings(sender=args.sender).sender)


def cmd_execute(args: argparse.Namespace) -> int:
    msg = _parse_json(args.msg)
    if msg is None:
        return 1
    inputs = {"contract": args.contract, "msg": msg}
    return _dispatch(args, "execute", inputs, sender=load_settings(sender=args.sender).sender)


def cmd_query(args: argparse.Namespace) -> int:
    msg = _parse_json(args.msg)
    if msg is None:
        return 1
    return _dispatch(args, "query", {"contract": args.contract, "msg": msg})


def cmd_block(args: argparse.Namespace) -> int:
    inputs = {"time": args.time, "height": args.height, "advance": args.advance}
    return _dispatch(args, "block", inputs)


def cmd_profile_add(args: argparse.Namespace) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        StoreProfileDirectory(engine.store).add(
            new_profile(args.address, args.dtag or args.address[:12], args.nickname or "", args.bio or "")
        )
    finally:
        engine.close()
    print(f"✓ Profile added for {args.address}")
    return 0


def cmd_profile_list(args: argparse.Namespace) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        profiles = StoreProfileDirectory(engine.store).list()
    finally:
        engine.close()

    for profile in profiles:
        print(f"  {profile.account.address}  @{profile.dtag}")
    if not profiles:
        print("  (no profiles)")
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    engine = _engine(args)
    if engine is None:
        return 1
    try:
        events = engine.list_events(args.limit)
    finally:
        engine.close()

    for event in events:
        mark = "✓" if event["op"] == "success" else "✗"
        payload = event["payload"]
        detail = payload.get("error_message") or payload.get("contract") or payload.get("code_id", "")
        print(f"  {event['clock']['seq']:>5} {mark} {event['type']:12} h={event['height']:<6} {detail}")
    return 0


def cmd_login(args: argparse.Namespace) -> int:
    """Set the default sender."""
    context = load_context()
    context["sender"] = args.address
    save_context(context)
    print(f"✓ Acting as {args.address}")
    return 0


def cmd_context(args: argparse.Namespace) -> int:
    settings = load_settings(db_path=args.db)

    print()
    print("╭────────────────────────────────────────────────────────────╮")
    print("│  POAP Host Context                                         │")
    print("╰────────────────────────────────────────────────────────────╯")
    print()
    print(f"  Database:  {settings.db_path}")
    print(f"  Chain id:  {settings.chain_id}")
    print(f"  Sender:    {settings.sender or '(not set)'}")
    print(f"  Log level: {settings.log_level}")
    print()
    return 0


def cmd_schema(args: argparse.Namespace) -> int:
    written = write_schemas(args.out)
    print(f"✓ Wrote {len(written)} schema files to {args.out}")
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="poap",
        description="POAP host - components, replies and admission-gated minting",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at INFO level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create the database and store component code")
    init_parser.add_argument("--db", help="Database path")

    codes_parser = subparsers.add_parser("codes", help="List stored code")
    codes_parser.add_argument("--db", help="Database path")

    components_parser = subparsers.add_parser("components", help="List deployed components")
    components_parser.add_argument("--db", help="Database path")

    instantiate_parser = subparsers.add_parser("instantiate", help="Deploy a component")
    instantiate_parser.add_argument("code", help="Code id or component name (collection, poap, manager)")
    instantiate_parser.add_argument("--msg", "-m", help="JSON instantiate message")
    instantiate_parser.add_argument("--label", help="Component label")
    instantiate_parser.add_argument("--admin", help="Component admin")
    instantiate_parser.add_argument("--sender", help="Acting address")
    instantiate_parser.add_argument("--db", help="Database path")

    execute_parser = subparsers.add_parser("execute", help="Execute a component message")
    execute_parser.add_argument("contract", help="Component address")
    execute_parser.add_argument("--msg", "-m", help="JSON execute message")
    execute_parser.add_argument("--sender", help="Acting address")
    execute_parser.add_argument("--db", help="Database path")

    query_parser = subparsers.add_parser("query", help="Query a component")
    query_parser.add_argument("contract", help="Component address")
    query_parser.add_argument("--msg", "-m", help="JSON query message")
    query_parser.add_argument("--db", help="Database path")

    block_parser = subparsers.add_parser("block", help="Show or move the block clock")
    block_parser.add_argument("--time", type=int, help="Block time in seconds")
    block_parser.add_argument("--height", type=int, help="Block height")
    block_parser.add_argument("--advance", type=int, help="Advance by N blocks")
    block_parser.add_argument("--db", help="Database path")

    profile_parser = subparsers.add_parser("profile", help="Manage local domain profiles")
    profile_subparsers = profile_parser.add_subparsers(dest="profile_command", required=True)
    profile_add_parser = profile_subparsers.add_parser("add", help="Add a profile")
    profile_add_parser.add_argument("address", help="Profile owner address")
    profile_add_parser.add_argument("--dtag", help="Profile DTag")
    profile_add_parser.add_argument("--nickname", help="Nickname")
    profile_add_parser.add_argument("--bio", help="Bio")
    profile_add_parser.add_argument("--db", help="Database path")
    profile_list_parser = profile_subparsers.add_parser("list", help="List profiles")
    profile_list_parser.add_argument("--db", help="Database path")

    events_parser = subparsers.add_parser("events", help="Show the host event log")
    events_parser.add_argument("--limit", "-n", type=int, default=20, help="Number of events (default: 20)")
    events_parser.add_argument("--db", help="Database path")

    login_parser = subparsers.add_parser("login", help="Set the default sender")
    login_parser.add_argument("address", help="Address to act as")

    context_parser = subparsers.add_parser("context", help="Show current context")
    context_parser.add_argument("--db", help="Database path")

    schema_parser = subparsers.add_parser("schema", help="Write JSON schemas of all messages")
    schema_parser.add_argument("--out", "-o", default="schema", help="Output directory (default: schema)")

    args = parser.parse_args(argv)
    configure_logging("INFO" if args.verbose else load_settings().log_level)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "codes":
        return cmd_codes(args)
    elif args.command == "components":
        return cmd_components(args)
    elif args.command == "instantiate":
        return cmd_instantiate(args)
    elif args.command == "execute":
        return cmd_execute(args)
    elif args.command == "query":
        return cmd_query(args)
    elif args.command == "block":
        return cmd_block(args)
    elif args.command == "profile":
        if args.profile_command == "add":
            return cmd_profile_add(args)
        elif args.profile_command == "list":
            return cmd_profile_list(args)
        return 1
    elif args.command == "events":
        return cmd_events(args)
    elif args.command == "login":
        return cmd_login(args)
    elif args.command == "context":
        return cmd_context(args)
    elif args.command == "schema":
        return cmd_schema(args)

    return 1


if __name__ == "__main__":
    sys.exit(main())
