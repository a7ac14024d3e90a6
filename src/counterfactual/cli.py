"""Counterfactual CLI — command-line interface for the commit-reveal registry.

Usage:
    counterfactual status
    counterfactual predict --content "hello" --salt 0 --caller 0xAbc...
    counterfactual commit --content "hello" --salt 0 --caller 0xAbc...
    counterfactual commit --commitment 0x1234... --caller 0xAbc...
    counterfactual reveal --id 1 --content "hello" --salt 0 --caller 0xDef...
    counterfactual show --id 1
    counterfactual token-uri --id 1
    counterfactual check-invariants

The caller is taken from --caller, or derived from --private-key /
COUNTERFACTUAL_PRIVATE_KEY. Settings can be put in a .env file.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account

from counterfactual.persistence.event_log import EventLog
from counterfactual.persistence.state_store import StateStore
from counterfactual.policy.resolver import PolicyResolver
from counterfactual.service import RegistryService, ServiceResult


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _make_service(config_dir: Path, data_dir: Path) -> RegistryService:
    """Create a RegistryService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    return RegistryService(
        resolver,
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(storage_path=data_dir / "state.json"),
    )


def _resolve_caller(args: argparse.Namespace) -> str:
    if args.caller:
        return args.caller
    key = args.private_key or os.getenv("COUNTERFACTUAL_PRIVATE_KEY")
    if not key:
        raise ValueError("No caller: pass --caller or --private-key, or set COUNTERFACTUAL_PRIVATE_KEY")
    return Account.from_key(key).address


def _read_content(args: argparse.Namespace) -> bytes:
    if args.content_file is not None:
        return Path(args.content_file).read_bytes()
    if args.content is not None:
        return args.content.encode("utf-8")
    raise ValueError("Pass --content or --content-file")


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, sort_keys=True))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_predict(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    creator = args.creator or _resolve_caller(args)
    return _report(service.predict(_read_content(args), creator, args.salt))


def cmd_commit(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    caller = _resolve_caller(args)
    now = _parse_now(args.now)
    if args.commitment:
        result = service.commit(caller, args.commitment, now=now)
    else:
        result = service.commit_content(caller, _read_content(args), args.salt, now=now)
    return _report(result)


def cmd_reveal(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    result = service.reveal(
        _resolve_caller(args),
        args.id,
        _read_content(args),
        args.salt,
        now=_parse_now(args.now),
    )
    return _report(result)


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    result = service.document(args.id)
    if result.success and not args.with_image:
        result.data.pop("image", None)
    return _report(result)


def cmd_token_uri(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data_dir)
    result = service.token_uri(args.id)
    if result.success:
        print(result.data["token_uri"])
        return 0
    return _report(result)


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run policy invariant checks."""
    tools_dir = ROOT / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(Path(args.config) / "registry_params.json")


def _salt(value: str) -> int:
    return int(value, 0)


def _add_caller_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--caller", help="Caller address")
    p.add_argument("--private-key", help="Hex private key; the caller is its address")


def _add_content_args(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--content", help="Content as UTF-8 text")
    group.add_argument("--content-file", help="Read content bytes from a file")
    p.add_argument("--salt", type=_salt, default=0, help="User salt, at most 96 bits (default: 0)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="counterfactual",
        description="Counterfactual — commit-reveal registry CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.getenv("COUNTERFACTUAL_CONFIG_DIR", DEFAULT_CONFIG)),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(os.getenv("COUNTERFACTUAL_DATA_DIR", DEFAULT_DATA)),
        help="Directory for events.jsonl and state.json (default: data/)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show registry status")

    # predict
    p_predict = sub.add_parser("predict", help="Predict location and commitment for content")
    _add_caller_args(p_predict)
    _add_content_args(p_predict)
    p_predict.add_argument("--creator", help="Creator address (default: caller)")

    # commit
    p_commit = sub.add_parser("commit", help="Commit to future content")
    _add_caller_args(p_commit)
    _add_content_args(p_commit)
    p_commit.add_argument("--commitment", help="Precomputed 32-byte commitment (hex)")
    p_commit.add_argument("--now", help="Commit time override (ISO 8601)")

    # reveal
    p_reveal = sub.add_parser("reveal", help="Reveal content for an identifier")
    p_reveal.add_argument("--id", type=int, required=True, help="Identifier")
    _add_caller_args(p_reveal)
    _add_content_args(p_reveal)
    p_reveal.add_argument("--now", help="Reveal time override (ISO 8601)")

    # show
    p_show = sub.add_parser("show", help="Show the metadata document for an identifier")
    p_show.add_argument("--id", type=int, required=True, help="Identifier")
    p_show.add_argument("--with-image", action="store_true", help="Include the SVG data URI")

    # token-uri
    p_uri = sub.add_parser("token-uri", help="Print the token URI for an identifier")
    p_uri.add_argument("--id", type=int, required=True, help="Identifier")

    # check-invariants
    sub.add_parser("check-invariants", help="Run policy invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "predict": cmd_predict,
        "commit": cmd_commit,
        "reveal": cmd_reveal,
        "show": cmd_show,
        "token-uri": cmd_token_uri,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
