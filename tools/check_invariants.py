#!/usr/bin/env python3
"""Registry invariant checks against the policy file."""

import json
from pathlib import Path

from eth_utils import is_address, to_checksum_address


ROOT = Path(__file__).resolve().parents[1]
PARAMS_PATH = ROOT / "config" / "registry_params.json"

# EIP-170 code size limit minus the leading STOP byte of stored content.
MAX_CONTENT_BYTES = 24_575
NULL_ADDRESS = "0x" + "00" * 20


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_reveal(params: dict, errors: list[str]) -> None:
    reveal = params.get("reveal", {})
    delay = reveal.get("min_delay_seconds")
    if not isinstance(delay, int):
        errors.append("reveal.min_delay_seconds must be an integer")
    elif delay <= 0:
        errors.append(f"reveal.min_delay_seconds must be > 0, got {delay}")


def check_store(params: dict, errors: list[str]) -> None:
    store = params.get("store", {})
    identity = store.get("identity", "")
    if not is_address(identity):
        errors.append(f"store.identity is not a valid address: {identity!r}")
    elif to_checksum_address(identity) == to_checksum_address(NULL_ADDRESS):
        errors.append("store.identity must not be the null address")

    limit = store.get("max_content_bytes", MAX_CONTENT_BYTES)
    if not isinstance(limit, int) or not 0 < limit <= MAX_CONTENT_BYTES:
        errors.append(f"store.max_content_bytes must be in (0, {MAX_CONTENT_BYTES}]")


def check_presentation(params: dict, errors: list[str]) -> None:
    presentation = params.get("presentation", {})
    placeholder = presentation.get("unrevealed_placeholder", "")
    if not placeholder:
        errors.append("presentation.unrevealed_placeholder must be non-empty")
    if not presentation.get("name_prefix"):
        errors.append("presentation.name_prefix must be non-empty")


def check(params_path: Path = PARAMS_PATH) -> int:
    params = load_json(params_path)
    errors: list[str] = []

    check_reveal(params, errors)
    check_store(params, errors)
    check_presentation(params, errors)

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
