"""Policy resolver — loads registry parameters from config/*.json.

The policy file holds the values that are deliberately not derived:
the minimum reveal delay, the content store identity and size limit,
and the presentation strings.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

from counterfactual.crypto.hashing import normalize_principal
from counterfactual.store.content_store import MAX_CONTENT_BYTES


PARAMS_FILE = "registry_params.json"


@dataclass(frozen=True)
class PresentationPolicy:
    name_prefix: str
    description: str
    unrevealed_placeholder: str


class PolicyResolver:
    """Typed access to the registry policy document.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.min_reveal_delay()   # timedelta(seconds=60)
        resolver.store_identity()     # "0x..."
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / PARAMS_FILE
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @classmethod
    def from_dict(cls, params: dict[str, Any]) -> PolicyResolver:
        return cls(params)

    def min_reveal_delay(self) -> timedelta:
        return timedelta(seconds=int(self._params["reveal"]["min_delay_seconds"]))

    def store_identity(self) -> str:
        return normalize_principal(self._params["store"]["identity"])

    def max_content_bytes(self) -> int:
        return int(self._params["store"].get("max_content_bytes", MAX_CONTENT_BYTES))

    def presentation(self) -> PresentationPolicy:
        section = self._params.get("presentation", {})
        return PresentationPolicy(
            name_prefix=section.get("name_prefix", "Counterfactual"),
            description=section.get("description", ""),
            unrevealed_placeholder=section.get("unrevealed_placeholder", "(not yet revealed)"),
        )

    def as_dict(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._params))

    def _validate(self) -> None:
        """Fail fast on a malformed policy document."""
        for section in ("reveal", "store"):
            if section not in self._params:
                raise ValueError(f"Policy missing section: {section}")
        if "min_delay_seconds" not in self._params["reveal"]:
            raise ValueError("Policy missing reveal.min_delay_seconds")
        if int(self._params["reveal"]["min_delay_seconds"]) <= 0:
            raise ValueError("reveal.min_delay_seconds must be positive")
        if "identity" not in self._params["store"]:
            raise ValueError("Policy missing store.identity")
        self.store_identity()
        limit = self.max_content_bytes()
        if not 0 < limit <= MAX_CONTENT_BYTES:
            raise ValueError(f"store.max_content_bytes must be in (0, {MAX_CONTENT_BYTES}]")
