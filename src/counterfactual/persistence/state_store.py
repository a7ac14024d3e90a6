"""State store — JSON snapshot of registry, ledger and content store.

The snapshot is rewritten after every successful mutation (and after a
failed reveal that still wrote to the content store). Writes go to a
temporary file that then replaces the snapshot, so a crash never leaves
a half-written file behind.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from counterfactual.models.record import Record
from counterfactual.registry.commitment_registry import CommitmentRegistry


SNAPSHOT_VERSION = 1


class StateStore:
    """Persists and restores a CommitmentRegistry and its collaborators."""

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def exists(self) -> bool:
        return self._storage_path.exists()

    def save(self, registry: CommitmentRegistry) -> None:
        snapshot: dict[str, Any] = {
            "version": SNAPSHOT_VERSION,
            "store_identity": registry.store.identity,
            "records": [r.to_dict() for r in registry.records()],
            "owners": registry.ledger.export(),
            "contents": registry.store.export(),
        }
        tmp = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        os.replace(tmp, self._storage_path)

    def load_into(self, registry: CommitmentRegistry) -> None:
        """Restore the snapshot into a freshly constructed registry.

        Fails if the snapshot was written under a different store
        identity, since every location would then be wrong.
        """
        if not self.exists:
            return
        with self._storage_path.open("r", encoding="utf-8") as f:
            snapshot = json.load(f)

        if snapshot.get("version") != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {snapshot.get('version')}")
        if snapshot["store_identity"] != registry.store.identity:
            raise ValueError(
                f"Snapshot store identity {snapshot['store_identity']} does not match "
                f"configured identity {registry.store.identity}"
            )

        registry.store.restore(snapshot["contents"])
        registry.ledger.restore(snapshot["owners"])
        registry.restore(Record.from_dict(r) for r in snapshot["records"])
