"""Commitment record model.

One record per issued identifier. Creator, commit time and commitment
are fixed at commit time. The content location starts empty and is set
exactly once, by a successful reveal. Records are never destroyed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from counterfactual.crypto.hashing import normalize_principal, parse_hash32, to_hex32
from counterfactual.errors import AlreadyRevealed


@dataclass(frozen=True)
class Record:
    """State of one committed identifier.

    Frozen: the only change a record ever sees is produced by
    mark_revealed(), which returns a new record and refuses to run
    twice.
    """
    identifier: int
    creator: str
    commit_time: datetime
    commitment: bytes
    content_location: Optional[str] = None

    @property
    def revealed(self) -> bool:
        return self.content_location is not None

    @property
    def commitment_hex(self) -> str:
        return to_hex32(self.commitment)

    def mark_revealed(self, location: str) -> Record:
        """Return the revealed form of this record."""
        if self.content_location is not None:
            raise AlreadyRevealed(self.identifier, self.content_location)
        return replace(self, content_location=normalize_principal(location))

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "creator": self.creator,
            "commit_time": self.commit_time.isoformat(),
            "commitment": self.commitment_hex,
            "content_location": self.content_location,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Record:
        location = data.get("content_location")
        commit_time = datetime.fromisoformat(data["commit_time"])
        if commit_time.tzinfo is None:
            raise ValueError(f"Record {data['identifier']} has a naive commit_time")
        return Record(
            identifier=int(data["identifier"]),
            creator=normalize_principal(data["creator"]),
            commit_time=commit_time,
            commitment=parse_hash32(data["commitment"]),
            content_location=normalize_principal(location) if location else None,
        )
