"""Commitment registry — commit now, reveal the content later.

Lifecycle of an identifier:
    commit(commitment)        → record created, identifier issued to caller
    ... min_reveal_delay ...
    reveal(content, salt)     → content written to the store, commitment checked,
                                content_location set, MetadataUpdate emitted

The commitment is keccak256(location, creator), where location is the
store address the content will occupy under the creator's effective
salt. The creator computes it off-system before committing, so the
registry never sees the content until reveal.

Invariants enforced:
- Identifiers are dense, start at 1 and are never reused.
- Creator, commit time and commitment never change after commit.
- content_location is set at most once.
- Only content whose location, paired with the stored creator, hashes to
  the stored commitment can satisfy a record.

Reveals may be submitted by anyone. The effective salt is always built
from the stored creator, never from the revealer, so a third party can
complete a reveal but cannot redirect it.

The store write is irreversible. A reveal that fails the commitment
check still leaves its content at the mistaken location.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union

from counterfactual.crypto.hashing import (
    Principal,
    UserSalt,
    commitment_hash,
    effective_salt,
    normalize_principal,
    parse_hash32,
    to_hex32,
)
from counterfactual.errors import AlreadyRevealed, NotFound, TooEarly, WrongContent
from counterfactual.models.record import Record
from counterfactual.registry.ownership import TokenLedger
from counterfactual.store.content_store import DeterministicContentStore


logger = logging.getLogger(__name__)

DEFAULT_MIN_REVEAL_DELAY = timedelta(seconds=60)


def _utc_now(now: Optional[datetime]) -> datetime:
    """Default to the current UTC time. Naive datetimes are rejected."""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError(f"Timestamp must be timezone-aware: {now.isoformat()}")
    return now.astimezone(timezone.utc)


@dataclass(frozen=True)
class Committed:
    """Emitted once per successful commit."""
    identifier: int
    creator: str
    commitment: str


@dataclass(frozen=True)
class MetadataUpdate:
    """Emitted exactly once per successful reveal."""
    identifier: int
    content_location: str
    revealed_by: str


Notification = Union[Committed, MetadataUpdate]
Observer = Callable[[Notification], None]


class CommitmentRegistry:
    """Issues identifiers against commitments and verifies reveals.

    Usage:
        store = DeterministicContentStore(identity="0x...")
        registry = CommitmentRegistry(store, min_reveal_delay=timedelta(minutes=1))

        commitment = registry.compute_commitment(b"hello", alice, 0)
        token_id = registry.commit(alice, commitment, now=t0)
        location = registry.reveal(alice, token_id, b"hello", 0, now=t0 + delay)
    """

    def __init__(
        self,
        store: DeterministicContentStore,
        ledger: Optional[TokenLedger] = None,
        min_reveal_delay: timedelta = DEFAULT_MIN_REVEAL_DELAY,
    ) -> None:
        if min_reveal_delay <= timedelta(0):
            raise ValueError("min_reveal_delay must be positive")
        self._store = store
        self._ledger = ledger if ledger is not None else TokenLedger()
        self._min_reveal_delay = min_reveal_delay
        self._records: dict[int, Record] = {}
        self._last_identifier = 0
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Configuration and collaborators
    # ------------------------------------------------------------------

    @property
    def store(self) -> DeterministicContentStore:
        return self._store

    @property
    def ledger(self) -> TokenLedger:
        return self._ledger

    @property
    def min_reveal_delay(self) -> timedelta:
        return self._min_reveal_delay

    @property
    def next_identifier(self) -> int:
        return self._last_identifier + 1

    def subscribe(self, observer: Observer) -> None:
        """Register a callback for Committed and MetadataUpdate notifications."""
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Off-system helpers (what a creator computes before committing)
    # ------------------------------------------------------------------

    def predict_location(
        self, content: bytes, creator: Principal, user_salt: UserSalt
    ) -> str:
        return self._store.predict_location(content, effective_salt(creator, user_salt))

    def compute_commitment(
        self, content: bytes, creator: Principal, user_salt: UserSalt
    ) -> bytes:
        location = self.predict_location(content, creator, user_salt)
        return commitment_hash(location, creator)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def commit(
        self,
        caller: Principal,
        commitment: Union[bytes, str],
        now: Optional[datetime] = None,
    ) -> int:
        """Record a commitment and issue a fresh identifier to the caller.

        The identifier is only consumed if issuance succeeds.
        """
        creator = normalize_principal(caller)
        digest = parse_hash32(commitment)
        now = _utc_now(now)

        identifier = self._last_identifier + 1
        self._ledger.issue(identifier, creator)
        self._last_identifier = identifier
        self._records[identifier] = Record(
            identifier=identifier,
            creator=creator,
            commit_time=now,
            commitment=digest,
        )

        logger.info("Committed identifier %d for %s", identifier, creator)
        self._notify(Committed(identifier, creator, to_hex32(digest)))
        return identifier

    def reveal(
        self,
        caller: Principal,
        identifier: int,
        content: bytes,
        user_salt: UserSalt,
        now: Optional[datetime] = None,
    ) -> str:
        """Write *content* and accept it if it satisfies the commitment.

        Returns the content location. Raises NotFound, TooEarly,
        AlreadyRevealed, AlreadyOccupied, ContentTooLarge, InvalidSalt or
        WrongContent. Only the store write survives a failure.
        """
        revealer = normalize_principal(caller)
        record = self.record(identifier)
        now = _utc_now(now)

        opens_at = record.commit_time + self._min_reveal_delay
        if now < opens_at:
            logger.warning("Early reveal of %d by %s rejected", identifier, revealer)
            raise TooEarly(identifier, opens_at.isoformat())
        if record.revealed:
            raise AlreadyRevealed(identifier, record.content_location)

        salt = effective_salt(record.creator, user_salt)
        location = self._store.write(content, salt)

        if commitment_hash(location, record.creator) != record.commitment:
            logger.warning(
                "Reveal of %d by %s wrote %s but does not match the commitment",
                identifier, revealer, location,
            )
            raise WrongContent(identifier, location)

        self._records[identifier] = record.mark_revealed(location)
        logger.info("Revealed identifier %d at %s (by %s)", identifier, location, revealer)
        self._notify(MetadataUpdate(identifier, location, revealer))
        return location

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def exists(self, identifier: int) -> bool:
        return self._ledger.exists(identifier) and identifier in self._records

    def record(self, identifier: int) -> Record:
        if not self.exists(identifier):
            raise NotFound(identifier)
        return self._records[identifier]

    def records(self) -> list[Record]:
        """All records in issuance order."""
        return [self._records[i] for i in range(1, self._last_identifier + 1)]

    def owner_of(self, identifier: int) -> str:
        owner = self._ledger.owner_of(identifier)
        if owner is None:
            raise NotFound(identifier)
        return owner

    def is_revealed(self, identifier: int) -> bool:
        return self.record(identifier).revealed

    def reveal_opens_at(self, identifier: int) -> datetime:
        return self.record(identifier).commit_time + self._min_reveal_delay

    def content_at(self, location: Principal) -> Optional[bytes]:
        return self._store.read(location)

    def content_of(self, identifier: int) -> Optional[bytes]:
        """Revealed content of *identifier*, or None while unrevealed."""
        record = self.record(identifier)
        if record.content_location is None:
            return None
        return self._store.read(record.content_location)

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def restore(self, records: Iterable[Record]) -> None:
        """Load previously persisted records into an empty registry.

        Fail-closed: identifiers must be dense from 1, issued in the
        ledger to the record's creator, and revealed locations must be
        occupied in the store.
        """
        if self._records:
            raise RuntimeError("Cannot restore into a registry that already has records")
        loaded = sorted(records, key=lambda r: r.identifier)
        for expected, record in enumerate(loaded, 1):
            if record.identifier != expected:
                raise ValueError(
                    f"Records not dense: expected identifier {expected}, got {record.identifier}"
                )
            if self._ledger.owner_of(record.identifier) != record.creator:
                raise ValueError(f"Ledger does not match record {record.identifier}")
            if record.revealed and not self._store.is_occupied(record.content_location):
                raise ValueError(
                    f"Record {record.identifier} points at empty location {record.content_location}"
                )
        self._records = {r.identifier: r for r in loaded}
        self._last_identifier = len(loaded)

    def _notify(self, notification: Notification) -> None:
        for observer in self._observers:
            observer(notification)
