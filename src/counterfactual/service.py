"""Registry service — unified facade over the commit-reveal registry.

This is the primary interface for programmatic access. It wires:
- Policy (reveal delay, store identity, presentation strings)
- Deterministic content store and token ledger
- Commitment registry (commit, reveal, read accessors)
- Presentation (metadata documents, token URIs)
- Persistence (event log, state snapshot)

All operations return a ServiceResult. Registry failures are reported
as errors, never swallowed. Every state change is logged to the event
log when one is wired.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from counterfactual import __version__
from counterfactual.crypto.hashing import (
    Principal,
    UserSalt,
    commitment_hash,
    effective_salt,
    keccak_hex,
    normalize_principal,
    split_salt,
    to_hex32,
)
from counterfactual.errors import RegistryError
from counterfactual.models.record import Record
from counterfactual.persistence.event_log import EventKind, EventLog, EventRecord
from counterfactual.persistence.state_store import StateStore
from counterfactual.policy.resolver import PolicyResolver
from counterfactual.presentation.metadata import build_document, token_uri
from counterfactual.registry.commitment_registry import (
    CommitmentRegistry,
    Committed,
    MetadataUpdate,
    Notification,
)
from counterfactual.registry.ownership import TokenLedger
from counterfactual.store.content_store import DeterministicContentStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class RegistryService:
    """Commit-reveal registry facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = RegistryService(resolver)

        result = service.commit_content(alice, b"hello", user_salt=0)
        token_id = result.data["identifier"]
        # ... at least resolver.min_reveal_delay() later ...
        result = service.reveal(alice, token_id, b"hello", user_salt=0)
        service.token_uri(token_id)

    Persistence (optional):
        service = RegistryService(resolver, event_log=log, state_store=store)
        # State is saved after each mutation and loaded on construction.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._resolver = resolver
        self._presentation = resolver.presentation()
        self._store = DeterministicContentStore(
            identity=resolver.store_identity(),
            max_content_bytes=resolver.max_content_bytes(),
        )
        self._ledger = TokenLedger()
        self._registry = CommitmentRegistry(
            self._store,
            ledger=self._ledger,
            min_reveal_delay=resolver.min_reveal_delay(),
        )

        self._event_log = event_log
        self._state_store = state_store
        if state_store is not None:
            state_store.load_into(self._registry)

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0
        self._audit_warnings: list[str] = []
        self._persistence_degraded: bool = False

        self._registry.subscribe(self._on_notification)

    @property
    def registry(self) -> CommitmentRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Off-system computation
    # ------------------------------------------------------------------

    def predict(
        self, content: bytes, creator: Principal, user_salt: UserSalt
    ) -> ServiceResult:
        """Predict location, effective salt and commitment for content.

        The effective salt is also shown split back into its creator and
        user salt halves, as the store will see them.
        """
        try:
            salt = effective_salt(creator, user_salt)
            salt_creator, salt_user = split_salt(salt)
            location = self._store.predict_location(content, salt)
            return ServiceResult(success=True, data={
                "creator": normalize_principal(creator),
                "effective_salt": to_hex32(salt),
                "salt_creator": salt_creator,
                "user_salt": salt_user,
                "init_code_hash": keccak_hex(self._store.init_code(content)),
                "location": location,
                "commitment": to_hex32(commitment_hash(location, creator)),
                "occupied": self._store.is_occupied(location),
            })
        except (RegistryError, ValueError) as e:
            return ServiceResult(success=False, errors=[str(e)])

    def compute_commitment(
        self, content: bytes, creator: Principal, user_salt: UserSalt
    ) -> ServiceResult:
        """The commitment *creator* would submit for *content* under *user_salt*."""
        try:
            location = self._registry.predict_location(content, creator, user_salt)
            digest = commitment_hash(location, creator)
        except (RegistryError, ValueError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={
            "commitment": to_hex32(digest),
            "location": location,
        })

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def commit(
        self,
        caller: Principal,
        commitment: Union[bytes, str],
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Commit a precomputed commitment hash."""
        try:
            identifier = self._registry.commit(caller, commitment, now=now)
        except (RegistryError, ValueError) as e:
            logger.warning("Commit by %s rejected: %s", caller, e)
            return ServiceResult(success=False, errors=[str(e)])

        record = self._registry.record(identifier)
        return self._finish(ServiceResult(success=True, data={
            "identifier": identifier,
            "creator": record.creator,
            "commitment": record.commitment_hex,
            "reveal_opens_at": self._registry.reveal_opens_at(identifier).isoformat(),
        }))

    def commit_content(
        self,
        caller: Principal,
        content: bytes,
        user_salt: UserSalt,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Compute the caller's commitment for *content* and commit it."""
        computed = self.compute_commitment(content, caller, user_salt)
        if not computed.success:
            return computed
        return self.commit(caller, computed.data["commitment"], now=now)

    def reveal(
        self,
        caller: Principal,
        identifier: int,
        content: bytes,
        user_salt: UserSalt,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Reveal content for *identifier*. Anyone may call this."""
        occupied_before = self._store.occupied_count
        try:
            location = self._registry.reveal(caller, identifier, content, user_salt, now=now)
        except (RegistryError, ValueError) as e:
            self._record_event(EventKind.REVEAL_REJECTED, str(caller), {
                "identifier": identifier,
                "reason": type(e).__name__,
                "detail": str(e),
            })
            errors = [str(e), *self._audit_warnings]
            self._audit_warnings = []
            # A rejected reveal may still have consumed a store location.
            if self._store.occupied_count != occupied_before:
                warning = self._safe_persist_post_audit()
                if warning:
                    errors.append(warning)
            return ServiceResult(success=False, errors=errors)

        return self._finish(ServiceResult(success=True, data={
            "identifier": identifier,
            "content_location": location,
        }))

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_record(self, identifier: int) -> Optional[Record]:
        if not self._registry.exists(identifier):
            return None
        return self._registry.record(identifier)

    def document(self, identifier: int) -> ServiceResult:
        """Metadata document for *identifier*."""
        try:
            record = self._registry.record(identifier)
            content = self._registry.content_of(identifier)
        except RegistryError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(
            success=True,
            data=build_document(record, content, self._presentation),
        )

    def token_uri(self, identifier: int) -> ServiceResult:
        try:
            record = self._registry.record(identifier)
            content = self._registry.content_of(identifier)
        except RegistryError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(
            success=True,
            data={"token_uri": token_uri(record, content, self._presentation)},
        )

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        records = self._registry.records()
        revealed = sum(1 for r in records if r.revealed)
        return {
            "version": __version__,
            "store_identity": self._store.identity,
            "min_reveal_delay_seconds": int(self._registry.min_reveal_delay.total_seconds()),
            "records": {
                "total": len(records),
                "revealed": revealed,
                "unrevealed": len(records) - revealed,
            },
            "store": {"occupied_locations": self._store.occupied_count},
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_notification(self, notification: Notification) -> None:
        """Translate registry notifications into audit events."""
        if isinstance(notification, Committed):
            payload = {"identifier": notification.identifier}
            self._record_event(EventKind.TOKEN_ISSUED, notification.creator, {
                **payload, "owner": notification.creator,
            })
            self._record_event(EventKind.COMMITTED, notification.creator, {
                **payload, "commitment": notification.commitment,
            })
        elif isinstance(notification, MetadataUpdate):
            self._record_event(EventKind.REVEALED, notification.revealed_by, {
                "identifier": notification.identifier,
                "content_location": notification.content_location,
            })
            self._record_event(EventKind.METADATA_UPDATE, "registry", {
                "identifier": notification.identifier,
            })

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        """Append an audit event. Failures are kept as warnings for the caller."""
        if self._event_log is None:
            return
        try:
            self._event_log.append(EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            ))
        except (ValueError, OSError) as e:
            logger.error("Event log failure for %s: %s", kind.value, e)
            self._audit_warnings.append(f"Event log failure: {e}")

    def _finish(self, result: ServiceResult) -> ServiceResult:
        """Persist after a successful mutation and attach any warnings."""
        warnings = self._audit_warnings
        self._audit_warnings = []
        persist_warning = self._safe_persist_post_audit()
        if persist_warning:
            warnings.append(persist_warning)
        if warnings:
            result.data["warnings"] = warnings
        return result

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the registry has already changed.

        Never rolls back: store writes are irreversible. On failure the
        snapshot is stale, so the degraded flag is raised for operators.
        """
        if self._state_store is None:
            return None
        try:
            self._state_store.save(self._registry)
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.error("State snapshot failed: %s", e)
            return f"Persistence degraded: {e}; state snapshot is stale"
