"""Tests for RegistryService — proves the facade orchestrates correctly."""

import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from counterfactual.crypto.hashing import keccak_hex, normalize_principal
from counterfactual.persistence.event_log import EventKind, EventLog
from counterfactual.policy.resolver import PolicyResolver
from counterfactual.service import RegistryService


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
ALICE = normalize_principal("0x" + "11" * 20)
BOB = normalize_principal("0x" + "22" * 20)
T0 = datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)
DELAY = timedelta(seconds=60)


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def service(resolver: PolicyResolver) -> RegistryService:
    return RegistryService(resolver, event_log=EventLog())


class TestEndToEnd:
    def test_commit_wait_reveal_present(self, service: RegistryService) -> None:
        predicted = service.predict(b"hello", ALICE, 0)
        assert predicted.success
        assert predicted.data["occupied"] is False

        committed = service.commit(ALICE, predicted.data["commitment"], now=T0)
        assert committed.success
        assert committed.data["identifier"] == 1
        assert committed.data["reveal_opens_at"] == (T0 + DELAY).isoformat()

        before = service.document(1)
        assert before.success
        assert before.data["revealed"] is False

        revealed = service.reveal(ALICE, 1, b"hello", 0, now=T0 + DELAY)
        assert revealed.success
        assert revealed.data["content_location"] == predicted.data["location"]

        after = service.document(1)
        assert after.data["revealed"] is True
        assert after.data["content"] == "hello"
        assert after.data["content_location"] == predicted.data["location"]

    def test_commit_content_shortcut(self, service: RegistryService) -> None:
        result = service.commit_content(ALICE, b"hello", 3, now=T0)
        assert result.success
        assert result.data["commitment"] == service.predict(b"hello", ALICE, 3).data["commitment"]

    def test_compute_commitment_matches_predict(self, service: RegistryService) -> None:
        computed = service.compute_commitment(b"hello", ALICE, 3)
        predicted = service.predict(b"hello", ALICE, 3)
        assert computed.success
        assert computed.data["commitment"] == predicted.data["commitment"]
        assert computed.data["location"] == predicted.data["location"]
        assert not service.compute_commitment(b"hello", ALICE, 1 << 96).success

    def test_predict_splits_effective_salt(self, service: RegistryService) -> None:
        predicted = service.predict(b"hello", ALICE.lower(), 0xABCDEF)
        assert predicted.data["salt_creator"] == ALICE
        assert predicted.data["user_salt"] == 0xABCDEF
        assert predicted.data["init_code_hash"] == keccak_hex(
            service.registry.store.init_code(b"hello")
        )

    def test_third_party_reveal(self, service: RegistryService) -> None:
        service.commit_content(ALICE, b"hello", 0, now=T0)
        result = service.reveal(BOB, 1, b"hello", 0, now=T0 + DELAY)
        assert result.success
        assert service.get_record(1).creator == ALICE


class TestFailures:
    def test_too_early(self, service: RegistryService) -> None:
        service.commit_content(ALICE, b"hello", 0, now=T0)
        result = service.reveal(ALICE, 1, b"hello", 0, now=T0 + DELAY - timedelta(seconds=1))
        assert not result.success
        assert "not allowed before" in result.errors[0]

    def test_wrong_content(self, service: RegistryService) -> None:
        service.commit_content(ALICE, b"X", 0, now=T0)
        result = service.reveal(ALICE, 1, b"Y", 0, now=T0 + DELAY)
        assert not result.success
        assert service.get_record(1).content_location is None

    def test_unknown_identifier(self, service: RegistryService) -> None:
        assert not service.reveal(ALICE, 5, b"X", 0, now=T0).success
        assert not service.document(5).success
        assert not service.token_uri(5).success
        assert service.get_record(5) is None

    def test_bad_salt(self, service: RegistryService) -> None:
        assert not service.predict(b"X", ALICE, 1 << 96).success
        assert not service.commit_content(ALICE, b"X", -1, now=T0).success

    def test_bad_commitment(self, service: RegistryService) -> None:
        result = service.commit(ALICE, "0x1234", now=T0)
        assert not result.success
        assert service.status()["records"]["total"] == 0

    def test_null_caller(self, service: RegistryService) -> None:
        assert not service.commit(normalize_principal("0x" + "00" * 20), b"\x01" * 32).success

    def test_naive_timestamps_rejected(self, service: RegistryService) -> None:
        result = service.commit_content(ALICE, b"hello", 0, now=datetime(2020, 1, 1, 12))
        assert not result.success
        assert "timezone-aware" in result.errors[0]
        assert service.status()["records"]["total"] == 0

        service.commit_content(ALICE, b"hello", 0, now=T0)
        result = service.reveal(ALICE, 1, b"hello", 0, now=datetime(2026, 2, 16, 13))
        assert not result.success
        assert service.get_record(1).content_location is None


class TestAuditEvents:
    def test_commit_events(self, resolver: PolicyResolver) -> None:
        log = EventLog()
        service = RegistryService(resolver, event_log=log)
        service.commit_content(ALICE, b"hello", 0, now=T0)
        kinds = [e.event_kind for e in log.events()]
        assert kinds == [EventKind.TOKEN_ISSUED, EventKind.COMMITTED]

    def test_single_metadata_update_per_reveal(self, resolver: PolicyResolver) -> None:
        log = EventLog()
        service = RegistryService(resolver, event_log=log)
        service.commit_content(ALICE, b"hello", 0, now=T0)
        service.reveal(ALICE, 1, b"nope", 0, now=T0 + DELAY)
        service.reveal(ALICE, 1, b"hello", 0, now=T0 + DELAY)
        service.reveal(ALICE, 1, b"hello", 0, now=T0 + DELAY)
        assert len(log.events(EventKind.METADATA_UPDATE)) == 1
        assert len(log.events(EventKind.REVEALED)) == 1
        rejected = log.events(EventKind.REVEAL_REJECTED)
        assert [e.payload["reason"] for e in rejected] == ["WrongContent", "AlreadyRevealed"]


class TestStatus:
    def test_counts(self, service: RegistryService) -> None:
        service.commit_content(ALICE, b"a", 0, now=T0)
        service.commit_content(BOB, b"b", 0, now=T0)
        service.reveal(ALICE, 1, b"a", 0, now=T0 + DELAY)
        status = service.status()
        assert status["records"] == {"total": 2, "revealed": 1, "unrevealed": 1}
        assert status["store"]["occupied_locations"] == 1
        assert status["min_reveal_delay_seconds"] == 60
        assert status["persistence_degraded"] is False

    def test_token_uri(self, service: RegistryService) -> None:
        service.commit_content(ALICE, b"a", 0, now=T0)
        result = service.token_uri(1)
        assert result.data["token_uri"].startswith("data:application/json;base64,")
