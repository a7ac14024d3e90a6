"""Tests for the policy resolver — proves it loads and validates config."""

import pytest
from datetime import timedelta
from pathlib import Path

from counterfactual.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


def _params(**overrides) -> dict:
    params = {
        "reveal": {"min_delay_seconds": 60},
        "store": {"identity": "0x" + "44" * 20},
    }
    params.update(overrides)
    return params


class TestShippedConfig:
    def test_delay(self, resolver: PolicyResolver) -> None:
        assert resolver.min_reveal_delay() == timedelta(seconds=60)

    def test_identity_checksummed(self, resolver: PolicyResolver) -> None:
        identity = resolver.store_identity()
        assert identity.lower() == "0x5c0ad7f2b8f0a36e9c1b4d6e7a3f2b91c0de4a17"

    def test_content_limit(self, resolver: PolicyResolver) -> None:
        assert resolver.max_content_bytes() == 24_575

    def test_presentation(self, resolver: PolicyResolver) -> None:
        presentation = resolver.presentation()
        assert presentation.name_prefix == "Counterfactual"
        assert presentation.unrevealed_placeholder


class TestValidation:
    def test_defaults_for_optional_sections(self) -> None:
        resolver = PolicyResolver.from_dict(_params())
        assert resolver.max_content_bytes() == 24_575
        assert resolver.presentation().unrevealed_placeholder == "(not yet revealed)"

    def test_missing_reveal_section(self) -> None:
        with pytest.raises(ValueError, match="reveal"):
            PolicyResolver.from_dict({"store": {"identity": "0x" + "44" * 20}})

    def test_negative_delay(self) -> None:
        with pytest.raises(ValueError):
            PolicyResolver.from_dict(_params(reveal={"min_delay_seconds": -5}))

    def test_zero_delay(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            PolicyResolver.from_dict(_params(reveal={"min_delay_seconds": 0}))

    def test_bad_identity(self) -> None:
        with pytest.raises(ValueError):
            PolicyResolver.from_dict(_params(store={"identity": "0x1234"}))

    def test_oversized_content_limit(self) -> None:
        with pytest.raises(ValueError, match="max_content_bytes"):
            PolicyResolver.from_dict(
                _params(store={"identity": "0x" + "44" * 20, "max_content_bytes": 30_000})
            )
