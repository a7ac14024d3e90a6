"""Tests for salt packing, location derivation and commitment hashing."""

import pytest
from eth_utils import keccak, to_canonical_address

from counterfactual.crypto.hashing import (
    commitment_hash,
    create2_address,
    effective_salt,
    is_null_principal,
    keccak_hex,
    normalize_principal,
    parse_hash32,
    split_salt,
    to_hex32,
)
from counterfactual.errors import InvalidSalt


ALICE = normalize_principal("0x" + "11" * 20)
BOB = normalize_principal("0x" + "22" * 20)


class TestNormalizePrincipal:
    def test_lowercase_is_checksummed(self) -> None:
        addr = "0xdeadbeef00000000000000000000000000000000"
        assert normalize_principal(addr).lower() == addr
        assert normalize_principal(normalize_principal(addr)) == normalize_principal(addr)

    def test_bytes_accepted(self) -> None:
        assert normalize_principal(b"\x11" * 20) == ALICE

    def test_short_bytes_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_principal(b"\x11" * 19)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_principal("not-an-address")

    def test_null_principal(self) -> None:
        assert is_null_principal("0x" + "00" * 20)
        assert not is_null_principal(ALICE)


class TestEffectiveSalt:
    def test_creator_in_high_bits(self) -> None:
        salt = effective_salt(ALICE, 0)
        assert len(salt) == 32
        assert salt[:20] == to_canonical_address(ALICE)
        assert salt[20:] == b"\x00" * 12

    def test_user_salt_in_low_bits(self) -> None:
        salt = effective_salt(ALICE, 0x0102)
        assert salt[:20] == to_canonical_address(ALICE)
        assert salt[-2:] == b"\x01\x02"

    def test_bytes_user_salt(self) -> None:
        assert effective_salt(ALICE, b"\x01\x02") == effective_salt(ALICE, 0x0102)

    def test_same_user_salt_different_creators_disjoint(self) -> None:
        assert effective_salt(ALICE, 7) != effective_salt(BOB, 7)

    def test_max_user_salt(self) -> None:
        salt = effective_salt(ALICE, (1 << 96) - 1)
        assert salt[20:] == b"\xff" * 12

    def test_oversized_user_salt_rejected(self) -> None:
        with pytest.raises(InvalidSalt):
            effective_salt(ALICE, 1 << 96)

    def test_negative_user_salt_rejected(self) -> None:
        with pytest.raises(InvalidSalt):
            effective_salt(ALICE, -1)

    def test_oversized_bytes_rejected(self) -> None:
        with pytest.raises(InvalidSalt):
            effective_salt(ALICE, b"\x00" * 13)

    def test_invalid_salt_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            effective_salt(ALICE, "7")

    def test_split_inverts_pack(self) -> None:
        assert split_salt(effective_salt(BOB, 12345)) == (BOB, 12345)


class TestCreate2Address:
    def test_eip1014_example_zero(self) -> None:
        address = create2_address("0x" + "00" * 20, b"\x00" * 32, keccak(b"\x00"))
        assert address.lower() == "0x4d1a2e2bb4f88f0250f26ffff098b0b30b26bf38"

    def test_eip1014_example_one(self) -> None:
        address = create2_address(
            "0xdeadbeef00000000000000000000000000000000", b"\x00" * 32, keccak(b"\x00")
        )
        assert address.lower() == "0xb928f69bb1d91cd65274e3c79d8986362984fda3"

    def test_salt_must_be_32_bytes(self) -> None:
        with pytest.raises(InvalidSalt):
            create2_address(ALICE, b"\x00" * 31, keccak(b""))


class TestCommitmentHash:
    def test_matches_packed_encoding(self) -> None:
        expected = keccak(to_canonical_address(BOB) + to_canonical_address(ALICE))
        assert commitment_hash(BOB, ALICE) == expected

    def test_order_matters(self) -> None:
        assert commitment_hash(ALICE, BOB) != commitment_hash(BOB, ALICE)

    def test_creator_matters(self) -> None:
        location = normalize_principal("0x" + "33" * 20)
        assert commitment_hash(location, ALICE) != commitment_hash(location, BOB)

    def test_hex_roundtrip(self) -> None:
        digest = commitment_hash(ALICE, BOB)
        assert parse_hash32(to_hex32(digest)) == digest

    def test_parse_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            parse_hash32("0x1234")


class TestKeccakHex:
    def test_empty_input(self) -> None:
        assert keccak_hex(b"") == (
            "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_matches_raw_digest(self) -> None:
        assert keccak_hex(b"hello") == "0x" + keccak(b"hello").hex()
