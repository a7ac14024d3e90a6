"""Hashing and salt packing for counterfactual commitments.

A commitment binds the future content location to its creator:

    commitment = keccak256(abi.encodePacked(address location, address creator))

The location itself is a CREATE2-style address derived from the store
identity, a 32-byte salt and the hash of the content's init code. The
salt is "effective": the creator address sits in the high 160 bits and
the caller-chosen user salt in the low 96 bits, so two creators picking
the same user salt land in disjoint salt spaces.
"""

from __future__ import annotations

from typing import Union

from eth_utils import (
    decode_hex,
    is_address,
    keccak,
    to_canonical_address,
    to_checksum_address,
)
from web3 import Web3

from counterfactual.errors import InvalidSalt


USER_SALT_BITS = 96
USER_SALT_BYTES = USER_SALT_BITS // 8
SALT_BYTES = 32
NULL_PRINCIPAL = "0x" + "00" * 20

Principal = Union[str, bytes]
UserSalt = Union[int, bytes]


def normalize_principal(value: Principal) -> str:
    """Return the EIP-55 checksummed form of an address.

    Accepts a 20-byte value or a hex string in any case. Mixed-case
    strings must carry a valid checksum.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"expected 20-byte address, got {len(value)} bytes")
        return to_checksum_address("0x" + bytes(value).hex())
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Not a valid address: {value!r}")
    return to_checksum_address(value)


def is_null_principal(value: Principal) -> bool:
    return normalize_principal(value) == to_checksum_address(NULL_PRINCIPAL)


def user_salt_to_int(user_salt: UserSalt) -> int:
    """Coerce a user salt to an integer that fits in the low 96 bits."""
    if isinstance(user_salt, (bytes, bytearray)):
        if len(user_salt) > USER_SALT_BYTES:
            raise InvalidSalt(
                f"User salt is {len(user_salt)} bytes, at most {USER_SALT_BYTES} allowed"
            )
        return int.from_bytes(user_salt, "big")
    if isinstance(user_salt, bool) or not isinstance(user_salt, int):
        raise InvalidSalt(f"User salt must be int or bytes, got {type(user_salt).__name__}")
    if user_salt < 0 or user_salt >= 1 << USER_SALT_BITS:
        raise InvalidSalt(f"User salt {user_salt} does not fit in {USER_SALT_BITS} bits")
    return user_salt


def effective_salt(creator: Principal, user_salt: UserSalt) -> bytes:
    """Pack creator (high 160 bits) and user salt (low 96 bits) into 32 bytes."""
    creator_int = int.from_bytes(to_canonical_address(normalize_principal(creator)), "big")
    packed = (creator_int << USER_SALT_BITS) | user_salt_to_int(user_salt)
    return packed.to_bytes(SALT_BYTES, "big")


def split_salt(salt: bytes) -> tuple[str, int]:
    """Inverse of effective_salt: recover (creator, user_salt)."""
    if len(salt) != SALT_BYTES:
        raise InvalidSalt(f"expected {SALT_BYTES}-byte salt, got {len(salt)}")
    packed = int.from_bytes(salt, "big")
    creator = (packed >> USER_SALT_BITS).to_bytes(20, "big")
    return normalize_principal(creator), packed & ((1 << USER_SALT_BITS) - 1)


def create2_address(deployer: Principal, salt: bytes, init_code_hash: bytes) -> str:
    """Compute keccak256(0xff ++ deployer ++ salt ++ init_code_hash)[12:]."""
    if len(salt) != SALT_BYTES:
        raise InvalidSalt(f"expected {SALT_BYTES}-byte salt, got {len(salt)}")
    if len(init_code_hash) != 32:
        raise ValueError("expected 32-byte init code hash")
    digest = keccak(
        b"\xff" + to_canonical_address(normalize_principal(deployer)) + salt + init_code_hash
    )
    return normalize_principal(digest[12:])


def commitment_hash(location: Principal, creator: Principal) -> bytes:
    """keccak256 over the packed (location, creator) address pair."""
    digest = Web3.solidity_keccak(
        ["address", "address"],
        [normalize_principal(location), normalize_principal(creator)],
    )
    return bytes(digest)


def keccak_hex(data: bytes) -> str:
    """keccak256 of *data* as 0x-prefixed hex."""
    return "0x" + keccak(data).hex()


def to_hex32(value: bytes) -> str:
    """Convert a 32-byte value to a 0x-prefixed hex string."""
    if len(value) != 32:
        raise ValueError("expected 32-byte value")
    return "0x" + value.hex()


def parse_hash32(value: Union[str, bytes]) -> bytes:
    """Parse a 32-byte hash given as raw bytes or 0x-hex text."""
    raw = decode_hex(value) if isinstance(value, str) else bytes(value)
    if len(raw) != 32:
        raise ValueError(f"expected 32-byte hash, got {len(raw)} bytes")
    return raw
