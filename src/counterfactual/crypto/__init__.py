"""Cryptographic primitives — salt packing, location derivation, commitment hashing."""

from counterfactual.crypto.hashing import (
    commitment_hash,
    create2_address,
    effective_salt,
    keccak_hex,
    normalize_principal,
    split_salt,
)

__all__ = [
    "commitment_hash",
    "create2_address",
    "effective_salt",
    "keccak_hex",
    "normalize_principal",
    "split_salt",
]
