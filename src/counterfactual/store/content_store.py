"""Deterministic content store — write-once storage keyed by content and salt.

Content is laid out the way SSTORE2 deploys data contracts: the stored
body is a STOP byte followed by the data (so the body can never run as
code), wrapped in a tiny creation prefix that copies it into place.
The location of a write is the CREATE2 address of that init code under
the store's identity and the caller's salt, so anyone can predict it
before the write happens.

Locations are write-once. There is no delete and no overwrite.
"""

from __future__ import annotations

import logging
from typing import Optional

from eth_utils import keccak

from counterfactual.crypto.hashing import Principal, create2_address, normalize_principal
from counterfactual.errors import AlreadyOccupied, ContentTooLarge


logger = logging.getLogger(__name__)

# PUSH4 <len> DUP1 PUSH1 0x0e PUSH1 0x00 CODECOPY PUSH1 0x00 RETURN
_CREATION_PREFIX = bytes.fromhex("63")
_CREATION_SUFFIX = bytes.fromhex("80600e6000396000f3")
_DATA_OFFSET = b"\x00"

# EIP-170 code size limit, minus the leading STOP byte.
MAX_CONTENT_BYTES = 24_576 - len(_DATA_OFFSET)


class DeterministicContentStore:
    """Write-once content store with predictable locations.

    Usage:
        store = DeterministicContentStore(identity="0x...")
        location = store.predict_location(b"hello", salt)
        assert store.write(b"hello", salt) == location
        assert store.read(location) == b"hello"
    """

    def __init__(
        self,
        identity: Principal,
        max_content_bytes: int = MAX_CONTENT_BYTES,
    ) -> None:
        if max_content_bytes <= 0 or max_content_bytes > MAX_CONTENT_BYTES:
            raise ValueError(
                f"max_content_bytes must be in (0, {MAX_CONTENT_BYTES}], got {max_content_bytes}"
            )
        self._identity = normalize_principal(identity)
        self._max_content_bytes = max_content_bytes
        self._contents: dict[str, bytes] = {}

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def max_content_bytes(self) -> int:
        return self._max_content_bytes

    @property
    def occupied_count(self) -> int:
        return len(self._contents)

    def init_code(self, content: bytes) -> bytes:
        """Creation code that would place *content* at its location."""
        body = _DATA_OFFSET + bytes(content)
        return _CREATION_PREFIX + len(body).to_bytes(4, "big") + _CREATION_SUFFIX + body

    def predict_location(self, content: bytes, salt: bytes) -> str:
        """Where *content* would land under *salt*. Writes nothing."""
        self._check_size(content)
        return create2_address(self._identity, salt, keccak(self.init_code(content)))

    def write(self, content: bytes, salt: bytes) -> str:
        """Write *content* at its predicted location and return the location.

        Raises AlreadyOccupied if the location already holds data. The
        write is final the moment this returns.
        """
        location = self.predict_location(content, salt)
        if location in self._contents:
            raise AlreadyOccupied(location)
        self._contents[location] = bytes(content)
        logger.debug("Stored %d bytes at %s", len(content), location)
        return location

    def read(self, location: Principal) -> Optional[bytes]:
        """Content at *location*, or None if nothing was ever written there."""
        return self._contents.get(normalize_principal(location))

    def is_occupied(self, location: Principal) -> bool:
        return normalize_principal(location) in self._contents

    def export(self) -> dict[str, str]:
        """Location → hex content, for persistence."""
        return {loc: data.hex() for loc, data in self._contents.items()}

    def restore(self, entries: dict[str, str]) -> None:
        """Load exported entries.

        Salts are not stored, so only the address format and the
        write-once rule are checked here.
        """
        for location, data_hex in entries.items():
            loc = normalize_principal(location)
            if loc in self._contents:
                raise AlreadyOccupied(loc)
            self._contents[loc] = bytes.fromhex(data_hex)

    def _check_size(self, content: bytes) -> None:
        if len(content) > self._max_content_bytes:
            raise ContentTooLarge(len(content), self._max_content_bytes)
