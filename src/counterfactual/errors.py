"""Registry error taxonomy.

Every failure aborts the whole operation and is reported synchronously.
The only side effect that survives a failed reveal is the content store
write itself: a location, once written, stays written.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for all commit-reveal registry failures."""


class NotFound(RegistryError, LookupError):
    """The identifier has no record (and therefore no owner)."""

    def __init__(self, identifier: int) -> None:
        super().__init__(f"No record for identifier {identifier}")
        self.identifier = identifier


class TooEarly(RegistryError):
    """The minimum reveal delay has not yet elapsed."""

    def __init__(self, identifier: int, opens_at: str) -> None:
        super().__init__(
            f"Reveal of identifier {identifier} not allowed before {opens_at}"
        )
        self.identifier = identifier
        self.opens_at = opens_at


class WrongContent(RegistryError):
    """The revealed content does not satisfy the stored commitment."""

    def __init__(self, identifier: int, location: str) -> None:
        super().__init__(
            f"Content written at {location} does not match the commitment "
            f"of identifier {identifier}"
        )
        self.identifier = identifier
        self.location = location


class AlreadyOccupied(RegistryError):
    """The target location in the content store already holds data."""

    def __init__(self, location: str) -> None:
        super().__init__(f"Location already occupied: {location}")
        self.location = location


class AlreadyRevealed(AlreadyOccupied):
    """The record already points at revealed content."""

    def __init__(self, identifier: int, location: str) -> None:
        RegistryError.__init__(
            self, f"Identifier {identifier} already revealed at {location}"
        )
        self.identifier = identifier
        self.location = location


class ContentTooLarge(RegistryError):
    """Content exceeds what a single store location can hold."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Content is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


class InvalidSalt(RegistryError, ValueError):
    """A user salt that does not fit the low-order salt field."""


class InvalidRecipient(RegistryError, ValueError):
    """Issuance to the null principal or another unusable owner."""
