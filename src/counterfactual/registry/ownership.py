"""Token ownership ledger — the minimal collaborator the registry needs.

Issues unique identifiers to owners and answers existence and ownership
queries. Transfer, approval and enumeration are not provided.
"""

from __future__ import annotations

from typing import Optional

from counterfactual.crypto.hashing import Principal, is_null_principal, normalize_principal
from counterfactual.errors import InvalidRecipient


class TokenLedger:
    """One owner per identifier, set once at issuance.

    Usage:
        ledger = TokenLedger()
        ledger.issue(1, "0x...")
        ledger.owner_of(1)   # "0x..."
        ledger.exists(2)     # False
    """

    def __init__(self) -> None:
        self._owners: dict[int, str] = {}
        self._balances: dict[str, int] = {}

    def issue(self, identifier: int, owner: Principal) -> None:
        """Issue *identifier* to *owner*.

        Raises InvalidRecipient for the null principal and ValueError
        for a non-positive or already-issued identifier.
        """
        if is_null_principal(owner):
            raise InvalidRecipient("Cannot issue to the null principal")
        if identifier <= 0:
            raise ValueError(f"Identifier must be positive, got {identifier}")
        if identifier in self._owners:
            raise ValueError(f"Identifier already issued: {identifier}")
        holder = normalize_principal(owner)
        self._owners[identifier] = holder
        self._balances[holder] = self._balances.get(holder, 0) + 1

    def owner_of(self, identifier: int) -> Optional[str]:
        return self._owners.get(identifier)

    def exists(self, identifier: int) -> bool:
        return identifier in self._owners

    def balance_of(self, owner: Principal) -> int:
        return self._balances.get(normalize_principal(owner), 0)

    @property
    def total_supply(self) -> int:
        return len(self._owners)

    def export(self) -> dict[str, str]:
        return {str(identifier): owner for identifier, owner in self._owners.items()}

    def restore(self, owners: dict[str, str]) -> None:
        for identifier, owner in sorted(owners.items(), key=lambda kv: int(kv[0])):
            self.issue(int(identifier), owner)
