"""Commitment registry and its token-ownership collaborator."""

from counterfactual.registry.commitment_registry import (
    CommitmentRegistry,
    Committed,
    MetadataUpdate,
)
from counterfactual.registry.ownership import TokenLedger

__all__ = ["CommitmentRegistry", "Committed", "MetadataUpdate", "TokenLedger"]
