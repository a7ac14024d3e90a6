"""Deterministic content store."""

from counterfactual.store.content_store import DeterministicContentStore, MAX_CONTENT_BYTES

__all__ = ["DeterministicContentStore", "MAX_CONTENT_BYTES"]
