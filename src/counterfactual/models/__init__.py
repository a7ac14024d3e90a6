"""Data models."""

from counterfactual.models.record import Record

__all__ = ["Record"]
