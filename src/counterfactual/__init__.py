"""Counterfactual — a commit-reveal registry for content that does not exist yet."""

__version__ = "0.1.0"
