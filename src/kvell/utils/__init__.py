"""Utility modules."""

from kvell.utils.validation import ttl_seconds, validate_key, validate_ttl

__all__ = ["ttl_seconds", "validate_key", "validate_ttl"]
