"""Input validation utilities."""

from datetime import timedelta

from kvell.exceptions import ConfigError, ValidationError


def validate_key(key: str) -> str:
    """Validate a record key.

    Args:
        key: The key to validate

    Returns:
        The validated key

    Raises:
        ValidationError: If the key is empty or not a string
    """
    if not isinstance(key, str):
        raise ValidationError(f"key must be a string, got {type(key).__name__}")
    if not key:
        raise ValidationError("key is empty")
    return key


def validate_ttl(ttl: timedelta | int | float | None) -> timedelta:
    """Normalize a TTL to a non-negative timedelta.

    Numbers are taken as seconds; None means disabled.
    """
    if ttl is None:
        return timedelta(0)
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    if ttl < timedelta(0):
        raise ConfigError("ttl cannot be negative")
    return ttl


def ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for a TTL, rounding partial seconds up."""
    seconds = int(ttl.total_seconds())
    if timedelta(seconds=seconds) < ttl:
        seconds += 1
    return seconds
