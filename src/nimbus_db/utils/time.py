"""Time utility functions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

__all__ = ["from_epoch_millis", "to_epoch_millis"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """
    Convert a datetime to integer milliseconds since the Unix epoch.

    Naive datetimes are taken to be UTC.

    Examples
    --------
    >>> to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc))
    1000
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_millis(value: int | float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected epoch milliseconds, got {type(value).__name__}")
    return _EPOCH + timedelta(milliseconds=value)
