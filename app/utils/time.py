"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return to_epoch_ms(now_utc())


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, assuming UTC when naive."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)
