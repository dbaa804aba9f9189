"""Time utilities for database models."""

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def expires_after(seconds: int | None) -> datetime | None:
    """Return the absolute expiry for a relative TTL, or None for no expiry."""
    if seconds is None:
        return None
    return utcnow() + timedelta(seconds=seconds)
