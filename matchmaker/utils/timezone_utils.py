"""Centralized Time Utilities - All timestamp operations should use these functions."""

from datetime import datetime, timezone

UTC = timezone.utc


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Current UTC time as epoch milliseconds (the persisted timestamp format)."""
    return int(utc_now().timestamp() * 1000)
