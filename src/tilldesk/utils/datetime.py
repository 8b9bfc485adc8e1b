# File: src/tilldesk/utils/datetime.py
"""UTC datetime helpers for database timestamps."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Get current UTC datetime as NAIVE for database storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_utc_naive() -> datetime:
    """Alias for now_utc() - both return naive UTC for storage."""
    return now_utc()
