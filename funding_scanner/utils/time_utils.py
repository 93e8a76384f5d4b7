"""
Time utilities for funding schedules.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from .math_utils import safe_decimal


def get_utc_datetime() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert timestamp to datetime"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def parse_epoch(value: Any, unit_ms: bool = True) -> Optional[datetime]:
    """
    Parse an exchange epoch field (milliseconds by default) to a UTC datetime.

    Returns None for missing, zero or unparseable values.
    """
    raw = safe_decimal(value)
    if raw is None or not raw.is_finite() or raw <= 0:
        return None
    seconds = float(raw) / 1000 if unit_ms else float(raw)
    try:
        return timestamp_to_datetime(seconds)
    except (OverflowError, OSError, ValueError):
        return None


def to_iso_string(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision (ex: 2024-01-01T08:00:00.000Z)"""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
