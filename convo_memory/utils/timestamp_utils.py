"""
Timestamp utilities for consistent time handling across the system.

All timestamps handled by the engine are timezone-aware UTC datetimes and are
persisted as ISO-8601 strings.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO-8601 string.

    Args:
        value: datetime to convert (naive values are assumed to be UTC)

    Returns:
        ISO string, or None when value is None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts ISO strings, unix seconds and datetime objects. Anything that cannot be
    parsed is treated as missing.

    Args:
        value: Raw stored value

    Returns:
        datetime object, or None when the value is absent or malformed
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_since(start: datetime, end: Optional[datetime] = None) -> str:
    """Human readable elapsed time between two instants, e.g. '3 hours'."""
    end = end or utc_now()
    seconds = int((end - start).total_seconds())
    if seconds < 60:
        return f'{seconds} seconds'
    minutes = seconds // 60
    if minutes < 60:
        return f'{minutes} minutes'
    hours = minutes // 60
    if hours < 24:
        return f'{hours} hours'
    return f'{hours // 24} days'


def format_timestamp(value: Optional[datetime]) -> str:
    """Short display form used in prompts, e.g. 'Mar 4, 09:15'."""
    value = value or utc_now()
    return f'{value:%b} {value.day}, {value:%H:%M}'
