# quickdesk/utils/datetime_utils.py
"""
Strict UTC datetime handling to prevent timezone drift.
All timestamps are stored as naive UTC and serialized with a 'Z' suffix.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional


def get_utc_now() -> datetime:
    """
    Get current UTC time as naive datetime.
    Use this instead of datetime.utcnow().
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_ago(days: int) -> datetime:
    """Naive UTC datetime `days` days before now."""
    return get_utc_now() - timedelta(days=days)


def parse_iso_datetime(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime string to naive UTC.

    Accepts plain dates ("2026-01-21"), naive datetimes (assumed UTC) and
    zone-aware datetimes ("2026-01-21T13:58:00Z", "...+02:00").

    Args:
        date_str: ISO format string

    Returns:
        UTC datetime object (naive, no tzinfo), or None for empty input

    Raises:
        ValueError: If the format is invalid
    """
    if not date_str:
        return None

    date_str = date_str.strip()

    try:
        # Normalize 'Z' to '+00:00' for fromisoformat
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
    except ValueError as e:
        raise ValueError(f"Invalid date format '{date_str}': {str(e)}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert datetime to ISO string with UTC timezone.

    Args:
        dt: datetime object (assumed UTC if naive)

    Returns:
        ISO format string with 'Z' suffix (UTC)
    """
    if dt is None:
        return None

    # If naive, assume it's UTC; if aware, convert to UTC
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Elapsed hours from start to end, or None if either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600

