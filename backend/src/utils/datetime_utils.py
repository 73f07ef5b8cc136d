"""
Datetime utilities for consistent timezone handling across the application.

All instants inside the allocation engine are timezone-aware UTC. Duty
schedules and clinic hours are wall-clock times in the clinic timezone, a
fixed UTC offset configured by CLINIC_UTC_OFFSET_HOURS.
"""

import logging
from datetime import datetime, timezone, timedelta, date, time
from typing import Optional

from core.config import CLINIC_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

# Clinic timezone constant
CLINIC_TZ = timezone(timedelta(hours=CLINIC_UTC_OFFSET_HOURS))


def utc_now() -> datetime:
    """Get the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: Datetime to normalise

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def truncate_to_minute(dt: datetime) -> datetime:
    """Drop seconds and microseconds; the engine works at minute precision."""
    return dt.replace(second=0, microsecond=0)


def to_clinic_local(dt: datetime) -> datetime:
    """Convert an instant to clinic wall-clock time."""
    utc_dt = ensure_utc(dt)
    assert utc_dt is not None
    return utc_dt.astimezone(CLINIC_TZ)


def clinic_datetime(day: date, clock: time) -> datetime:
    """Build the UTC instant for a clinic wall-clock time on a given day."""
    return datetime.combine(day, clock, tzinfo=CLINIC_TZ).astimezone(timezone.utc)


def format_utc_iso(dt: datetime) -> str:
    """
    Format an instant as an ISO-8601 UTC timestamp with a Z suffix.

    Example: "2026-03-05T15:30:00Z"
    """
    utc_dt = ensure_utc(dt)
    assert utc_dt is not None
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_clinic_clock(dt: datetime) -> str:
    """Format an instant as clinic-local "HH:MM"."""
    return to_clinic_local(dt).strftime("%H:%M")


def parse_datetime_string_to_utc(dt_str: str) -> datetime:
    """
    Parse an ISO format datetime string and convert to UTC.

    Handles various datetime string formats:
    - ISO format with timezone (e.g., "2026-03-05T12:30:00-03:00")
    - ISO format with Z (e.g., "2026-03-05T15:30:00Z")
    - ISO format without timezone (assumed to be UTC)

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    try:
        dt = datetime.fromisoformat(dt_str.strip().replace('Z', '+00:00'))
    except ValueError as e:
        raise ValueError(f"Invalid datetime string format: {dt_str}") from e

    utc_dt = ensure_utc(dt)
    assert utc_dt is not None
    return utc_dt


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD format.

    Raises:
        ValueError: If date string is not in YYYY-MM-DD format
    """
    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD") from e
