"""
DateTime utilities for reservation form input.
Reservation dates are anchored to a fixed reference UTC offset (PDT by default).
"""
from datetime import datetime, date, time, tzinfo
from typing import Optional
import re

import pytz

from core.config import settings


DATE_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
TIME_PATTERN = re.compile(r'^(\d{2}):(\d{2})')


def reference_timezone(offset_minutes: Optional[int] = None) -> tzinfo:
    """Fixed-offset timezone reservation dates are interpreted in."""
    if offset_minutes is None:
        offset_minutes = settings.reference_utc_offset_minutes
    return pytz.FixedOffset(offset_minutes)


TIMEZONE = reference_timezone()


def get_current_datetime() -> datetime:
    """Get current datetime in the reference timezone."""
    return datetime.now(TIMEZONE)


def parse_reservation_date(text: Optional[str]) -> Optional[date]:
    """
    Parse a form date value (YYYY-MM-DD) into a date object.

    Trailing content such as an ISO time part is ignored.

    Returns:
        date object or None if parsing fails
    """
    if not text:
        return None

    match = DATE_PATTERN.match(text.strip())
    if not match:
        return None

    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def time_to_hhmm(text: Optional[str]) -> Optional[int]:
    """
    Collapse an HH:MM value into a four digit HHMM integer ("18:45" -> 1845).

    The value is not range checked; "25:99" gives 2599.
    """
    if not text:
        return None

    match = TIME_PATTERN.match(text.strip())
    if not match:
        return None
    return int(match.group(1) + match.group(2))


def date_start_instant(value: date, offset_minutes: Optional[int] = None) -> datetime:
    """Midnight at the start of ``value`` in the reference timezone."""
    return reference_timezone(offset_minutes).localize(datetime.combine(value, time(0, 0)))


def format_reservation_date(value: Optional[str]) -> Optional[str]:
    """Trim an API date ("2025-01-01T00:00:00.000Z") to YYYY-MM-DD."""
    if not value:
        return value
    match = DATE_PATTERN.match(value.strip())
    return "-".join(match.groups()) if match else value


def format_reservation_time(value: Optional[str]) -> Optional[str]:
    """Trim an API time ("18:00:00") to HH:MM."""
    if not value:
        return value
    match = TIME_PATTERN.match(value.strip())
    return f"{match.group(1)}:{match.group(2)}" if match else value
