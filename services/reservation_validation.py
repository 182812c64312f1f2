"""
Field-level reservation validation.

Each rule looks at the single field that just changed and returns the
messages to show for it. Messages are kept per field in ``FieldErrors`` so
that fixing one field never hides a problem reported for another.
"""

import logging
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from core.utils_datetime import (
    TIMEZONE,
    date_start_instant,
    get_current_datetime,
    parse_reservation_date,
    time_to_hhmm,
)
from core.restaurant_config import RestaurantConfig, get_restaurant_config
from domain.enums import ReservationField


logger = logging.getLogger(__name__)

# Key for errors that come from the API rather than from a field rule
REQUEST_ERRORS_KEY = "request"


# ============================================================================
# Date & Time Rules
# ============================================================================

def _ensure_aware(now: Optional[datetime]) -> datetime:
    if now is None:
        return get_current_datetime()
    if now.tzinfo is None:
        return TIMEZONE.localize(now)
    return now


def validate_reservation_date(
    value: Optional[str],
    now: Optional[datetime] = None,
    config: Optional[RestaurantConfig] = None,
    offset_minutes: Optional[int] = None
) -> List[str]:
    """
    Validate a reservation date against the closed day and the current time.

    The date is taken as midnight in the reference timezone. When both
    rules fail the closed-day message comes first.

    Args:
        value: Form value, YYYY-MM-DD
        now: Current time (defaults to the wall clock)
        config: Restaurant configuration
        offset_minutes: Reference UTC offset (defaults to settings)

    Returns:
        List of validation messages, empty if the date is acceptable
    """
    rules = (config or get_restaurant_config()).booking_rules
    now = _ensure_aware(now)

    reservation_date = parse_reservation_date(value)
    if reservation_date is None:
        # Presence and format are enforced by the date input itself
        logger.debug(f"Skipping date rules for unparsable value {value!r}")
        return []

    instant = date_start_instant(reservation_date, offset_minutes)
    closed = rules.is_closed_on(reservation_date.weekday())
    in_past = instant <= now

    messages = []
    if closed:
        messages.append(rules.closed_day_message)
    if in_past:
        messages.append(rules.past_date_message)
    return messages


def validate_reservation_time(
    value: Optional[str],
    config: Optional[RestaurantConfig] = None
) -> List[str]:
    """
    Validate that a reservation time falls strictly inside opening hours.

    Args:
        value: Form value, HH:MM

    Returns:
        List with the opening hours message, or empty if the time is fine
    """
    rules = (config or get_restaurant_config()).booking_rules

    hhmm = time_to_hhmm(value)
    if hhmm is not None and rules.is_within_hours(hhmm):
        return []
    return [rules.outside_hours_message]


# ============================================================================
# Dispatch
# ============================================================================

VALIDATED_FIELDS = (
    ReservationField.RESERVATION_DATE.value,
    ReservationField.RESERVATION_TIME.value,
)


def validation_field_names() -> List[str]:
    """Names of the fields that carry validation rules."""
    return list(VALIDATED_FIELDS)


def validate_field(
    field_name: str,
    value: Optional[str],
    now: Optional[datetime] = None,
    config: Optional[RestaurantConfig] = None,
    offset_minutes: Optional[int] = None
) -> List[str]:
    """
    Run the rule for one changed field.

    Fields without a rule (names, phone, party size) always pass; the phone
    number is reformatted rather than checked.
    """
    if field_name == ReservationField.RESERVATION_DATE.value:
        return validate_reservation_date(value, now, config, offset_minutes)
    if field_name == ReservationField.RESERVATION_TIME.value:
        return validate_reservation_time(value, config)
    return []


# ============================================================================
# Error Store
# ============================================================================

class FieldErrors:
    """
    Validation messages keyed by field.

    ``messages`` is the concatenation of every non-empty entry, in the order
    the keys were first reported.
    """

    def __init__(self) -> None:
        self._errors: Dict[str, List[str]] = {}

    def replace(self, key: str, messages: List[str]) -> None:
        """Replace all messages for ``key``; an empty list clears it."""
        if key in self._errors:
            self._errors[key] = list(messages)
        elif messages:
            self._errors[key] = list(messages)

    def append(self, key: str, message: str) -> None:
        self._errors.setdefault(key, []).append(message)

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._errors.clear()
        else:
            self._errors.pop(key, None)

    def for_field(self, key: str) -> List[str]:
        return list(self._errors.get(key, []))

    @property
    def messages(self) -> List[str]:
        return [message for messages in self._errors.values() for message in messages]

    def __iter__(self) -> Iterator[str]:
        return iter(self.messages)

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"FieldErrors({self._errors!r})"
