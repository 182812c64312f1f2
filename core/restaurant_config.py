"""
Restaurant configuration for opening hours, closed days and the messages
shown when a reservation breaks one of those rules.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class DayOfWeek(Enum):
    """Days of the week (values match date.weekday())."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass
class ValidationMessages:
    """User-facing validation messages."""
    closed_day: str = "The restaurant is closed on {day}."
    past_date: str = "Reservation must be in the future."
    outside_hours: str = "Reservations are only allowed between {open} and {close}."


def format_hhmm(hhmm: int) -> str:
    """Render an HHMM integer the way guests read it (1030 -> "10:30am")."""
    hour, minute = divmod(hhmm, 100)
    suffix = "am" if hour < 12 else "pm"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d}{suffix}"


@dataclass
class BookingRules:
    """Booking rules and constraints."""
    # Exclusive bounds, HHMM
    open_hhmm: int = 1030
    close_hhmm: int = 2130

    closed_weekday: DayOfWeek = DayOfWeek.TUESDAY

    messages: ValidationMessages = field(default_factory=ValidationMessages)

    def is_within_hours(self, hhmm: int) -> bool:
        """Check if an HHMM value lies strictly inside the bookable window."""
        return self.open_hhmm < hhmm < self.close_hhmm

    def is_closed_on(self, weekday: int) -> bool:
        return weekday == self.closed_weekday.value

    @property
    def closed_day_message(self) -> str:
        return self.messages.closed_day.format(day=self.closed_weekday.label)

    @property
    def past_date_message(self) -> str:
        return self.messages.past_date

    @property
    def outside_hours_message(self) -> str:
        return self.messages.outside_hours.format(
            open=format_hhmm(self.open_hhmm),
            close=format_hhmm(self.close_hhmm),
        )


@dataclass
class RestaurantConfig:
    """Complete restaurant configuration."""

    name: str = "Periodic Tables"
    booking_rules: BookingRules = field(default_factory=BookingRules)


def get_default_restaurant_config() -> RestaurantConfig:
    """Get the default restaurant configuration."""
    return RestaurantConfig(
        name="Periodic Tables",
        booking_rules=BookingRules(
            open_hhmm=1030,
            close_hhmm=2130,
            closed_weekday=DayOfWeek.TUESDAY,
        ),
    )


# Singleton instance
_restaurant_config_instance: Optional[RestaurantConfig] = None


def get_restaurant_config() -> RestaurantConfig:
    """Get the restaurant configuration singleton."""
    global _restaurant_config_instance
    if _restaurant_config_instance is None:
        _restaurant_config_instance = get_default_restaurant_config()
    return _restaurant_config_instance
