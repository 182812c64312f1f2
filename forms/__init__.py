"""Reservation form workflow."""

from .reservation_form import (
    Navigator,
    ReservationFormController,
    failure_message,
)

__all__ = [
    "Navigator",
    "ReservationFormController",
    "failure_message",
]
