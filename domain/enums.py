"""Domain enums for the reservation form."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation status assigned by the server."""

    BOOKED = "booked"
    SEATED = "seated"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class FormMode(str, Enum):
    """Whether the form creates a new reservation or edits an existing one."""

    CREATE = "create"
    EDIT = "edit"


class FormState(str, Enum):
    """Reservation form lifecycle states."""

    IDLE = "idle"              # create mode, nothing typed yet
    LOADING = "loading"        # edit mode, hydration in flight
    EDITING = "editing"
    SUBMITTING = "submitting"  # create/update call in flight
    ERROR = "error"            # last load or submit failed
    DONE = "done"              # saved and navigated away


class ReservationField(str, Enum):
    """Names of the fields the guest can edit."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    MOBILE_NUMBER = "mobile_number"
    RESERVATION_DATE = "reservation_date"
    RESERVATION_TIME = "reservation_time"
    PEOPLE = "people"
