"""Domain layer for the reservation form."""

from .enums import (
    ReservationStatus,
    FormMode,
    FormState,
    ReservationField,
)
from .models import (
    EDITABLE_FIELDS,
    ReservationDraft,
    ReservationRecord,
    FormSnapshot,
)

__all__ = [
    # Enums
    "ReservationStatus",
    "FormMode",
    "FormState",
    "ReservationField",
    # Models
    "EDITABLE_FIELDS",
    "ReservationDraft",
    "ReservationRecord",
    "FormSnapshot",
]
