"""Domain models using Pydantic v2 for the reservation form."""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from core.utils_datetime import format_reservation_date, format_reservation_time
from .enums import FormMode, FormState, ReservationField, ReservationStatus


EDITABLE_FIELDS = frozenset(f.value for f in ReservationField)


class ReservationDraft(BaseModel):
    """
    In-progress reservation as it appears in the form.

    Values are kept exactly as typed (strings) so the form can echo them
    back. Drafts are frozen: every edit produces a new draft via ``with_field``.
    """

    reservation_id: Optional[int] = Field(None, description="Present only when editing")
    first_name: str = ""
    last_name: str = ""
    mobile_number: str = ""
    reservation_date: str = Field("", description="YYYY-MM-DD")
    reservation_time: str = Field("", description="HH:MM")
    people: str = Field("", description="Party size as typed")
    status: Optional[ReservationStatus] = Field(None, description="Server-assigned, read only")

    model_config = ConfigDict(frozen=True)

    def with_field(self, field_name: str, value: str) -> "ReservationDraft":
        """Return a copy with one guest-editable field replaced."""
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"{field_name!r} is not an editable reservation field")
        return self.model_copy(update={field_name: value})

    @property
    def is_blank(self) -> bool:
        return not any(getattr(self, name) for name in EDITABLE_FIELDS)

    def to_payload(self) -> Dict[str, Any]:
        """Request body for the reservation API."""
        payload: Dict[str, Any] = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "mobile_number": self.mobile_number,
            "reservation_date": self.reservation_date,
            "reservation_time": self.reservation_time,
            "people": int(self.people) if self.people.strip().isdigit() else self.people,
        }
        if self.reservation_id is not None:
            payload["reservation_id"] = self.reservation_id
        if self.status is not None:
            payload["status"] = self.status.value
        return payload


class ReservationRecord(BaseModel):
    """Reservation as returned by the reservation API."""

    reservation_id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    mobile_number: str = ""
    reservation_date: str = ""
    reservation_time: str = ""
    people: Optional[int] = Field(None, ge=1)
    status: Optional[ReservationStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        from_attributes=True,
    )

    @field_validator("reservation_date", mode="before")
    @classmethod
    def trim_date(cls, v: Any) -> Any:
        """Dates may come back as full ISO timestamps."""
        if v is None:
            return ""
        return format_reservation_date(str(v))

    @field_validator("reservation_time", mode="before")
    @classmethod
    def trim_time(cls, v: Any) -> Any:
        """Times may come back with seconds."""
        if v is None:
            return ""
        return format_reservation_time(str(v))

    def to_draft(self) -> ReservationDraft:
        return ReservationDraft(
            reservation_id=self.reservation_id,
            first_name=self.first_name,
            last_name=self.last_name,
            mobile_number=self.mobile_number,
            reservation_date=self.reservation_date,
            reservation_time=self.reservation_time,
            people="" if self.people is None else str(self.people),
            status=self.status,
        )


class FormSnapshot(BaseModel):
    """Everything a view needs to render the reservation form."""

    mode: FormMode
    state: FormState
    title: str
    draft: ReservationDraft
    errors: List[str] = Field(default_factory=list)
    is_submitting: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def can_submit(self) -> bool:
        return not self.errors and self.state in (FormState.IDLE, FormState.EDITING)
