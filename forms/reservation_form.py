"""
Reservation form controller.

Holds the draft and the validation messages for the new/edit reservation
form, reformats and validates fields as they change, and saves the draft
through a ``ReservationGateway``.

State machine::

    IDLE/EDITING/ERROR --change--> EDITING
    IDLE/EDITING       --submit--> SUBMITTING --ok--> DONE
                                              --fail--> ERROR
    LOADING --ok--> EDITING
            --fail--> ERROR

Submits are ignored while any message is showing and while a load or save
is in flight. ``close()`` cancels outstanding work; nothing changes after it.
"""
import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Union

from core.cancellation import CancellationToken
from core.config import Settings, settings as default_settings
from core.logging import LogContext, get_logger
from core.restaurant_config import RestaurantConfig, get_restaurant_config
from core.utils_datetime import get_current_datetime
from domain.enums import FormMode, FormState, ReservationField
from domain.models import EDITABLE_FIELDS, FormSnapshot, ReservationDraft
from services.phone_formatting import normalize_phone_number
from services.reservation_api import ReservationApiError, ReservationGateway
from services.reservation_validation import (
    REQUEST_ERRORS_KEY,
    FieldErrors,
    validate_field,
    validation_field_names,
)


logger = get_logger(__name__)

EDITABLE_STATES = frozenset({FormState.IDLE, FormState.EDITING, FormState.ERROR})
BUSY_STATES = frozenset({FormState.LOADING, FormState.SUBMITTING, FormState.DONE})

Listener = Callable[[FormSnapshot], None]


class Navigator(Protocol):
    """Page navigation used by the form."""

    def navigate(self, path: str) -> None:
        ...

    def go_back(self) -> None:
        ...


def failure_message(error: BaseException) -> str:
    """Text shown to the guest for a failed load or save."""
    if isinstance(error, ReservationApiError):
        return error.message
    return str(error) or error.__class__.__name__


class ReservationFormController:
    """Create/edit workflow behind the reservation form."""

    def __init__(
        self,
        gateway: ReservationGateway,
        navigator: Navigator,
        reservation_id: Optional[Union[int, str]] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        config: Optional[RestaurantConfig] = None,
        app_settings: Optional[Settings] = None
    ):
        """
        Initialize the form.

        Args:
            gateway: Loads and saves reservations
            navigator: Navigation after save or cancel
            reservation_id: Reservation to edit; None opens an empty form
            clock: Returns the current aware datetime (defaults to the wall clock)
            config: Restaurant rules
            app_settings: Application settings
        """
        self.gateway = gateway
        self.navigator = navigator
        self.config = config or get_restaurant_config()
        self.settings = app_settings or default_settings
        self._clock = clock or get_current_datetime

        if reservation_id is not None:
            self.mode = FormMode.EDIT
            self._draft = ReservationDraft(reservation_id=reservation_id)
            self._state = FormState.LOADING
        else:
            self.mode = FormMode.CREATE
            self._draft = ReservationDraft()
            self._state = FormState.IDLE
        self.reservation_id = self._draft.reservation_id

        self._errors = FieldErrors()
        self._token = CancellationToken()
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "ReservationFormController":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> Optional[asyncio.Task]:
        """Start loading the reservation when editing. Must run inside an event loop."""
        if self.mode is FormMode.CREATE or self._closed:
            return None
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._hydrate())
        return self._task

    def close(self) -> None:
        """Tear the form down, cancelling any load or save in flight."""
        if self._closed:
            return
        self._closed = True
        self._token.cancel("reservation form closed")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._listeners.clear()
        logger.debug(f"Reservation form closed in state {self._state.value}")

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_change(self, field_name: str, raw_value: Optional[str]) -> None:
        """
        Apply one keystroke-level change.

        The phone number is reformatted; date and time are validated and
        replace their own messages. Any load/save error is cleared since the
        guest is correcting the form.

        Raises:
            ValueError: if ``field_name`` is not a guest-editable field
        """
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"{field_name!r} is not an editable reservation field")

        if self._closed or self._state not in EDITABLE_STATES:
            logger.debug(f"Ignoring change to {field_name} while {self._state.value}")
            return

        value = raw_value or ""
        if field_name == ReservationField.MOBILE_NUMBER.value:
            value = normalize_phone_number(value) or ""

        self._draft = self._draft.with_field(field_name, value)

        if field_name in validation_field_names():
            messages = validate_field(
                field_name,
                value,
                now=self._clock(),
                config=self.config,
                offset_minutes=self.settings.reference_utc_offset_minutes,
            )
            self._errors.replace(field_name, messages)
            if messages:
                logger.debug(f"{field_name}={value!r}: {messages}")

        self._errors.clear(REQUEST_ERRORS_KEY)
        self._set_state(FormState.EDITING)

    def on_submit(self) -> Optional[asyncio.Task]:
        """
        Save the draft.

        Returns:
            The task running the save, or None if the submit was ignored
        """
        if self._closed or self._state in BUSY_STATES:
            logger.debug(f"Ignoring submit while {self._state.value}")
            return None

        if self._errors:
            logger.info(f"Submit blocked by {len(self._errors)} validation message(s)")
            return None

        if self.mode is FormMode.EDIT:
            self._errors.clear()

        draft = self._draft
        self._set_state(FormState.SUBMITTING)
        self._task = asyncio.get_running_loop().create_task(self._submit(draft))
        return self._task

    def on_cancel(self) -> None:
        """Leave the form without saving."""
        self.close()
        self.navigator.go_back()

    # ------------------------------------------------------------------
    # Async operations
    # ------------------------------------------------------------------

    async def _hydrate(self) -> None:
        with LogContext(logger, reservation_id=self.reservation_id, mode=self.mode.value) as ctx:
            ctx.log("debug", "Loading reservation")
            try:
                record = await self.gateway.load_reservation(self.reservation_id, self._token)
            except asyncio.CancelledError:
                ctx.log("debug", "Reservation load cancelled")
                raise
            except Exception as e:
                if self._token.cancelled:
                    ctx.log("debug", "Dropping load failure after close")
                    return
                self._log_failure(ctx, "Reservation load failed", e)
                self._errors.clear()
                self._errors.append(REQUEST_ERRORS_KEY, failure_message(e))
                self._set_state(FormState.ERROR)
                return

            if self._token.cancelled:
                ctx.log("debug", "Dropping loaded reservation after close")
                return

            if record is not None:
                # The id in the URL wins over whatever the API echoes back
                self._draft = record.to_draft().model_copy(
                    update={"reservation_id": self.reservation_id}
                )
            self._set_state(FormState.EDITING)
            ctx.log("info", "Reservation loaded")

    async def _submit(self, draft: ReservationDraft) -> None:
        with LogContext(logger, reservation_id=self.reservation_id, mode=self.mode.value) as ctx:
            try:
                if self.mode is FormMode.EDIT:
                    await self.gateway.update_reservation(draft, self._token)
                else:
                    await self.gateway.create_reservation(draft, self._token)
            except asyncio.CancelledError:
                ctx.log("debug", "Reservation save cancelled")
                raise
            except Exception as e:
                if self._token.cancelled:
                    ctx.log("debug", "Dropping save failure after close")
                    return
                self._log_failure(ctx, "Reservation save failed", e)
                self._errors.append(REQUEST_ERRORS_KEY, failure_message(e))
                self._set_state(FormState.ERROR)
                return

            if self._token.cancelled:
                ctx.log("debug", "Dropping save result after close")
                return

            self._set_state(FormState.DONE)
            ctx.log("info", "Reservation saved", reservation_date=draft.reservation_date)
            self.navigator.navigate(self.settings.dashboard_url_for(draft.reservation_date))

    @staticmethod
    def _log_failure(ctx: LogContext, message: str, error: Exception) -> None:
        if isinstance(error, ReservationApiError):
            ctx.log("warning", f"{message}: {error.message}", status_code=error.status_code)
        else:
            ctx.logger.exception(f"{message}: {error}", extra=ctx.context)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def draft(self) -> ReservationDraft:
        return self._draft

    @property
    def errors(self) -> List[str]:
        """Messages to display, in the order they were reported."""
        return self._errors.messages

    def errors_for(self, field_name: str) -> List[str]:
        return self._errors.for_field(field_name)

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def is_submitting(self) -> bool:
        return self._state is FormState.SUBMITTING

    @property
    def title(self) -> str:
        return "Edit Reservation" if self.mode is FormMode.EDIT else "New Reservation"

    def snapshot(self) -> FormSnapshot:
        return FormSnapshot(
            mode=self.mode,
            state=self._state,
            title=self.title,
            draft=self._draft,
            errors=self.errors,
            is_submitting=self.is_submitting,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener`` with a fresh snapshot after every change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: FormState) -> None:
        if state is not self._state:
            logger.debug(f"Reservation form {self._state.value} -> {state.value}")
        self._state = state
        if self._listeners:
            snapshot = self.snapshot()
            for listener in list(self._listeners):
                listener(snapshot)
