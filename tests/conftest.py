"""Pytest configuration and fixtures for reservation form tests."""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from core.cancellation import CancellationToken
from core.utils_datetime import TIMEZONE
from domain.models import ReservationDraft, ReservationRecord
from forms.reservation_form import ReservationFormController
from services.reservation_api import ReservationApiClient, ReservationApiError


# 2024-03-13 is a Wednesday
NOW = TIMEZONE.localize(datetime(2024, 3, 13, 12, 0))
FUTURE_WEDNESDAY = "2024-03-20"
FUTURE_TUESDAY = "2024-03-19"
PAST_TUESDAY = "2024-03-12"
PAST_MONDAY = "2024-03-11"
TODAY = "2024-03-13"

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "mobile_number",
    "reservation_date",
    "reservation_time",
    "people",
)


class FakeGateway:
    """In-memory ReservationGateway with switchable failures and blocking."""

    def __init__(self) -> None:
        self.records: Dict[int, ReservationRecord] = {}
        self.loaded: List[int] = []
        self.created: List[ReservationDraft] = []
        self.updated: List[ReservationDraft] = []
        self.tokens: List[CancellationToken] = []
        self.load_error: Optional[str] = None
        self.save_error: Optional[str] = None
        # When set, every call waits for ``release`` before answering
        self.block = False
        self.release = asyncio.Event()
        # Simulates a collaborator that finishes its work even when cancelled
        self.ignore_cancellation = False

    async def _wait(self) -> None:
        if not self.block:
            return
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            if not self.ignore_cancellation:
                raise

    async def load_reservation(self, reservation_id, token):
        self.loaded.append(reservation_id)
        self.tokens.append(token)
        await self._wait()
        if self.load_error:
            raise ReservationApiError(self.load_error, status_code=404)
        return self.records[reservation_id]

    async def create_reservation(self, draft, token):
        self.created.append(draft)
        self.tokens.append(token)
        await self._wait()
        if self.save_error:
            raise ReservationApiError(self.save_error, status_code=400)
        return ReservationRecord(reservation_id=1, status="booked", **_record_fields(draft))

    async def update_reservation(self, draft, token):
        self.updated.append(draft)
        self.tokens.append(token)
        await self._wait()
        if self.save_error:
            raise ReservationApiError(self.save_error, status_code=400)
        return ReservationRecord(
            reservation_id=draft.reservation_id, status=draft.status, **_record_fields(draft)
        )


def _record_fields(draft: ReservationDraft) -> Dict[str, Any]:
    return {
        "first_name": draft.first_name,
        "last_name": draft.last_name,
        "mobile_number": draft.mobile_number,
        "reservation_date": draft.reservation_date,
        "reservation_time": draft.reservation_time,
        "people": int(draft.people),
    }


class FakeNavigator:
    """Records navigation requests."""

    def __init__(self) -> None:
        self.paths: List[str] = []
        self.back_count = 0

    def navigate(self, path: str) -> None:
        self.paths.append(path)

    def go_back(self) -> None:
        self.back_count += 1


@pytest.fixture(scope="function")
def now():
    """Fixed 'current time': Wednesday 2024-03-13 12:00 in the reference timezone."""
    return NOW


@pytest.fixture(scope="function")
def gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def navigator():
    return FakeNavigator()


@pytest.fixture(scope="function")
def make_form(gateway, navigator, now):
    """Factory fixture building a controller wired to the fakes and a fixed clock."""
    def _make(reservation_id=None, **kwargs):
        kwargs.setdefault("clock", lambda: now)
        return ReservationFormController(gateway, navigator, reservation_id, **kwargs)
    return _make


@pytest.fixture(scope="function")
def sample_form_values():
    """Valid values for every guest-editable field."""
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "mobile_number": "8005551212",
        "reservation_date": FUTURE_WEDNESDAY,
        "reservation_time": "18:00",
        "people": "4",
    }


@pytest.fixture(scope="function")
def fill_form(sample_form_values):
    """Type every field into a controller, with optional overrides."""
    def _fill(controller, **overrides):
        values = {**sample_form_values, **overrides}
        for field_name, value in values.items():
            controller.on_change(field_name, value)
        return values
    return _fill


@pytest.fixture(scope="function")
def sample_record():
    """A stored reservation as the API returns it."""
    return ReservationRecord(
        reservation_id=5,
        first_name="Grace",
        last_name="Hopper",
        mobile_number="(212) 555-0100",
        reservation_date="2024-03-21T00:00:00.000Z",
        reservation_time="19:30:00",
        people=2,
        status="booked",
    )


# ============================================================================
# Fake reservation back end
# ============================================================================

def build_fake_backend(store: Dict[int, Dict[str, Any]]) -> FastAPI:
    """Minimal reservation API speaking the {"data"}/{"error"} envelope."""
    app = FastAPI()

    def missing_field(data: Dict[str, Any]) -> Optional[str]:
        for field_name in REQUIRED_FIELDS:
            if not data.get(field_name):
                return field_name
        return None

    def stored(reservation_id: int, data: Dict[str, Any], status: str) -> Dict[str, Any]:
        return {
            **data,
            "reservation_id": reservation_id,
            "status": status,
            "reservation_date": f"{data['reservation_date']}T00:00:00.000Z",
            "reservation_time": f"{data['reservation_time']}:00",
            "created_at": "2024-03-13T19:00:00.000Z",
            "updated_at": "2024-03-13T19:00:00.000Z",
        }

    @app.get("/reservations/{reservation_id}")
    async def read_reservation(reservation_id: int):
        if reservation_id not in store:
            return JSONResponse(
                status_code=404,
                content={"error": f"Reservation {reservation_id} cannot be found."},
            )
        return {"data": store[reservation_id]}

    @app.post("/reservations", status_code=201)
    async def create_reservation(body: Dict[str, Any] = Body(...)):
        data = body.get("data") or {}
        missing = missing_field(data)
        if missing:
            return JSONResponse(status_code=400, content={"error": f"{missing} is required"})
        reservation_id = max(store, default=0) + 1
        store[reservation_id] = stored(reservation_id, data, "booked")
        return {"data": store[reservation_id]}

    @app.put("/reservations/{reservation_id}")
    async def update_reservation(reservation_id: int, body: Dict[str, Any] = Body(...)):
        if reservation_id not in store:
            return JSONResponse(
                status_code=404,
                content={"error": f"Reservation {reservation_id} cannot be found."},
            )
        data = body.get("data") or {}
        missing = missing_field(data)
        if missing:
            return JSONResponse(status_code=400, content={"error": f"{missing} is required"})
        store[reservation_id] = stored(reservation_id, data, store[reservation_id]["status"])
        return {"data": store[reservation_id]}

    return app


@pytest.fixture(scope="function")
def backend_store():
    return {
        7: {
            "reservation_id": 7,
            "first_name": "Alan",
            "last_name": "Turing",
            "mobile_number": "(800) 555-1212",
            "reservation_date": "2024-03-22T00:00:00.000Z",
            "reservation_time": "20:15:00",
            "people": 3,
            "status": "booked",
            "created_at": "2024-03-01T10:00:00.000Z",
            "updated_at": "2024-03-01T10:00:00.000Z",
        }
    }


@pytest_asyncio.fixture
async def api_client(backend_store):
    """ReservationApiClient talking to the fake back end in-process."""
    app = build_fake_backend(backend_store)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield ReservationApiClient(base_url="http://testserver", client=http_client)
