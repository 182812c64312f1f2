"""
Reservation API client.

Loads, creates and updates reservations against the restaurant back end.
Responses are wrapped as ``{"data": ...}`` on success and ``{"error": "..."}``
on failure; the error text is what the guest sees.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from core.cancellation import CancellationToken
from core.config import settings
from domain.models import ReservationDraft, ReservationRecord


logger = logging.getLogger(__name__)


class ReservationApiError(Exception):
    """Raised when the reservation API rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ReservationGateway(Protocol):
    """Persistence calls the reservation form depends on."""

    async def load_reservation(
        self, reservation_id: int, token: CancellationToken
    ) -> ReservationRecord:
        ...

    async def create_reservation(
        self, draft: ReservationDraft, token: CancellationToken
    ) -> ReservationRecord:
        ...

    async def update_reservation(
        self, draft: ReservationDraft, token: CancellationToken
    ) -> ReservationRecord:
        ...


class ReservationApiClient:
    """httpx based ``ReservationGateway``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: API root (defaults to settings.api_base_url)
            timeout: Request timeout in seconds (defaults to settings.api_timeout_seconds)
            client: Pre-built httpx client, e.g. one using a test transport
        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.api_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "ReservationApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def load_reservation(
        self, reservation_id: int, token: CancellationToken
    ) -> ReservationRecord:
        """Fetch one reservation for the edit form."""
        data = await self._request("GET", f"/reservations/{reservation_id}", token)
        return self._to_record(data)

    async def create_reservation(
        self, draft: ReservationDraft, token: CancellationToken
    ) -> ReservationRecord:
        """Save a new reservation."""
        data = await self._request(
            "POST", "/reservations", token, json={"data": draft.to_payload()}
        )
        return self._to_record(data)

    async def update_reservation(
        self, draft: ReservationDraft, token: CancellationToken
    ) -> ReservationRecord:
        """Save changes to an existing reservation."""
        if draft.reservation_id is None:
            raise ReservationApiError("Cannot update a reservation without a reservation_id")
        data = await self._request(
            "PUT",
            f"/reservations/{draft.reservation_id}",
            token,
            json={"data": draft.to_payload()},
        )
        return self._to_record(data)

    async def _request(
        self,
        method: str,
        path: str,
        token: CancellationToken,
        json: Optional[Dict[str, Any]] = None
    ) -> Any:
        token.raise_if_cancelled()

        # Cancelling the token aborts the request in flight
        request_task = asyncio.current_task()
        abort = request_task.cancel if request_task is not None else None
        if abort is not None:
            token.add_callback(abort)

        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ReservationApiError(str(e) or "Unable to reach the reservation service") from e
        finally:
            if abort is not None:
                token.remove_callback(abort)

        token.raise_if_cancelled()

        if response.status_code == 204:
            return None

        try:
            payload = response.json()
        except ValueError as e:
            raise ReservationApiError(
                f"Unexpected response from reservation service ({response.status_code})",
                status_code=response.status_code,
            ) from e

        if isinstance(payload, dict) and payload.get("error"):
            logger.info(f"{method} {path} rejected with {response.status_code}: {payload['error']}")
            raise ReservationApiError(str(payload["error"]), status_code=response.status_code)

        if response.is_error:
            raise ReservationApiError(
                f"Reservation service returned {response.status_code}",
                status_code=response.status_code,
            )

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _to_record(data: Any) -> Optional[ReservationRecord]:
        if data is None:
            return None
        try:
            return ReservationRecord.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed reservation in API response: {e}")
            raise ReservationApiError("Received malformed reservation data") from e
