"""Cancellation handle threaded through every asynchronous reservation call."""

import asyncio
import logging
from typing import Callable, List, Optional


logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Signals that the caller no longer wants the result of an operation.

    Once cancelled a token stays cancelled. Callbacks registered with
    ``add_callback`` run exactly once, at cancellation time (or immediately
    if the token is already cancelled).
    """

    def __init__(self, reason: Optional[str] = None):
        self._cancelled = False
        self._reason = reason
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel the token. Repeated calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason or self._reason
        logger.debug(f"Cancellation requested: {self._reason or 'no reason given'}")

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        """Raise asyncio.CancelledError if the token has been cancelled."""
        if self._cancelled:
            raise asyncio.CancelledError(self._reason)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
