"""Cancellation tokens for in-flight requests."""

import asyncio
from typing import Any

from loguru import logger


class CancellationToken:
    """Cooperative cancellation handle for one request.

    The token is bound to the task doing the request's network work.
    ``cancel`` flags the token and cancels that task, which takes effect at
    the task's next suspension point. Once flagged, the request is reported
    as cancelled even if the task had already finished.
    """

    def __init__(self, request_id: str):
        self.request_id = request_id
        self._task: asyncio.Task[Any] | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Task[Any]) -> None:
        """Attach the task to cancel; cancels it at once if the token is already flagged."""
        self._task = task
        if self._cancelled:
            task.cancel()

    def cancel(self) -> bool:
        """Flag the token and cancel the bound task.

        Returns:
            True the first time, False if the token was already cancelled
        """
        if self._cancelled:
            return False
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.trace(f"Cancellation requested for {self.request_id}")
        return True
