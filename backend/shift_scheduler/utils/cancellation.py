# backend/shift_scheduler/utils/cancellation.py
"""Cooperative cancellation shared between a run and whoever started it."""

import asyncio

from ..exceptions import RunCancelledError


class CancellationToken:
    """
    Set once by the trigger (signal handler, shutdown hook); polled by the
    engine between stages and between models, never inside a transaction.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError("Run cancelled")

    async def wait(self) -> None:
        await self._event.wait()
