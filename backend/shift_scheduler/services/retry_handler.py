# backend/shift_scheduler/services/retry_handler.py
"""
Retry Handler - runs one unit of work per repository transaction.

Every attempt opens a fresh transaction, so a failed attempt rolls back
completely before the next one starts and the unit of work can be re-run from
scratch. Lock contention (deadlocks, serialization failures, lock timeouts) is
retried with exponential backoff plus jitter; everything else propagates on
the first occurrence.

The handler does not log. Callers that want visibility pass ``on_retry``.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import SchedulerConfig
from ..constants import RETRY_JITTER_RATIO, RETRY_MIN_DELAY_MS, TRANSIENT_SQLSTATES
from ..database.repository import RepositoryTransaction, ScheduleRepository
from ..enums import FailureKind
from ..exceptions import RetryExhaustedError, TransientStorageError

T = TypeVar("T")

UnitOfWork = Callable[[RepositoryTransaction], Awaitable[T]]
RetryCallback = Callable[[str, int, float, BaseException], None]


def classify_failure(error: BaseException) -> FailureKind:
    """
    Decide whether a failure is worth retrying.

    Walks the exception chain so driver errors wrapped by the database layer
    are still recognised by their SQLSTATE.
    """
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, TransientStorageError):
            return FailureKind.TRANSIENT
        sqlstate = getattr(current, "sqlstate", None)
        if sqlstate in TRANSIENT_SQLSTATES:
            return FailureKind.TRANSIENT
        current = current.__cause__
    return FailureKind.FATAL


class RetryHandler:
    """Transaction runner with bounded retry of transient storage failures."""

    def __init__(
        self,
        repository: ScheduleRepository,
        config: SchedulerConfig,
        on_retry: Optional[RetryCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.repository = repository
        self.config = config
        self.on_retry = on_retry
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt: int) -> float:
        """
        Seconds to wait after failed attempt number ``attempt`` (1-based).

        base * 2^(attempt-1), +/-25% jitter, floored at 50 ms and capped at the
        configured maximum.
        """
        base_ms = self.config.retry_base_delay_ms * (2 ** (attempt - 1))
        jitter = self._rng.uniform(-RETRY_JITTER_RATIO, RETRY_JITTER_RATIO)
        delay_ms = base_ms * (1 + jitter)
        if self.config.retry_max_delay_ms:
            delay_ms = min(delay_ms, self.config.retry_max_delay_ms)
        return max(delay_ms, RETRY_MIN_DELAY_MS) / 1000.0

    async def execute(self, unit_of_work: UnitOfWork, operation: str) -> T:
        """
        Run ``unit_of_work`` inside a transaction, retrying transient failures.

        Args:
            unit_of_work: Coroutine function receiving the open transaction
            operation: Name used in errors and retry callbacks

        Returns:
            Whatever the unit of work returns from its committed attempt

        Raises:
            RetryExhaustedError: Transient failures on every allowed attempt
            Exception: Any fatal failure, unchanged, on first occurrence
        """
        max_attempts = self.config.max_retry_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.repository.transaction() as tx:
                    return await unit_of_work(tx)
            except Exception as e:
                if classify_failure(e) == FailureKind.FATAL:
                    raise
                if attempt >= max_attempts:
                    raise RetryExhaustedError(operation, attempt, e) from e
                delay = self.backoff_delay(attempt)
                if self.on_retry is not None:
                    self.on_retry(operation, attempt, delay, e)
                await self._sleep(delay)
