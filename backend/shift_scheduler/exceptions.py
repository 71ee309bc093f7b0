# backend/shift_scheduler/exceptions.py
"""
Custom exceptions for the shift scheduler.

Centralized location for all engine-level exception classes. Database layer
errors live in ``database/exceptions.py``.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base exception for all scheduler-specific errors."""

    pass


class ScheduleValidationError(SchedulerError):
    """Request rejected at the boundary before the engine runs."""

    pass


class SchedulerBusyError(SchedulerError):
    """A batch run was requested while another batch run is in progress."""

    pass


class TransientStorageError(SchedulerError):
    """Retriable contention failure (deadlock, serialization conflict)."""

    pass


class FatalStorageError(SchedulerError):
    """Permanent storage failure that must not be retried."""

    pass


class RunCancelledError(SchedulerError):
    """Raised when a cooperative cancellation request is observed."""

    pass


class RetryExhaustedError(SchedulerError):
    """
    Transient failures persisted past the configured attempt bound.

    The last underlying failure is kept on ``last_error`` and chained as
    ``__cause__`` by the retry handler.
    """

    def __init__(
        self,
        operation: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        message = f"{operation} failed after {attempts} attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
