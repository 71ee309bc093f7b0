"""
Database Operation Exceptions.

Database operations raise these instead of logging; the service layer decides
what to log. The original driver error is always chained with ``from e`` and
its SQLSTATE is copied onto the wrapper so the retry handler can still tell
lock contention apart from a broken statement.

Usage:
    try:
        await cur.execute(query, params)
    except psycopg.Error as e:
        raise ScheduleOperationError(
            "Failed to insert shifts",
            operation="insert_shifts",
            sqlstate=e.sqlstate,
        ) from e
"""

from typing import Any, Dict, Optional


class DatabaseOperationError(Exception):
    """
    Base exception for all database operation failures.

    Provides a clean interface for database errors without requiring
    logging dependencies in the database layer.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        sqlstate: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}
        self.sqlstate = sqlstate

    def __str__(self):
        if self.operation:
            return f"{self.operation}: {super().__str__()}"
        return super().__str__()


class ScheduleOperationError(DatabaseOperationError):
    """Schedule model and shift instance operation errors."""

    pass


class AuditOperationError(DatabaseOperationError):
    """Audit trail, conflict and run summary operation errors."""

    pass
