# backend/shift_scheduler/middleware/error_handler.py
"""
Error handling middleware for FastAPI application.

Catches anything the routers let escape, logs it with a correlation id and
returns a JSON error body without internal details.
"""

import uuid

import psycopg
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..database.exceptions import DatabaseOperationError
from ..enums import LoggerName, LogSource
from ..services.logger import get_service_logger
from ..utils.time_utils import utc_now

logger = get_service_logger(LoggerName.ERROR_HANDLER, LogSource.MIDDLEWARE)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Centralized error handling middleware.

    Catches all unhandled exceptions, logs them with correlation IDs,
    and returns user-friendly error responses.
    """

    def __init__(self, app: ASGIApp, debug_mode: bool = False):
        super().__init__(app)
        self.debug_mode = debug_mode

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}",
                exception=exc,
                error_context={
                    "correlation_id": correlation_id,
                    "exception_type": type(exc).__name__,
                    "path": request.url.path,
                    "client_ip": getattr(request.client, "host", "unknown"),
                },
            )
            return self._create_error_response(exc, correlation_id)

    def _create_error_response(self, exc: Exception, correlation_id: str) -> JSONResponse:
        if isinstance(exc, psycopg.OperationalError):
            error_type, message, status_code = (
                "database_error",
                "Database connection or operation failed",
                503,
            )
        elif isinstance(exc, (psycopg.Error, DatabaseOperationError)):
            error_type, message, status_code = (
                "database_error",
                "Database error occurred",
                500,
            )
        else:
            error_type, message, status_code = (
                "internal_error",
                "An unexpected error occurred",
                500,
            )

        error = {
            "type": error_type,
            "message": message,
            "correlation_id": correlation_id,
            "timestamp": utc_now().isoformat(),
        }
        if self.debug_mode:
            error["detail"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=status_code, content={"error": error})
