# backend/shift_scheduler/utils/router_helpers.py
"""Shared helpers for router endpoints."""

from functools import wraps
from typing import Callable

from fastapi import HTTPException

from ..enums import LoggerName, LogSource
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.ERROR_HANDLER, LogSource.API)


def handle_exceptions(operation_name: str):
    """
    Decorator for standardized exception handling in router endpoints.

    HTTPExceptions pass through untouched; anything else is logged and
    turned into a 500 naming the operation.

    Usage:
        @handle_exceptions("run scheduler")
        async def run_scheduler():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as e:
                logger.error(f"Error {operation_name}: {e}", exception=e)
                raise HTTPException(
                    status_code=500, detail=f"Failed to {operation_name}"
                ) from e

        return wrapper

    return decorator
