# backend/shift_scheduler/middleware/api_key.py
"""
API key authentication middleware.

Requests must carry the configured key in the ``X-Api-Key`` header. Status
and health endpoints stay open for probes. With no key configured the
middleware lets everything through.
"""

import secrets
from typing import Iterable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..constants import API_KEY_EXEMPT_PATHS, API_KEY_HEADER
from ..enums import LoggerName, LogSource
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.MIDDLEWARE, LogSource.MIDDLEWARE)


class ApiKeyMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        api_key: Optional[str] = None,
        exempt_paths: Iterable[str] = API_KEY_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.api_key = api_key
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.api_key or request.url.path in self.exempt_paths:
            return await call_next(request)

        provided = request.headers.get(API_KEY_HEADER)
        if provided is None:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: missing API key",
                extra_context={"path": request.url.path},
            )
            return JSONResponse(
                status_code=401, content={"detail": f"{API_KEY_HEADER} header missing"}
            )
        if not secrets.compare_digest(provided, self.api_key):
            logger.warning(
                f"Rejected {request.method} {request.url.path}: invalid API key",
                extra_context={"path": request.url.path},
            )
            return JSONResponse(status_code=401, content={"detail": "Invalid API key"})

        return await call_next(request)
