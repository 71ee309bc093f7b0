# backend/shift_scheduler/database/core.py

"""
Async connection pool management.

Owns the psycopg connection pool and hands out connections that are already
inside a transaction. Retrying contended transactions is the engine's job
(``services/retry_handler.py``), so connections are never retried here.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, Optional

import psycopg
from loguru import logger
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from ..utils.time_utils import utc_now


class AsyncDatabase:
    """
    Async database access built on ``psycopg_pool.AsyncConnectionPool``.

    Usage:
        async with db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
    """

    def __init__(
        self,
        database_url: str,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30,
    ) -> None:
        self.database_url = database_url
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: Optional[AsyncConnectionPool] = None
        self._failed_connections = 0
        self._last_health_check: Optional[datetime] = None
        self._pool_created_at: Optional[datetime] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        """
        Open the connection pool.

        Must be called before any operation; the API lifespan and the worker
        both do so at startup.

        Raises:
            psycopg.Error: If the pool cannot be opened
        """
        if self._pool is not None:
            return
        try:
            self._pool = AsyncConnectionPool(
                self.database_url,
                min_size=self.min_size,
                max_size=max(self.max_size, self.min_size),
                timeout=self.timeout,
                kwargs={
                    "row_factory": dict_row,
                    "connect_timeout": 15,
                    "keepalives_idle": 300,
                    "keepalives_interval": 60,
                    "keepalives_count": 5,
                },
                open=False,
            )
            await self._pool.open()
            self._pool_created_at = utc_now()
            self._failed_connections = 0
        except (psycopg.Error, ConnectionError, OSError) as e:
            self._failed_connections += 1
            self._pool = None
            logger.error(f"Failed to initialize async database pool: {e}")
            raise

    async def close(self) -> None:
        """Close the pool; safe to call when it was never opened."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[Any, None]:
        """
        Yield a pooled connection inside an open transaction.

        The transaction commits when the block exits normally and rolls back
        when it raises.

        Raises:
            RuntimeError: If the pool is not initialized
        """
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            async with conn.transaction():
                yield conn

    async def check_pool_health(self) -> bool:
        """Run ``SELECT 1`` on a pooled connection."""
        if not self._pool:
            return False
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
                    await cur.fetchone()
            self._last_health_check = utc_now()
            return True
        except (psycopg.Error, OSError) as e:
            self._failed_connections += 1
            logger.warning(f"Async database health check failed: {e}")
            return False

    async def health_check(self, timeout: float = 5.0) -> Dict[str, Any]:
        """Health snapshot for the ``/health`` endpoint."""
        started = utc_now()
        try:
            async with asyncio.timeout(timeout):
                healthy = await self.check_pool_health()
        except TimeoutError:
            healthy = False

        stats: Dict[str, Any] = {}
        if self._pool is not None:
            stats = self._pool.get_stats()

        return {
            "status": "healthy" if healthy else "unhealthy",
            "response_time_ms": round(
                (utc_now() - started).total_seconds() * 1000, 2
            ),
            "failed_connections": self._failed_connections,
            "pool_created_at": self._pool_created_at,
            "last_health_check": self._last_health_check,
            "pool_stats": stats,
        }
