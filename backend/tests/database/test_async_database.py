# backend/tests/database/test_async_database.py
"""Tests for pool lifecycle edge cases that need no live database."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shift_scheduler.database.core import AsyncDatabase


@pytest.mark.unit
class TestAsyncDatabase:
    @pytest.mark.asyncio
    async def test_connection_requires_initialized_pool(self):
        db = AsyncDatabase("postgresql://localhost/none")

        with pytest.raises(RuntimeError, match="not initialized"):
            async with db.get_connection():
                pass

    @pytest.mark.asyncio
    async def test_close_without_pool_is_a_no_op(self):
        db = AsyncDatabase("postgresql://localhost/none")

        await db.close()

        assert not db.is_initialized

    @pytest.mark.asyncio
    async def test_health_check_reports_unhealthy_without_pool(self):
        db = AsyncDatabase("postgresql://localhost/none")

        health = await db.health_check()

        assert health["status"] == "unhealthy"
        assert health["pool_stats"] == {}

    @pytest.mark.asyncio
    async def test_health_check_reports_pool_stats(self):
        db = AsyncDatabase("postgresql://localhost/none")
        cursor = AsyncMock()
        conn = MagicMock()
        conn.cursor.return_value.__aenter__ = AsyncMock(return_value=cursor)
        conn.cursor.return_value.__aexit__ = AsyncMock(return_value=None)
        pool = MagicMock()
        pool.connection.return_value.__aenter__ = AsyncMock(return_value=conn)
        pool.connection.return_value.__aexit__ = AsyncMock(return_value=None)
        pool.get_stats.return_value = {"pool_size": 2}
        db._pool = pool

        health = await db.health_check()

        assert health["status"] == "healthy"
        assert health["pool_stats"] == {"pool_size": 2}
        cursor.execute.assert_awaited_once_with("SELECT 1")
