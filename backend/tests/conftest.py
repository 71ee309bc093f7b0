# backend/tests/conftest.py
"""
Pytest configuration and shared fixtures for the shift scheduler tests.

All engine tests run against ``MemoryScheduleRepository`` with a fixed clock;
the reference instant is Wednesday 2025-01-15 09:00 UTC.
"""

from datetime import date, datetime, time, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.database.memory_repository import MemoryScheduleRepository
from shift_scheduler.enums import Cadence
from shift_scheduler.models.schedule_model import ScheduleModel
from shift_scheduler.models.shift_model import ShiftInstance
from shift_scheduler.services.retry_handler import RetryHandler

REFERENCE = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def _weekly_model(**overrides) -> ScheduleModel:
    """Monday 09:00-17:00 weekly model of company 1 unless overridden."""
    defaults = {
        "id": 1,
        "company_id": 1,
        "cadence": Cadence.WEEKLY,
        "day_of_week": 0,
        "interval_weeks": 1,
        "start_time": time(9, 0),
        "end_time": time(17, 0),
    }
    defaults.update(overrides)
    return ScheduleModel(**defaults)


def _monthly_model(**overrides) -> ScheduleModel:
    """Day-31 08:00-12:00 monthly model of company 1 unless overridden."""
    defaults = {
        "id": 2,
        "company_id": 1,
        "cadence": Cadence.MONTHLY,
        "day_of_month": 31,
        "start_time": time(8, 0),
        "end_time": time(12, 0),
    }
    defaults.update(overrides)
    return ScheduleModel(**defaults)


def _shift(**overrides) -> ShiftInstance:
    defaults = {
        "company_id": 1,
        "model_id": None,
        "shift_date": date(2025, 1, 20),
        "start_time": time(9, 0),
        "end_time": time(17, 0),
        "is_linked": False,
    }
    defaults.update(overrides)
    return ShiftInstance(**defaults)


@pytest.fixture
def reference() -> datetime:
    return REFERENCE


@pytest.fixture
def fixed_clock():
    return lambda: REFERENCE


@pytest.fixture
def memory_repo(fixed_clock) -> MemoryScheduleRepository:
    """Empty in-memory repository on the fixed clock."""
    return MemoryScheduleRepository(clock=fixed_clock)


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    """Engine configuration with short retry delays."""
    return SchedulerConfig(
        advance_days=14,
        monthly_months_ahead=3,
        max_retry_attempts=3,
        retry_base_delay_ms=0,
        retry_max_delay_ms=0,
    )


@pytest.fixture
def instant_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def retry_handler(memory_repo, scheduler_config, instant_sleep) -> RetryHandler:
    return RetryHandler(memory_repo, scheduler_config, sleep=instant_sleep)


@pytest.fixture
def weekly_model():
    """Factory for weekly schedule models."""
    return _weekly_model


@pytest.fixture
def monthly_model():
    """Factory for monthly schedule models."""
    return _monthly_model


@pytest.fixture
def make_shift():
    """Factory for shift instances (manual, unlinked by default)."""
    return _shift


@pytest.fixture
def mock_async_db():
    """
    Mock async database for testing PostgreSQL operations.

    Returns:
        tuple: (db_mock, connection_mock, cursor_mock) for easy access in tests
    """
    db = MagicMock()
    conn = MagicMock()
    cursor = AsyncMock()
    cursor.rowcount = 0

    db.get_connection.return_value.__aenter__ = AsyncMock(return_value=conn)
    db.get_connection.return_value.__aexit__ = AsyncMock(return_value=None)
    conn.cursor.return_value.__aenter__ = AsyncMock(return_value=cursor)
    conn.cursor.return_value.__aexit__ = AsyncMock(return_value=None)

    return db, conn, cursor
