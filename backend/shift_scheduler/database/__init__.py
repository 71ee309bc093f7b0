"""
Database package for the shift scheduler.

Usage:
    from shift_scheduler.database import async_db
    from shift_scheduler.database.schedule_operations import PostgresScheduleRepository

    repository = PostgresScheduleRepository(async_db, settings.insert_batch_size)
"""

from ..config import settings
from .core import AsyncDatabase
from .memory_repository import MemoryScheduleRepository
from .repository import RepositoryTransaction, ScheduleRepository
from .schedule_operations import PostgresScheduleRepository

# Shared pool used by the API process and the worker process
async_db = AsyncDatabase(
    settings.database_url,
    min_size=settings.db_pool_min_size,
    max_size=settings.db_pool_max_size,
    timeout=settings.db_pool_timeout,
)

__all__ = [
    "AsyncDatabase",
    "async_db",
    "RepositoryTransaction",
    "ScheduleRepository",
    "PostgresScheduleRepository",
    "MemoryScheduleRepository",
]
