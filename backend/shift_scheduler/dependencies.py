# backend/shift_scheduler/dependencies.py
"""
FastAPI dependency providers.

The workflow service is a process-wide singleton so the batch guard and the
last-result cache are shared by every request.
"""

from typing import Annotated, Optional

from fastapi import Depends

from .config import settings
from .database import PostgresScheduleRepository, async_db
from .database.core import AsyncDatabase
from .services.scheduler_workflow_service import SchedulerWorkflowService

_workflow_service: Optional[SchedulerWorkflowService] = None


async def get_async_database() -> AsyncDatabase:
    """Get async database instance."""
    return async_db


def get_scheduler_workflow_service() -> SchedulerWorkflowService:
    """Get the shared SchedulerWorkflowService, creating it on first use."""
    global _workflow_service
    if _workflow_service is None:
        repository = PostgresScheduleRepository(async_db, settings.insert_batch_size)
        _workflow_service = SchedulerWorkflowService(
            repository, settings.scheduler_config()
        )
    return _workflow_service


AsyncDatabaseDep = Annotated[AsyncDatabase, Depends(get_async_database)]
SchedulerWorkflowServiceDep = Annotated[
    SchedulerWorkflowService, Depends(get_scheduler_workflow_service)
]
