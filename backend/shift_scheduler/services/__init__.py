from .cleanup_service import CleanupResult, CleanupService
from .date_calculator import compute_occurrences
from .retry_handler import RetryHandler, classify_failure
from .schedule_generation import MonthlyScheduleService, WeeklyScheduleService
from .scheduler_job import SchedulerJob
from .scheduler_workflow_service import SchedulerWorkflowService

__all__ = [
    "compute_occurrences",
    "classify_failure",
    "RetryHandler",
    "CleanupResult",
    "CleanupService",
    "WeeklyScheduleService",
    "MonthlyScheduleService",
    "SchedulerJob",
    "SchedulerWorkflowService",
]
