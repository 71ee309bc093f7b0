from .audit_model import ShiftAuditEntry, ShiftConflict
from .run_model import ModelOutcome, RunAccumulator, RunResult
from .schedule_model import ScheduleModel
from .scheduler_api_model import SchedulerRunRequest, SchedulerStatusResponse
from .shift_model import ShiftInstance

__all__ = [
    "ScheduleModel",
    "ShiftInstance",
    "ShiftAuditEntry",
    "ShiftConflict",
    "ModelOutcome",
    "RunAccumulator",
    "RunResult",
    "SchedulerRunRequest",
    "SchedulerStatusResponse",
]
