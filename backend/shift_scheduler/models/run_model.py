# backend/shift_scheduler/models/run_model.py
"""
Run result models.

``RunAccumulator`` is the mutable per-run counter set the engine fills as
stages commit; ``RunResult`` is the write-once record returned to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import RunStage, RunStatus
from .audit_model import ShiftAuditEntry, ShiftConflict


@dataclass
class ModelOutcome:
    """Counters and audit records staged for one model's transaction."""

    model_id: int
    created: int = 0
    duplicates_skipped: int = 0
    overlaps_blocked: int = 0
    audit_entries: List[ShiftAuditEntry] = field(default_factory=list)
    conflicts: List[ShiftConflict] = field(default_factory=list)


@dataclass
class RunAccumulator:
    """Counters for one run. Only committed work is merged in."""

    run_id: str
    shifts_created: int = 0
    duplicates_skipped: int = 0
    overlaps_blocked: int = 0
    orphaned_deleted: int = 0
    reset_deleted: int = 0
    weekly_models_loaded: int = 0
    monthly_models_loaded: int = 0
    audit_entries: List[ShiftAuditEntry] = field(default_factory=list)
    conflicts: List[ShiftConflict] = field(default_factory=list)

    def merge(self, outcome: ModelOutcome) -> None:
        self.shifts_created += outcome.created
        self.duplicates_skipped += outcome.duplicates_skipped
        self.overlaps_blocked += outcome.overlaps_blocked
        self.audit_entries.extend(outcome.audit_entries)
        self.conflicts.extend(outcome.conflicts)


class RunResult(BaseModel):
    """Aggregate outcome of one scheduler invocation."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    stage: RunStage
    reference_time: datetime
    started_at: datetime
    shifts_created: int = 0
    duplicates_skipped: int = 0
    overlaps_blocked: int = 0
    orphaned_deleted: int = 0
    reset_deleted: int = 0
    weekly_models_loaded: int = 0
    monthly_models_loaded: int = 0
    conflicts: int = 0
    audit_entries: int = 0
    duration_seconds: float = Field(default=0.0, ge=0)
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    @classmethod
    def from_accumulator(
        cls,
        accumulator: RunAccumulator,
        status: RunStatus,
        stage: RunStage,
        reference_time: datetime,
        started_at: datetime,
        duration_seconds: float,
        error_message: Optional[str] = None,
    ) -> "RunResult":
        return cls(
            run_id=accumulator.run_id,
            status=status,
            stage=stage,
            reference_time=reference_time,
            started_at=started_at,
            shifts_created=accumulator.shifts_created,
            duplicates_skipped=accumulator.duplicates_skipped,
            overlaps_blocked=accumulator.overlaps_blocked,
            orphaned_deleted=accumulator.orphaned_deleted,
            reset_deleted=accumulator.reset_deleted,
            weekly_models_loaded=accumulator.weekly_models_loaded,
            monthly_models_loaded=accumulator.monthly_models_loaded,
            conflicts=len(accumulator.conflicts),
            audit_entries=len(accumulator.audit_entries),
            duration_seconds=round(max(duration_seconds, 0.0), 3),
            error_message=error_message,
        )
