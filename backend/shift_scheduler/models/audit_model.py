# backend/shift_scheduler/models/audit_model.py
"""
Audit trail models.

Every candidate occurrence a run considers produces one audit entry; every
blocked overlap additionally produces a conflict record naming the shift it
collided with.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..constants import DUPLICATE_SHIFT_DESCRIPTION
from ..enums import AuditResult, Cadence
from .schedule_model import ScheduleModel
from .shift_model import ShiftInstance


class ShiftAuditEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    run_id: str
    model_id: int
    company_id: int
    shift_date: date
    start_time: time
    end_time: time
    result: AuditResult
    cadence: Cadence
    recurring_pattern: str
    description: Optional[str] = None

    @classmethod
    def for_candidate(
        cls,
        run_id: str,
        model: ScheduleModel,
        candidate: ShiftInstance,
        result: AuditResult,
        description: Optional[str] = None,
    ) -> "ShiftAuditEntry":
        if result == AuditResult.DUPLICATE and description is None:
            description = DUPLICATE_SHIFT_DESCRIPTION
        return cls(
            run_id=run_id,
            model_id=model.id,
            company_id=model.company_id,
            shift_date=candidate.shift_date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            result=result,
            cadence=model.cadence,
            recurring_pattern=model.recurring_pattern,
            description=description,
        )


class ShiftConflict(BaseModel):
    """A candidate blocked because it overlaps an existing shift."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    company_id: int
    model_id: int
    shift_date: date
    start_time: time
    end_time: time
    conflicting_shift_id: Optional[int] = None
    conflicting_model_id: Optional[int] = None
    conflicting_start_time: time
    conflicting_end_time: time

    @classmethod
    def between(
        cls, run_id: str, candidate: ShiftInstance, existing: ShiftInstance
    ) -> "ShiftConflict":
        return cls(
            run_id=run_id,
            company_id=candidate.company_id,
            model_id=candidate.model_id,
            shift_date=candidate.shift_date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            conflicting_shift_id=existing.id,
            conflicting_model_id=existing.model_id,
            conflicting_start_time=existing.start_time,
            conflicting_end_time=existing.end_time,
        )

    @property
    def description(self) -> str:
        shift_ref = (
            f"shift {self.conflicting_shift_id}"
            if self.conflicting_shift_id is not None
            else "a shift staged in this run"
        )
        return (
            f"Overlaps {shift_ref} "
            f"({self.conflicting_start_time:%H:%M}-{self.conflicting_end_time:%H:%M})"
        )
