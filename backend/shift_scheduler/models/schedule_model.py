# backend/shift_scheduler/models/schedule_model.py
"""
Schedule model definitions.

A schedule model is the company-scoped template a recurring shift is derived
from. The engine only reads these; they are edited by an external system.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import Cadence


class ScheduleModel(BaseModel):
    """Recurring shift template, immutable for the duration of one run."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = Field(..., gt=0)
    company_id: int = Field(..., gt=0)
    cadence: Cadence
    day_of_week: Optional[int] = Field(
        default=None, ge=0, le=6, description="0 = Monday ... 6 = Sunday"
    )
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    interval_weeks: int = Field(
        default=1, ge=1, description="Weekly models only: repeat every N weeks"
    )
    start_time: time
    end_time: time
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    note: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_cadence_fields(self) -> "ScheduleModel":
        if self.cadence == Cadence.WEEKLY and self.day_of_week is None:
            raise ValueError("weekly schedule models require day_of_week")
        if self.cadence == Cadence.MONTHLY and self.day_of_month is None:
            raise ValueError("monthly schedule models require day_of_month")
        if self.start_time == self.end_time:
            raise ValueError("start_time and end_time must differ")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    @property
    def recurring_pattern(self) -> str:
        """Human-readable recurrence, recorded on audit entries."""
        if self.cadence == Cadence.WEEKLY:
            if self.interval_weeks <= 1:
                return "Every week"
            return f"Every {self.interval_weeks} weeks"
        return f"Monthly on day {self.day_of_month}"
