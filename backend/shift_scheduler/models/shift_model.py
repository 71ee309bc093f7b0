# backend/shift_scheduler/models/shift_model.py
"""Shift instance models."""

from datetime import date, datetime, time
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..utils.time_utils import shift_window, windows_overlap


class ShiftInstance(BaseModel):
    """
    One concrete dated shift.

    ``model_id`` is None for manually created shifts, which generation and
    cleanup never touch. ``is_linked`` marks shifts claimed by an external
    system; those are never deleted by the generator either.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int] = None
    company_id: int = Field(..., gt=0)
    model_id: Optional[int] = None
    shift_date: date
    start_time: time
    end_time: time
    is_linked: bool = False
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def window(self) -> Tuple[datetime, datetime]:
        return shift_window(self.shift_date, self.start_time, self.end_time)

    def overlaps(self, shift_date: date, start_time: time, end_time: time) -> bool:
        """Half-open overlap test against a window starting on ``shift_date``."""
        return windows_overlap(self.window, shift_window(shift_date, start_time, end_time))
