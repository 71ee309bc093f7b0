# backend/shift_scheduler/models/scheduler_api_model.py
"""Request and response bodies for the scheduler HTTP trigger."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .run_model import RunResult


class SchedulerRunRequest(BaseModel):
    """Per-request overrides. Zero means "use the configured default"."""

    company_id: int = Field(default=0, ge=0)
    model_id: int = Field(default=0, ge=0)
    advance_days: int = Field(default=0, ge=0, le=366)
    monthly_months_ahead: int = Field(default=0, ge=0, le=24)
    reset: bool = False

    @property
    def is_batch(self) -> bool:
        """A run not narrowed to a single model."""
        return self.model_id == 0


class SchedulerStatusResponse(BaseModel):
    status: str = "healthy"
    version: str
    is_running: bool
    last_result: Optional[RunResult] = None
    timestamp: datetime
