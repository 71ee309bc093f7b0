# backend/shift_scheduler/routers/scheduler_routers.py
"""
Scheduler HTTP endpoints.

Role: On-demand trigger for the shift generation engine
Responsibilities: Request validation, batch concurrency guard, run status
Interactions: Delegates every run to SchedulerWorkflowService, which logs and
              records the outcome

The run endpoint is synchronous: the response carries the finished
RunResult. A run that ends in ``failed`` or ``cancelled`` is still a 200; the
outcome is in the payload's ``status`` field.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException

from ..constants import APPLICATION_VERSION
from ..dependencies import SchedulerWorkflowServiceDep
from ..exceptions import SchedulerBusyError, ScheduleValidationError
from ..models.run_model import RunResult
from ..models.scheduler_api_model import SchedulerRunRequest, SchedulerStatusResponse
from ..utils.router_helpers import handle_exceptions
from ..utils.time_utils import utc_now

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.post("/run", response_model=RunResult)
@handle_exceptions("run scheduler")
async def run_scheduler(
    workflow_service: SchedulerWorkflowServiceDep,
    request: Optional[SchedulerRunRequest] = None,
) -> RunResult:
    """
    Run the scheduler once and return its result.

    - ``reset`` without a positive ``model_id`` is rejected with 400.
    - A batch run (``model_id`` 0) while another batch is running gets 409.
    """
    try:
        return await workflow_service.run(request or SchedulerRunRequest())
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SchedulerBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    workflow_service: SchedulerWorkflowServiceDep,
) -> SchedulerStatusResponse:
    """Current run state and the last completed result. No authentication."""
    return SchedulerStatusResponse(
        version=APPLICATION_VERSION,
        is_running=workflow_service.is_running,
        last_result=workflow_service.last_result,
        timestamp=utc_now(),
    )
