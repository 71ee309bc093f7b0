# backend/shift_scheduler/services/scheduler_workflow_service.py
"""
Scheduler Workflow Service - boundary between the engine and its triggers.

Both the HTTP router and the worker go through this service. It builds a
``SchedulerJob`` from configuration, runs it, logs the outcome, persists the
run summary and remembers the most recent result for the status endpoint.

Batch runs (not narrowed to one model) are mutually exclusive within a
process; a second batch request while one is running is rejected instead of
queued.
"""

import asyncio
from datetime import datetime
from typing import Optional

from ..config import SchedulerConfig
from ..database.repository import RepositoryTransaction, ScheduleRepository
from ..enums import LoggerName, LogSource, RunStatus, TriggerSource
from ..exceptions import SchedulerBusyError, ScheduleValidationError
from ..models.run_model import RunResult
from ..models.scheduler_api_model import SchedulerRunRequest
from ..utils.cancellation import CancellationToken
from .logger import get_service_logger
from .retry_handler import RetryHandler
from .scheduler_job import SchedulerJob

logger = get_service_logger(LoggerName.SCHEDULER_WORKFLOW, LogSource.SCHEDULER)


def validate_run_request(request: SchedulerRunRequest) -> None:
    """
    Reject requests the engine must never see.

    Raises:
        ScheduleValidationError: Reset requested without a model id
    """
    if request.reset and request.model_id <= 0:
        raise ScheduleValidationError("Reset requires a ModelId")


class SchedulerWorkflowService:
    def __init__(self, repository: ScheduleRepository, config: SchedulerConfig) -> None:
        self.repository = repository
        self.config = config
        self._batch_lock = asyncio.Lock()
        self._active_runs = 0
        self.last_result: Optional[RunResult] = None

    @property
    def is_running(self) -> bool:
        return self._active_runs > 0

    def _log_retry(
        self, operation: str, attempt: int, delay: float, error: BaseException
    ) -> None:
        logger.warning(
            f"Transient storage failure in {operation} "
            f"(attempt {attempt}/{self.config.max_retry_attempts}), "
            f"retrying in {delay * 1000:.0f} ms: {error}",
            extra_context={
                "operation": operation,
                "attempt": attempt,
                "delay_seconds": delay,
            },
        )

    def build_job(self) -> SchedulerJob:
        retry_handler = RetryHandler(
            self.repository, self.config, on_retry=self._log_retry
        )
        return SchedulerJob(self.repository, self.config, retry_handler=retry_handler)

    async def run(
        self,
        request: Optional[SchedulerRunRequest] = None,
        reference: Optional[datetime] = None,
        cancel_token: Optional[CancellationToken] = None,
        trigger: TriggerSource = TriggerSource.API,
    ) -> RunResult:
        """
        Validate, run the engine and record the outcome.

        Raises:
            ScheduleValidationError: Invalid request (nothing was run)
            SchedulerBusyError: Batch run requested while one is in progress
        """
        request = request or SchedulerRunRequest()
        validate_run_request(request)

        if request.is_batch:
            if self._batch_lock.locked():
                raise SchedulerBusyError("A scheduler batch run is already in progress")
            async with self._batch_lock:
                return await self._execute(request, reference, cancel_token, trigger)
        return await self._execute(request, reference, cancel_token, trigger)

    async def _execute(
        self,
        request: SchedulerRunRequest,
        reference: Optional[datetime],
        cancel_token: Optional[CancellationToken],
        trigger: TriggerSource,
    ) -> RunResult:
        logger.info(
            f"Scheduler run starting ({trigger.value})",
            extra_context={
                "trigger": trigger.value,
                "company_id": request.company_id,
                "model_id": request.model_id,
                "reset": request.reset,
            },
        )

        self._active_runs += 1
        try:
            result = await self.build_job().run(
                reference=reference,
                company_id=request.company_id,
                model_id=request.model_id,
                advance_days=request.advance_days,
                monthly_months_ahead=request.monthly_months_ahead,
                reset=request.reset,
                cancel_token=cancel_token,
            )
        finally:
            self._active_runs -= 1

        self.last_result = result
        self._log_result(result)
        await self._record_run(result)
        return result

    def _log_result(self, result: RunResult) -> None:
        summary = (
            f"created={result.shifts_created} duplicates={result.duplicates_skipped} "
            f"overlaps={result.overlaps_blocked} orphaned={result.orphaned_deleted} "
            f"reset={result.reset_deleted} in {result.duration_seconds:.2f}s"
        )
        context = {"run_id": result.run_id, "status": result.status.value}
        if result.status == RunStatus.SUCCEEDED:
            logger.info(f"Scheduler run {result.run_id} succeeded: {summary}", context)
        elif result.status == RunStatus.CANCELLED:
            logger.warning(f"Scheduler run {result.run_id} cancelled: {summary}", context)
        else:
            logger.error(
                f"Scheduler run {result.run_id} failed: {result.error_message}",
                error_context={**context, "summary": summary},
            )

    async def _record_run(self, result: RunResult) -> None:
        async def unit_of_work(tx: RepositoryTransaction) -> None:
            await tx.record_run(result)

        try:
            await RetryHandler(self.repository, self.config).execute(
                unit_of_work, "record_run"
            )
        except Exception as e:
            # The run itself already finished; only its history row is missing
            logger.error(
                f"Failed to record run summary for {result.run_id}: {e}",
                exception=e,
                error_context={"run_id": result.run_id},
            )
