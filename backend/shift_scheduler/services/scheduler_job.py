# backend/shift_scheduler/services/scheduler_job.py
"""
Scheduler Job - entry point of the recurring shift generation engine.

Linear state machine:

    START -> (RESET) -> CLEANUP -> WEEKLY_GENERATION -> MONTHLY_GENERATION
          -> AGGREGATE -> DONE

with FAILED reachable from any stage. Every stage commits through the retry
handler; counters only move after a commit, so the result of a failed run
still reports exactly what was persisted before the failure.

The job never logs. It returns a ``RunResult`` and leaves logging to the
caller (API router, worker).
"""

import time
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..config import SchedulerConfig
from ..database.repository import RepositoryTransaction, ScheduleRepository
from ..enums import Cadence, RunStage, RunStatus
from ..exceptions import RunCancelledError
from ..models.run_model import RunAccumulator, RunResult
from ..models.schedule_model import ScheduleModel
from ..utils.cancellation import CancellationToken
from ..utils.time_utils import utc_now
from .cleanup_service import CleanupService
from .retry_handler import RetryCallback, RetryHandler
from .schedule_generation import MonthlyScheduleService, WeeklyScheduleService


class SchedulerJob:
    """Runs one reconciliation pass over the applicable schedule models."""

    def __init__(
        self,
        repository: ScheduleRepository,
        config: SchedulerConfig,
        retry_handler: Optional[RetryHandler] = None,
        on_retry: Optional[RetryCallback] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.config = config
        self.retry_handler = retry_handler or RetryHandler(
            repository, config, on_retry=on_retry
        )
        self.cleanup_service = CleanupService(self.retry_handler)
        self.weekly_service = WeeklyScheduleService(self.retry_handler, config)
        self.monthly_service = MonthlyScheduleService(self.retry_handler, config)
        self._clock = clock

    async def run(
        self,
        reference: Optional[datetime] = None,
        company_id: int = 0,
        model_id: int = 0,
        advance_days: int = 0,
        monthly_months_ahead: int = 0,
        reset: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunResult:
        """
        Execute one run.

        Args:
            reference: Reference instant; defaults to now. Nothing dated on or
                before its calendar date is created or deleted.
            company_id: Restrict to one company (0 = all)
            model_id: Restrict to one model (0 = all)
            advance_days: Weekly horizon override (0 = configured default)
            monthly_months_ahead: Monthly horizon override (0 = configured default)
            reset: Delete the model's future unlinked shifts before generating.
                Only honoured with a positive ``model_id``; callers validate.
            cancel_token: Checked between stages and between models

        Returns:
            Terminal RunResult (succeeded, failed or cancelled)
        """
        reference = reference or self._clock()
        started_at = self._clock()
        started = time.monotonic()
        token = cancel_token or CancellationToken()
        accumulator = RunAccumulator(run_id=uuid.uuid4().hex)
        stage = RunStage.START

        def finish(status: RunStatus, error_message: Optional[str] = None) -> RunResult:
            return RunResult.from_accumulator(
                accumulator,
                status=status,
                stage=stage,
                reference_time=reference,
                started_at=started_at,
                duration_seconds=time.monotonic() - started,
                error_message=error_message,
            )

        try:
            models = await self._load_models(company_id, model_id)
            accumulator.weekly_models_loaded = sum(
                1 for m in models if m.cadence == Cadence.WEEKLY
            )
            accumulator.monthly_models_loaded = sum(
                1 for m in models if m.cadence == Cadence.MONTHLY
            )

            if reset and model_id > 0:
                token.raise_if_cancelled()
                stage = RunStage.RESET
                accumulator.reset_deleted = await self.cleanup_service.reset(
                    model_id, reference
                )

            token.raise_if_cancelled()
            stage = RunStage.CLEANUP
            cleanup = await self.cleanup_service.cleanup(
                company_id, model_id, reference
            )
            accumulator.orphaned_deleted = cleanup.orphaned_deleted

            token.raise_if_cancelled()
            stage = RunStage.WEEKLY_GENERATION
            await self.weekly_service.generate(
                models,
                reference,
                horizon=advance_days,
                run_id=accumulator.run_id,
                accumulator=accumulator,
                cancel_token=token,
            )

            token.raise_if_cancelled()
            stage = RunStage.MONTHLY_GENERATION
            await self.monthly_service.generate(
                models,
                reference,
                horizon=monthly_months_ahead,
                run_id=accumulator.run_id,
                accumulator=accumulator,
                cancel_token=token,
            )

            token.raise_if_cancelled()
            stage = RunStage.AGGREGATE
            await self._flush_audit(accumulator)

            stage = RunStage.DONE
            return finish(RunStatus.SUCCEEDED)

        except RunCancelledError:
            return finish(RunStatus.CANCELLED)
        except Exception as e:
            # Any non-transient failure aborts the whole run
            failed_stage = stage
            stage = RunStage.FAILED
            return finish(
                RunStatus.FAILED, f"{failed_stage.value}: {type(e).__name__}: {e}"
            )

    async def _load_models(self, company_id: int, model_id: int) -> List[ScheduleModel]:
        async def unit_of_work(tx: RepositoryTransaction) -> List[ScheduleModel]:
            return await tx.load_active_models(company_id=company_id, model_id=model_id)

        return await self.retry_handler.execute(unit_of_work, "load_active_models")

    async def _flush_audit(self, accumulator: RunAccumulator) -> None:
        retention_days = self.config.audit_retention_days
        retention_cutoff = self._clock() - timedelta(days=retention_days)

        async def unit_of_work(tx: RepositoryTransaction) -> None:
            await tx.insert_audit_entries(accumulator.audit_entries)
            await tx.insert_conflicts(accumulator.conflicts)
            # 0 keeps the audit trail forever
            if retention_days > 0:
                await tx.prune_audit_entries(retention_cutoff)

        await self.retry_handler.execute(unit_of_work, "flush_audit")
