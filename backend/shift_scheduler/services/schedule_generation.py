# backend/shift_scheduler/services/schedule_generation.py
"""
Weekly and Monthly Schedule Services.

Both cadences share one reconcile-then-commit pipeline per model:

1. Compute the desired dates with the Date Calculator.
2. Inside one retried transaction, read the dates already materialized for
   the model (once), then walk candidates in chronological order:
   already there -> duplicate; its window collides with another shift of the
   company (overnight shifts included) -> overlap (blocked, recorded as a
   conflict); otherwise staged.
3. Insert the staged batch. The model's counters are merged into the run
   only after its transaction commits, so a retried attempt never counts
   twice.

A duplicate is never reported as an overlap: the existence check runs first.
"""

import asyncio
from datetime import date, datetime
from typing import List, Optional, Sequence

from ..config import SchedulerConfig
from ..constants import MONTHLY_SHIFT_NOTE, WEEKLY_SHIFT_NOTE
from ..database.repository import RepositoryTransaction
from ..enums import AuditResult, Cadence
from ..models.audit_model import ShiftAuditEntry, ShiftConflict
from ..models.run_model import ModelOutcome, RunAccumulator
from ..models.schedule_model import ScheduleModel
from ..models.shift_model import ShiftInstance
from ..utils.cancellation import CancellationToken
from ..utils.time_utils import windows_overlap
from .date_calculator import compute_occurrences
from .retry_handler import RetryHandler


class ScheduleGenerationService:
    """Shared generation pipeline; subclasses pick the cadence and horizon."""

    cadence: Cadence
    default_note: str

    def __init__(self, retry_handler: RetryHandler, config: SchedulerConfig) -> None:
        self.retry_handler = retry_handler
        self.config = config

    def resolve_horizon(self, override: Optional[int]) -> int:
        raise NotImplementedError

    def select_models(self, models: Sequence[ScheduleModel]) -> List[ScheduleModel]:
        return [m for m in models if m.cadence == self.cadence and m.is_active]

    def build_shift(self, model: ScheduleModel, shift_date: date) -> ShiftInstance:
        return ShiftInstance(
            company_id=model.company_id,
            model_id=model.id,
            shift_date=shift_date,
            start_time=model.start_time,
            end_time=model.end_time,
            is_linked=False,
            note=model.note or self.default_note,
        )

    async def generate(
        self,
        models: Sequence[ScheduleModel],
        reference: datetime,
        horizon: Optional[int] = None,
        run_id: str = "",
        accumulator: Optional[RunAccumulator] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunAccumulator:
        """
        Materialize shifts for every model of this cadence.

        Args:
            models: Loaded models; those of the other cadence are ignored
            reference: Run reference instant
            horizon: Per-request override; 0/None uses the configured default
            run_id: Stamped on audit and conflict records
            accumulator: Run counters to merge committed outcomes into
            cancel_token: Checked before each model

        Returns:
            The accumulator holding the merged counters

        Raises:
            RunCancelledError: Cancellation observed between models
            RetryExhaustedError: A model's transaction kept hitting contention
        """
        horizon = self.resolve_horizon(horizon)
        accumulator = accumulator or RunAccumulator(run_id=run_id)
        selected = self.select_models(models)

        if self.config.generation_concurrency <= 1 or len(selected) <= 1:
            for model in selected:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                outcome = await self.generate_model(model, reference, horizon, run_id)
                accumulator.merge(outcome)
        else:
            await self._generate_concurrently(
                selected, reference, horizon, run_id, accumulator, cancel_token
            )
        return accumulator

    async def _generate_concurrently(
        self,
        models: Sequence[ScheduleModel],
        reference: datetime,
        horizon: int,
        run_id: str,
        accumulator: RunAccumulator,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        semaphore = asyncio.Semaphore(self.config.generation_concurrency)

        async def run_one(model: ScheduleModel) -> None:
            async with semaphore:
                # Skip, rather than raise, so in-flight siblings can commit
                if cancel_token is not None and cancel_token.is_cancelled:
                    return
                outcome = await self.generate_model(model, reference, horizon, run_id)
                accumulator.merge(outcome)

        tasks = [asyncio.create_task(run_one(model)) for model in models]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

    async def generate_model(
        self,
        model: ScheduleModel,
        reference: datetime,
        horizon: int,
        run_id: str = "",
    ) -> ModelOutcome:
        """Reconcile and commit one model's shifts in a single retried transaction."""
        dates = compute_occurrences(model, reference, horizon)
        if not dates:
            return ModelOutcome(model_id=model.id)
        candidates = [self.build_shift(model, d) for d in dates]

        async def unit_of_work(tx: RepositoryTransaction) -> ModelOutcome:
            outcome = ModelOutcome(model_id=model.id)
            existing = await tx.existing_shift_dates(
                model.company_id, model.id, dates[0], dates[-1]
            )
            staged: List[ShiftInstance] = []

            for candidate in candidates:
                if candidate.shift_date in existing:
                    outcome.duplicates_skipped += 1
                    outcome.audit_entries.append(
                        ShiftAuditEntry.for_candidate(
                            run_id, model, candidate, AuditResult.DUPLICATE
                        )
                    )
                    continue

                blocking = _find_staged_overlap(candidate, staged)
                if blocking is None:
                    blocking = await tx.find_overlapping_shift(
                        candidate.company_id,
                        candidate.shift_date,
                        candidate.start_time,
                        candidate.end_time,
                    )
                if blocking is not None:
                    conflict = ShiftConflict.between(run_id, candidate, blocking)
                    outcome.overlaps_blocked += 1
                    outcome.conflicts.append(conflict)
                    outcome.audit_entries.append(
                        ShiftAuditEntry.for_candidate(
                            run_id,
                            model,
                            candidate,
                            AuditResult.OVERLAP,
                            conflict.description,
                        )
                    )
                    continue

                staged.append(candidate)

            outcome.created = await tx.insert_shifts(staged)
            # Rows the unique index skipped were created concurrently elsewhere
            outcome.duplicates_skipped += len(staged) - outcome.created
            outcome.audit_entries.extend(
                ShiftAuditEntry.for_candidate(run_id, model, shift, AuditResult.CREATED)
                for shift in staged
            )
            return outcome

        return await self.retry_handler.execute(
            unit_of_work, f"generate_{self.cadence.value}_model_{model.id}"
        )


def _find_staged_overlap(
    candidate: ShiftInstance, staged: Sequence[ShiftInstance]
) -> Optional[ShiftInstance]:
    for shift in staged:
        if shift.company_id == candidate.company_id and windows_overlap(
            shift.window, candidate.window
        ):
            return shift
    return None


class WeeklyScheduleService(ScheduleGenerationService):
    cadence = Cadence.WEEKLY
    default_note = WEEKLY_SHIFT_NOTE

    def resolve_horizon(self, override: Optional[int]) -> int:
        return self.config.effective_advance_days(override)


class MonthlyScheduleService(ScheduleGenerationService):
    cadence = Cadence.MONTHLY
    default_note = MONTHLY_SHIFT_NOTE

    def resolve_horizon(self, override: Optional[int]) -> int:
        return self.config.effective_monthly_months_ahead(override)
