# backend/tests/unit/test_scheduler_job.py
"""Tests for the scheduler run state machine."""

from datetime import date, time, timedelta
from unittest.mock import AsyncMock

import pytest

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.enums import AuditResult, RunStage, RunStatus
from shift_scheduler.exceptions import FatalStorageError, TransientStorageError
from shift_scheduler.models.audit_model import ShiftAuditEntry
from shift_scheduler.services.retry_handler import RetryHandler
from shift_scheduler.services.scheduler_job import SchedulerJob
from shift_scheduler.utils.cancellation import CancellationToken


@pytest.fixture
def job(memory_repo, scheduler_config, retry_handler, fixed_clock):
    return SchedulerJob(
        memory_repo, scheduler_config, retry_handler=retry_handler, clock=fixed_clock
    )


@pytest.fixture
def seeded_repo(memory_repo, weekly_model, monthly_model):
    memory_repo.add_model(weekly_model(id=1))
    memory_repo.add_model(monthly_model(id=2, start_time=time(18, 0), end_time=time(22, 0)))
    return memory_repo


@pytest.mark.unit
class TestSchedulerJobRun:
    @pytest.mark.asyncio
    async def test_successful_run_reports_all_counters(self, seeded_repo, job, reference):
        result = await job.run(reference=reference)

        assert result.status == RunStatus.SUCCEEDED
        assert result.stage == RunStage.DONE
        assert result.succeeded
        assert result.weekly_models_loaded == 1
        assert result.monthly_models_loaded == 1
        assert result.shifts_created == 5
        assert result.duplicates_skipped == 0
        assert result.audit_entries == 5
        assert result.error_message is None
        assert result.reference_time == reference
        assert len(seeded_repo.shifts) == 5
        assert len(seeded_repo.audit_entries) == 5

    @pytest.mark.asyncio
    async def test_rerun_creates_nothing(self, seeded_repo, job, reference):
        await job.run(reference=reference)

        second = await job.run(reference=reference)

        assert second.shifts_created == 0
        assert second.duplicates_skipped == 5
        assert len(seeded_repo.shifts) == 5

    @pytest.mark.asyncio
    async def test_each_run_gets_its_own_id(self, seeded_repo, job, reference):
        first = await job.run(reference=reference)
        second = await job.run(reference=reference)

        assert first.run_id != second.run_id
        assert {e.run_id for e in seeded_repo.audit_entries} == {
            first.run_id,
            second.run_id,
        }

    @pytest.mark.asyncio
    async def test_reference_defaults_to_clock(self, seeded_repo, job, reference):
        result = await job.run()

        assert result.reference_time == reference
        assert result.started_at == reference

    @pytest.mark.asyncio
    async def test_model_filter(self, seeded_repo, job, reference):
        result = await job.run(reference=reference, model_id=2)

        assert result.weekly_models_loaded == 0
        assert result.monthly_models_loaded == 1
        assert result.shifts_created == 3

    @pytest.mark.asyncio
    async def test_company_filter_with_no_models(self, seeded_repo, job, reference):
        result = await job.run(reference=reference, company_id=42)

        assert result.status == RunStatus.SUCCEEDED
        assert result.shifts_created == 0
        assert seeded_repo.shifts == []

    @pytest.mark.asyncio
    async def test_horizon_overrides(self, seeded_repo, job, reference):
        result = await job.run(
            reference=reference, advance_days=7, monthly_months_ahead=1
        )

        assert result.shifts_created == 2

    @pytest.mark.asyncio
    async def test_orphans_cleaned_before_generation(
        self, seeded_repo, job, make_shift, reference
    ):
        seeded_repo.add_shift(make_shift(model_id=77))

        result = await job.run(reference=reference)

        assert result.orphaned_deleted == 1
        # The orphan no longer blocks the Monday shift it overlapped
        assert result.overlaps_blocked == 0
        assert result.shifts_created == 5


@pytest.mark.unit
class TestSchedulerJobReset:
    @pytest.mark.asyncio
    async def test_reset_regenerates_model(self, seeded_repo, job, make_shift, reference):
        for day in (21, 22, 23):
            seeded_repo.add_shift(make_shift(model_id=1, shift_date=date(2025, 1, day)))
        linked = seeded_repo.add_shift(
            make_shift(model_id=1, shift_date=date(2025, 1, 24), is_linked=True)
        )

        result = await job.run(reference=reference, model_id=1, reset=True)

        assert result.reset_deleted == 3
        assert result.shifts_created == 2
        remaining = {(s.model_id, s.shift_date) for s in seeded_repo.shifts}
        assert remaining == {
            (1, date(2025, 1, 20)),
            (1, date(2025, 1, 24)),
            (1, date(2025, 1, 27)),
        }
        assert linked.id in {s.id for s in seeded_repo.shifts}

    @pytest.mark.asyncio
    async def test_reset_ignored_without_model(self, seeded_repo, job, make_shift, reference):
        seeded_repo.add_shift(make_shift(model_id=1, shift_date=date(2025, 1, 21)))

        result = await job.run(reference=reference, reset=True)

        assert result.reset_deleted == 0
        assert len(seeded_repo.shifts) == 6


@pytest.mark.unit
class TestSchedulerJobTermination:
    @pytest.mark.asyncio
    async def test_cancel_before_start(self, seeded_repo, job, reference):
        token = CancellationToken()
        token.cancel()

        result = await job.run(reference=reference, cancel_token=token)

        assert result.status == RunStatus.CANCELLED
        assert result.shifts_created == 0
        assert seeded_repo.shifts == []

    @pytest.mark.asyncio
    async def test_failure_keeps_committed_counters(self, seeded_repo, job, reference):
        job.monthly_service.generate = AsyncMock(side_effect=FatalStorageError("disk gone"))

        result = await job.run(reference=reference)

        assert result.status == RunStatus.FAILED
        assert result.stage == RunStage.FAILED
        assert result.shifts_created == 2
        assert result.error_message == "monthly_generation: FatalStorageError: disk gone"
        # Weekly shifts were committed before the failure
        assert len(seeded_repo.shifts) == 2
        # Audit flush never ran
        assert seeded_repo.audit_entries == []

    @pytest.mark.asyncio
    async def test_retry_exhaustion_fails_run(
        self, seeded_repo, scheduler_config, fixed_clock, instant_sleep, reference
    ):
        handler = RetryHandler(seeded_repo, scheduler_config, sleep=instant_sleep)
        job = SchedulerJob(
            seeded_repo, scheduler_config, retry_handler=handler, clock=fixed_clock
        )
        seeded_repo.fail_next_commits(TransientStorageError("deadlock"), times=10)

        result = await job.run(reference=reference)

        assert result.status == RunStatus.FAILED
        assert result.error_message == (
            "start: RetryExhaustedError: load_active_models failed after 3 attempts: deadlock"
        )
        assert seeded_repo.shifts == []

    @pytest.mark.asyncio
    async def test_transient_failures_are_absorbed(self, seeded_repo, job, reference):
        seeded_repo.fail_next_commits(TransientStorageError("deadlock"), times=2)

        result = await job.run(reference=reference)

        assert result.status == RunStatus.SUCCEEDED
        assert result.shifts_created == 5


@pytest.mark.unit
class TestAuditRetention:
    def _old_entry(self, run_id: str) -> ShiftAuditEntry:
        return ShiftAuditEntry(
            run_id=run_id,
            model_id=1,
            company_id=1,
            shift_date=date(2025, 1, 1),
            start_time=time(9, 0),
            end_time=time(17, 0),
            result=AuditResult.CREATED,
            cadence="weekly",
            recurring_pattern="Every week",
        )

    @pytest.mark.asyncio
    async def test_old_audit_entries_pruned(self, seeded_repo, job, reference):
        seeded_repo.store.audit_entries.append(
            (reference - timedelta(days=10), self._old_entry("old"))
        )

        result = await job.run(reference=reference)

        assert "old" not in {e.run_id for e in seeded_repo.audit_entries}
        assert len(seeded_repo.audit_entries) == result.audit_entries

    @pytest.mark.asyncio
    async def test_zero_retention_keeps_everything(
        self, seeded_repo, retry_handler, fixed_clock, reference
    ):
        config = SchedulerConfig(advance_days=14, audit_retention_days=0)
        job = SchedulerJob(seeded_repo, config, retry_handler=retry_handler, clock=fixed_clock)
        seeded_repo.store.audit_entries.append(
            (reference - timedelta(days=400), self._old_entry("old"))
        )

        await job.run(reference=reference)

        assert "old" in {e.run_id for e in seeded_repo.audit_entries}


@pytest.mark.unit
class TestMultiWeekCadenceAcrossRuns:
    @pytest.mark.asyncio
    async def test_every_other_week_survives_runs_on_different_days(
        self, memory_repo, job, weekly_model, reference
    ):
        memory_repo.add_model(weekly_model(day_of_week=4, interval_weeks=2))
        monday = reference - timedelta(days=2)

        first = await job.run(reference=monday, advance_days=28)
        second = await job.run(reference=monday + timedelta(days=7), advance_days=28)

        assert first.shifts_created == 2
        assert second.shifts_created == 0
        assert second.duplicates_skipped == 2
        dates = [s.shift_date for s in memory_repo.shifts]
        assert dates == [date(2025, 1, 24), date(2025, 2, 7)]
        gaps = {(b - a).days for a, b in zip(dates, dates[1:])}
        assert gaps == {14}
