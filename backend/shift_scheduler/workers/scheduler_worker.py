# backend/shift_scheduler/workers/scheduler_worker.py
"""
Timer-driven scheduler worker.

Runs the shift generation engine on an APScheduler cron trigger. Only one
run is active at a time: APScheduler's ``max_instances=1`` skips a firing
while the previous run is still going, and ``coalesce`` collapses missed
firings into one.
"""

from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..enums import RunStatus, TriggerSource
from ..exceptions import SchedulerBusyError
from ..models.run_model import RunResult
from ..services.scheduler_workflow_service import SchedulerWorkflowService
from ..utils.cancellation import CancellationToken
from .base_worker import BaseWorker

SCHEDULER_JOB_ID = "shift_generation"


class ShiftSchedulerWorker(BaseWorker):
    def __init__(
        self,
        workflow_service: SchedulerWorkflowService,
        cron_expression: str,
        timezone: str = "UTC",
        cancel_token: Optional[CancellationToken] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        super().__init__("ShiftSchedulerWorker")
        self.workflow_service = workflow_service
        self.cron_expression = cron_expression
        self.timezone = timezone
        self.cancel_token = cancel_token or CancellationToken()
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone)
        self.last_result: Optional[RunResult] = None

    async def initialize(self) -> None:
        trigger = CronTrigger.from_crontab(self.cron_expression, timezone=self.timezone)
        self.scheduler.add_job(
            func=self.run_scheduled,
            trigger=trigger,
            id=SCHEDULER_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
            replace_existing=True,
        )
        self.scheduler.start()
        self.log_info(f"Scheduled shift generation with cron '{self.cron_expression}'")

    async def cleanup(self) -> None:
        self.cancel_token.cancel()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def run_scheduled(self) -> Optional[RunResult]:
        """Job body invoked by APScheduler."""
        if self.cancel_token.is_cancelled:
            return None
        try:
            result = await self.workflow_service.run(
                cancel_token=self.cancel_token, trigger=TriggerSource.TIMER
            )
        except SchedulerBusyError:
            self.log_warning("Skipping scheduled run: a batch run is already in progress")
            return None

        self.last_result = result
        if result.status == RunStatus.FAILED:
            self.log_warning(f"Scheduled run {result.run_id} failed")
        return result

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        job = self.scheduler.get_job(SCHEDULER_JOB_ID) if self.scheduler.running else None
        status.update(
            {
                "cron": self.cron_expression,
                "next_run_time": job.next_run_time if job else None,
                "last_status": self.last_result.status.value if self.last_result else None,
            }
        )
        return status
