# backend/shift_scheduler/worker.py
"""
Console and timer entry point for the shift scheduler.

One-shot mode (default) runs the engine once and exits with:

    0  run succeeded
    1  run was cancelled (SIGINT/SIGTERM)
    2  run failed, or the invocation itself was invalid

``--serve`` keeps the process alive and runs the engine on the configured
cron expression until it receives SIGINT/SIGTERM.
"""

import argparse
import asyncio
import signal
import sys
from datetime import datetime
from typing import List, Optional

from .config import Settings, settings
from .constants import EXIT_CODE_CANCELLED, EXIT_CODE_FAILED, EXIT_CODE_SUCCESS
from .database import PostgresScheduleRepository, async_db
from .database.migrations import DatabaseInitializationError, initialize_database
from .enums import LoggerName, LogSource, RunStatus, TriggerSource
from .exceptions import ScheduleValidationError, SchedulerBusyError
from .models.run_model import RunResult
from .models.scheduler_api_model import SchedulerRunRequest
from .services.logger import configure_logging, get_service_logger
from .services.scheduler_workflow_service import SchedulerWorkflowService
from .utils.cancellation import CancellationToken
from .utils.time_utils import local_now, parse_reference_datetime
from .workers import ShiftSchedulerWorker

logger = get_service_logger(LoggerName.SCHEDULER_WORKER, LogSource.WORKER)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shift-scheduler-worker",
        description="Generate recurring shifts from active schedule models.",
    )
    parser.add_argument(
        "reference",
        nargs="?",
        default=None,
        help="Reference date-time (ISO 8601). Defaults to now in the configured timezone.",
    )
    parser.add_argument("--company-id", type=int, default=0)
    parser.add_argument("--model-id", type=int, default=0)
    parser.add_argument("--advance-days", type=int, default=0)
    parser.add_argument("--monthly-months-ahead", type=int, default=0)
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the model's future unlinked shifts before generating (needs --model-id)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Stay running and generate on the configured cron schedule",
    )
    return parser


def exit_code_for(result: RunResult) -> int:
    if result.status == RunStatus.SUCCEEDED:
        return EXIT_CODE_SUCCESS
    if result.status == RunStatus.CANCELLED:
        return EXIT_CODE_CANCELLED
    return EXIT_CODE_FAILED


def resolve_reference(value: Optional[str], timezone_name: str) -> datetime:
    if value:
        return parse_reference_datetime(value, timezone_name)
    return local_now(timezone_name)


def install_signal_handlers(cancel_token: CancellationToken) -> None:
    """Route SIGINT/SIGTERM to the cancellation token."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_token.cancel)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            logger.debug(f"Signal handler for {sig.name} not installed")


async def run_once(
    workflow_service: SchedulerWorkflowService,
    request: SchedulerRunRequest,
    reference: datetime,
    cancel_token: CancellationToken,
) -> int:
    """Run the engine once through the workflow service and map the exit code."""
    try:
        result = await workflow_service.run(
            request=request,
            reference=reference,
            cancel_token=cancel_token,
            trigger=TriggerSource.CONSOLE,
        )
    except (ScheduleValidationError, SchedulerBusyError) as e:
        logger.error(f"Scheduler run rejected: {e}")
        return EXIT_CODE_FAILED

    return exit_code_for(result)


async def serve(
    workflow_service: SchedulerWorkflowService,
    app_settings: Settings,
    cancel_token: CancellationToken,
) -> int:
    """Run on the cron schedule until cancelled."""
    worker = ShiftSchedulerWorker(
        workflow_service,
        cron_expression=app_settings.schedule_cron,
        timezone=app_settings.timezone,
        cancel_token=cancel_token,
    )
    await worker.start()
    try:
        await cancel_token.wait()
    finally:
        await worker.stop()
    return EXIT_CODE_SUCCESS


def _prepare_database(app_settings: Settings) -> None:
    if not app_settings.run_migrations_on_startup:
        return
    result = initialize_database(app_settings.database_url)
    logger.info(
        f"Database initialized successfully: {result['method']}",
        extra_context={
            "revision": result["current_revision"],
            "database_url": app_settings.masked_database_url,
        },
    )


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, settings.log_file, settings.log_retention_days)

    try:
        reference = resolve_reference(args.reference, settings.timezone)
        request = SchedulerRunRequest(
            company_id=args.company_id,
            model_id=args.model_id,
            advance_days=args.advance_days,
            monthly_months_ahead=args.monthly_months_ahead,
            reset=args.reset,
        )
    except ValueError as e:
        logger.error(f"Invalid invocation: {e}")
        return EXIT_CODE_FAILED

    cancel_token = CancellationToken()
    install_signal_handlers(cancel_token)

    try:
        _prepare_database(settings)
        await async_db.initialize()
    except DatabaseInitializationError as e:
        logger.error(f"Database initialization failed: {e}", exception=e)
        return EXIT_CODE_FAILED
    except Exception as e:
        logger.error(f"Could not connect to the database: {e}", exception=e)
        return EXIT_CODE_FAILED

    workflow_service = SchedulerWorkflowService(
        PostgresScheduleRepository(async_db, settings.insert_batch_size),
        settings.scheduler_config(),
    )
    try:
        if args.serve:
            logger.info("Starting scheduler worker in serve mode")
            return await serve(workflow_service, settings, cancel_token)
        return await run_once(workflow_service, request, reference, cancel_token)
    except Exception as e:
        logger.error(f"Unhandled error in scheduler worker: {e}", exception=e)
        return EXIT_CODE_FAILED
    finally:
        await async_db.close()


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run()
