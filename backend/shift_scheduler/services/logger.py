# backend/shift_scheduler/services/logger.py
"""
Logging setup on top of loguru.

``configure_logging()`` is called once per process (API lifespan, worker
entry point). Components then ask for a pre-bound logger:

    from ..services.logger import get_service_logger
    from ..enums import LoggerName, LogSource

    logger = get_service_logger(LoggerName.SCHEDULER_WORKFLOW, LogSource.SCHEDULER)
    logger.info("Run finished", extra_context={"run_id": run_id})

Only the outer layers log; the engine returns structured outcomes instead.
"""

import sys
from typing import Any, Dict, Optional

from loguru import logger

from ..enums import LoggerName, LogLevel, LogSource

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]}</cyan>:<cyan>{extra[logger_name]}</cyan> - "
    "<level>{message}</level>"
)

_configured = False


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[str] = None,
    retention_days: int = 14,
    force: bool = False,
) -> None:
    """
    Install the stderr sink and, optionally, a rotating file sink.

    Repeated calls are no-ops unless ``force`` is set.
    """
    global _configured
    if _configured and not force:
        return

    logger.remove()
    logger.configure(
        extra={"logger_name": LoggerName.SYSTEM.value, "source": LogSource.SYSTEM.value}
    )
    logger.add(sys.stderr, level=level.value, format=LOG_FORMAT, enqueue=False)
    if log_file:
        logger.add(
            log_file,
            level=level.value,
            format=LOG_FORMAT,
            rotation="1 day",
            retention=f"{retention_days} days",
            enqueue=True,
        )
    _configured = True


class ServiceLogger:
    """Thin wrapper binding a logger name and source to every record."""

    def __init__(self, logger_name: LoggerName, source: LogSource) -> None:
        self.logger_name = logger_name
        self.source = source
        self._logger = logger.bind(logger_name=logger_name.value, source=source.value)

    def _bound(self, context: Optional[Dict[str, Any]]):
        return self._logger.bind(**context) if context else self._logger

    def debug(self, message: str, extra_context: Optional[Dict[str, Any]] = None) -> None:
        self._bound(extra_context).debug(message)

    def info(self, message: str, extra_context: Optional[Dict[str, Any]] = None) -> None:
        self._bound(extra_context).info(message)

    def warning(
        self, message: str, extra_context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._bound(extra_context).warning(message)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        error_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        bound = self._bound(error_context)
        if exception is not None:
            bound = bound.opt(exception=exception)
        bound.error(message)


def get_service_logger(
    logger_name: LoggerName, source: LogSource = LogSource.SYSTEM
) -> ServiceLogger:
    """
    Factory for a pre-configured logger for a specific service.

    Args:
        logger_name: The logger name enum to use for all calls
        source: The log source enum to use for all calls (defaults to SYSTEM)
    """
    return ServiceLogger(logger_name, source)
