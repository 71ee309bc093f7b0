# backend/shift_scheduler/workers/base_worker.py
"""
Base worker class.

start()/stop() manage the worker lifecycle and delegate resource handling to
initialize()/cleanup(). Workers that need a background loop or timer set it
up in initialize().
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..enums import LoggerName, LogSource
from ..services.logger import ServiceLogger, get_service_logger


class BaseWorker(ABC):
    """Abstract base class for long-running workers."""

    def __init__(self, name: str, logger: Optional[ServiceLogger] = None):
        """
        Args:
            name: Worker name for logging and identification
        """
        self.name = name
        self.running = False
        self.logger = logger or get_service_logger(
            LoggerName.SCHEDULER_WORKER, LogSource.WORKER
        )

    async def start(self) -> None:
        """Start the worker."""
        self.log_info("Starting worker")
        self.running = True
        await self.initialize()

    async def stop(self) -> None:
        """Stop the worker."""
        self.log_info("Stopping worker")
        self.running = False
        await self.cleanup()

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize worker-specific resources."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup worker-specific resources."""
        pass

    def log_info(self, message: str) -> None:
        self.logger.info(f"[{self.name}] {message}")

    def log_warning(self, message: str) -> None:
        self.logger.warning(f"[{self.name}] {message}")

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        if error:
            self.logger.error(f"[{self.name}] {message}: {error}", exception=error)
        else:
            self.logger.error(f"[{self.name}] {message}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "running": self.running,
            "worker_type": self.__class__.__name__,
        }
