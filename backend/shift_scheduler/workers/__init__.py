from .base_worker import BaseWorker
from .scheduler_worker import ShiftSchedulerWorker

__all__ = ["BaseWorker", "ShiftSchedulerWorker"]
