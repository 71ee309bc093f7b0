# backend/shift_scheduler/enums.py
"""
Application Enums - Centralized enum definitions.

All enums live here so models, services and constants can share them without
circular imports.
"""

from enum import Enum


# =============================================================================
# SCHEDULE MODELS
# =============================================================================


class Cadence(str, Enum):
    """Recurrence cadence of a schedule model. Must be: weekly, monthly."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# RUN LIFECYCLE
# =============================================================================


class RunStatus(str, Enum):
    """Terminal status of one scheduler run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStage(str, Enum):
    """Stages of the scheduler run state machine, in execution order."""

    START = "start"
    RESET = "reset"
    CLEANUP = "cleanup"
    WEEKLY_GENERATION = "weekly_generation"
    MONTHLY_GENERATION = "monthly_generation"
    AGGREGATE = "aggregate"
    DONE = "done"
    FAILED = "failed"


class AuditResult(str, Enum):
    """Outcome recorded for each candidate occurrence considered by generation."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    OVERLAP = "overlap"


class FailureKind(str, Enum):
    """Classification applied by the retry handler to storage failures."""

    TRANSIENT = "transient"
    FATAL = "fatal"


class TriggerSource(str, Enum):
    """Where a run was started from."""

    API = "api"
    CONSOLE = "console"
    TIMER = "timer"


# =============================================================================
# LOGGING
# =============================================================================


class LogLevel(str, Enum):
    """Log levels accepted by configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSource(str, Enum):
    """Log source constants for identifying log origins."""

    API = "api"
    WORKER = "worker"
    SYSTEM = "system"
    DATABASE = "database"
    SCHEDULER = "scheduler"
    MIDDLEWARE = "middleware"


class LoggerName(str, Enum):
    """Logger name constants for categorizing log entries."""

    SYSTEM = "system"
    ERROR_HANDLER = "error_handler"
    MIDDLEWARE = "middleware"
    SCHEDULER_WORKER = "scheduler_worker"
    SCHEDULER_WORKFLOW = "scheduler_workflow"
    DATABASE = "database"
