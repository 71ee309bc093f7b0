# backend/shift_scheduler/constants.py
"""
Global Constants for the shift scheduler.

Centralized location for application constants to avoid hardcoded values
throughout the codebase.
"""

from typing import FrozenSet

APPLICATION_NAME = "Shift Scheduler"
APPLICATION_VERSION = "1.0.0"

# =============================================================================
# GENERATION DEFAULTS
# =============================================================================

DEFAULT_ADVANCE_DAYS = 45
DEFAULT_MONTHLY_MONTHS_AHEAD = 3
DEFAULT_INSERT_BATCH_SIZE = 1000
DEFAULT_GENERATION_CONCURRENCY = 1
DEFAULT_AUDIT_RETENTION_DAYS = 3

# Notes stamped on generated shifts when the model carries none
WEEKLY_SHIFT_NOTE = "Scheduled Event"
MONTHLY_SHIFT_NOTE = "Schedule Event Monthly"

DUPLICATE_SHIFT_DESCRIPTION = "Shift already exists for this model/date"

# =============================================================================
# RETRY HANDLING
# =============================================================================

DEFAULT_MAX_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_BASE_DELAY_MS = 200
DEFAULT_RETRY_MAX_DELAY_MS = 5000
RETRY_JITTER_RATIO = 0.25
RETRY_MIN_DELAY_MS = 50

# PostgreSQL SQLSTATE codes that indicate lock contention rather than a bad
# statement: deadlock_detected, serialization_failure, lock_not_available.
TRANSIENT_SQLSTATES: FrozenSet[str] = frozenset({"40P01", "40001", "55P03"})

# =============================================================================
# API
# =============================================================================

API_KEY_HEADER = "X-Api-Key"
API_KEY_EXEMPT_PATHS: FrozenSet[str] = frozenset(
    {"/api/scheduler/status", "/health"}
)

# =============================================================================
# WORKER EXIT CODES
# =============================================================================

EXIT_CODE_SUCCESS = 0
EXIT_CODE_CANCELLED = 1
EXIT_CODE_FAILED = 2

DEFAULT_SCHEDULE_CRON = "0 2 * * *"
DEFAULT_TIMEZONE = "UTC"
