# backend/shift_scheduler/database/repository.py
"""
Repository contract consumed by the scheduling engine.

The engine never talks to a driver directly. It asks a ``ScheduleRepository``
for a transaction and performs all reads and writes of one logical batch
through the ``RepositoryTransaction`` it yields. Leaving the transaction
context normally commits; leaving it with an exception rolls everything back.

Two implementations ship with the package:
- ``PostgresScheduleRepository`` (``schedule_operations.py``) over psycopg
- ``MemoryScheduleRepository`` (``memory_repository.py``) for tests and dry runs
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time
from typing import AsyncContextManager, Iterable, List, Optional, Sequence, Set

from ..models.audit_model import ShiftAuditEntry, ShiftConflict
from ..models.run_model import RunResult
from ..models.schedule_model import ScheduleModel
from ..models.shift_model import ShiftInstance


class RepositoryTransaction(ABC):
    """Operations available inside one storage transaction."""

    @abstractmethod
    async def load_active_models(
        self, company_id: Optional[int] = None, model_id: Optional[int] = None
    ) -> List[ScheduleModel]:
        """
        Active models of active companies, ordered by company then model id.

        A falsy filter value means no filter on that dimension.
        """

    @abstractmethod
    async def existing_shift_dates(
        self, company_id: int, model_id: int, start: date, end: date
    ) -> Set[date]:
        """Dates in [start, end] already materialized for the model."""

    @abstractmethod
    async def find_overlapping_shift(
        self, company_id: int, shift_date: date, start_time: time, end_time: time
    ) -> Optional[ShiftInstance]:
        """
        First shift of the company whose window overlaps the candidate's.

        Windows are compared as absolute [start, end) ranges, so an overnight
        shift from the previous date blocks an early candidate.
        """

    async def has_overlap(
        self, company_id: int, shift_date: date, start_time: time, end_time: time
    ) -> bool:
        """Overlap test against every shift of the company, whatever its model."""
        existing = await self.find_overlapping_shift(
            company_id, shift_date, start_time, end_time
        )
        return existing is not None

    @abstractmethod
    async def insert_shifts(self, shifts: Sequence[ShiftInstance]) -> int:
        """
        Insert a batch of shifts and return how many rows were written.

        Owned shifts are unique per (model_id, shift_date); rows that would
        violate that are skipped, not raised.
        """

    @abstractmethod
    async def delete_future_unlinked_shifts(self, model_id: int, from_date: date) -> int:
        """Delete the model's unlinked shifts dated ``from_date`` or later."""

    @abstractmethod
    async def delete_orphaned_shifts(
        self,
        valid_model_ids: Iterable[int],
        from_date: date,
        company_id: Optional[int] = None,
        model_id: Optional[int] = None,
    ) -> int:
        """
        Delete owned, unlinked shifts dated ``from_date`` or later whose model
        id is not in ``valid_model_ids``. Manual shifts (null model id) are
        never candidates. Optional filters narrow the candidate set.
        """

    @abstractmethod
    async def insert_audit_entries(self, entries: Sequence[ShiftAuditEntry]) -> int:
        pass

    @abstractmethod
    async def insert_conflicts(self, conflicts: Sequence[ShiftConflict]) -> int:
        pass

    @abstractmethod
    async def prune_audit_entries(self, before: datetime) -> int:
        """Drop audit and conflict rows recorded before ``before``."""

    @abstractmethod
    async def record_run(self, result: RunResult) -> None:
        """Persist a run summary row."""


class ScheduleRepository(ABC):
    """Factory for storage transactions."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[RepositoryTransaction]:
        """Open a transaction: commit on normal exit, roll back on exception."""
