# backend/shift_scheduler/database/memory_repository.py
"""
In-memory ScheduleRepository.

Keeps companies, models, shifts and the audit trail in plain Python
structures. Each transaction stages its writes privately and reads through
them, then applies them to the shared store on commit; an exception discards
the staged writes, which gives the same all-or-nothing behaviour as a
database transaction.

Lets the engine be exercised end to end without PostgreSQL.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import (
    AsyncGenerator,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from ..models.audit_model import ShiftAuditEntry, ShiftConflict
from ..models.run_model import RunResult
from ..models.schedule_model import ScheduleModel
from ..models.shift_model import ShiftInstance
from ..utils.time_utils import utc_now
from .repository import RepositoryTransaction, ScheduleRepository


class MemoryStore:
    """Committed state shared by all transactions of one repository."""

    def __init__(self) -> None:
        self.inactive_company_ids: Set[int] = set()
        self.models: Dict[int, ScheduleModel] = {}
        self.shifts: Dict[int, ShiftInstance] = {}
        self.audit_entries: List[Tuple[datetime, ShiftAuditEntry]] = []
        self.conflicts: List[Tuple[datetime, ShiftConflict]] = []
        self.runs: List[RunResult] = []
        self.next_shift_id = 1

    def owned_key_taken(self, shift: ShiftInstance) -> bool:
        if shift.model_id is None:
            return False
        return any(
            s.model_id == shift.model_id and s.shift_date == shift.shift_date
            for s in self.shifts.values()
        )


class MemoryTransaction(RepositoryTransaction):
    def __init__(self, store: MemoryStore, clock: Callable[[], datetime]) -> None:
        self._store = store
        self._clock = clock
        self._inserted: List[ShiftInstance] = []
        self._deleted: Set[int] = set()
        self._audit: List[ShiftAuditEntry] = []
        self._conflicts: List[ShiftConflict] = []
        self._runs: List[RunResult] = []
        self._prune_before: Optional[datetime] = None

    def _visible_shifts(self) -> List[ShiftInstance]:
        committed = [
            shift
            for shift_id, shift in self._store.shifts.items()
            if shift_id not in self._deleted
        ]
        return committed + self._inserted

    async def load_active_models(
        self, company_id: Optional[int] = None, model_id: Optional[int] = None
    ) -> List[ScheduleModel]:
        models = [
            model
            for model in self._store.models.values()
            if model.is_active
            and model.company_id not in self._store.inactive_company_ids
            and (not company_id or model.company_id == company_id)
            and (not model_id or model.id == model_id)
        ]
        return sorted(models, key=lambda m: (m.company_id, m.id))

    async def existing_shift_dates(
        self, company_id: int, model_id: int, start: date, end: date
    ) -> Set[date]:
        return {
            shift.shift_date
            for shift in self._visible_shifts()
            if shift.company_id == company_id
            and shift.model_id == model_id
            and start <= shift.shift_date <= end
        }

    async def find_overlapping_shift(
        self, company_id: int, shift_date: date, start_time: time, end_time: time
    ) -> Optional[ShiftInstance]:
        for shift in self._visible_shifts():
            if (
                shift.company_id == company_id
                and shift.overlaps(shift_date, start_time, end_time)
            ):
                return shift
        return None

    async def insert_shifts(self, shifts: Sequence[ShiftInstance]) -> int:
        inserted = 0
        for shift in shifts:
            taken = shift.model_id is not None and any(
                s.model_id == shift.model_id and s.shift_date == shift.shift_date
                for s in self._visible_shifts()
            )
            if taken:
                continue
            self._inserted.append(shift)
            inserted += 1
        return inserted

    async def delete_future_unlinked_shifts(self, model_id: int, from_date: date) -> int:
        return self._delete_where(
            lambda s: s.model_id == model_id
            and not s.is_linked
            and s.shift_date >= from_date
        )

    async def delete_orphaned_shifts(
        self,
        valid_model_ids: Iterable[int],
        from_date: date,
        company_id: Optional[int] = None,
        model_id: Optional[int] = None,
    ) -> int:
        valid = set(valid_model_ids)
        return self._delete_where(
            lambda s: s.model_id is not None
            and s.model_id not in valid
            and not s.is_linked
            and s.shift_date >= from_date
            and (not company_id or s.company_id == company_id)
            and (not model_id or s.model_id == model_id)
        )

    def _delete_where(self, predicate: Callable[[ShiftInstance], bool]) -> int:
        deleted = 0
        for shift_id, shift in self._store.shifts.items():
            if shift_id not in self._deleted and predicate(shift):
                self._deleted.add(shift_id)
                deleted += 1
        kept = [s for s in self._inserted if not predicate(s)]
        deleted += len(self._inserted) - len(kept)
        self._inserted = kept
        return deleted

    async def insert_audit_entries(self, entries: Sequence[ShiftAuditEntry]) -> int:
        self._audit.extend(entries)
        return len(entries)

    async def insert_conflicts(self, conflicts: Sequence[ShiftConflict]) -> int:
        self._conflicts.extend(conflicts)
        return len(conflicts)

    async def prune_audit_entries(self, before: datetime) -> int:
        self._prune_before = before
        return sum(1 for recorded, _ in self._store.audit_entries if recorded < before)

    async def record_run(self, result: RunResult) -> None:
        self._runs.append(result)

    def commit(self) -> None:
        store = self._store
        for shift_id in self._deleted:
            store.shifts.pop(shift_id, None)
        for shift in self._inserted:
            if store.owned_key_taken(shift):
                continue
            shift_id = store.next_shift_id
            store.next_shift_id += 1
            store.shifts[shift_id] = shift.model_copy(
                update={"id": shift_id, "created_at": self._clock()}
            )
        if self._prune_before is not None:
            cutoff = self._prune_before
            store.audit_entries = [e for e in store.audit_entries if e[0] >= cutoff]
            store.conflicts = [c for c in store.conflicts if c[0] >= cutoff]
        now = self._clock()
        store.audit_entries.extend((now, entry) for entry in self._audit)
        store.conflicts.extend((now, conflict) for conflict in self._conflicts)
        store.runs.extend(self._runs)


class MemoryScheduleRepository(ScheduleRepository):
    """Repository over a ``MemoryStore`` with commit-time fault injection."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = MemoryStore()
        self._clock = clock
        self._pending_failures: List[Exception] = []
        self.commits = 0
        self.rollbacks = 0

    # Seeding helpers

    def add_model(self, model: ScheduleModel) -> ScheduleModel:
        self.store.models[model.id] = model
        return model

    def deactivate_model(self, model_id: int) -> None:
        model = self.store.models[model_id]
        self.store.models[model_id] = model.model_copy(update={"is_active": False})

    def remove_model(self, model_id: int) -> None:
        self.store.models.pop(model_id, None)

    def deactivate_company(self, company_id: int) -> None:
        self.store.inactive_company_ids.add(company_id)

    def add_shift(self, shift: ShiftInstance) -> ShiftInstance:
        shift_id = self.store.next_shift_id
        self.store.next_shift_id += 1
        stored = shift.model_copy(update={"id": shift_id})
        self.store.shifts[shift_id] = stored
        return stored

    def fail_next_commits(self, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` commits raise ``error`` instead of applying."""
        self._pending_failures.extend([error] * times)

    # Read helpers

    @property
    def shifts(self) -> List[ShiftInstance]:
        return sorted(self.store.shifts.values(), key=lambda s: s.id)

    @property
    def audit_entries(self) -> List[ShiftAuditEntry]:
        return [entry for _, entry in self.store.audit_entries]

    @property
    def conflicts(self) -> List[ShiftConflict]:
        return [conflict for _, conflict in self.store.conflicts]

    @property
    def runs(self) -> List[RunResult]:
        return list(self.store.runs)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[MemoryTransaction, None]:
        tx = MemoryTransaction(self.store, self._clock)
        try:
            yield tx
            if self._pending_failures:
                raise self._pending_failures.pop(0)
        except BaseException:
            self.rollbacks += 1
            raise
        tx.commit()
        self.commits += 1
