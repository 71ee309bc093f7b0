# backend/shift_scheduler/database/schedule_operations.py
"""
Schedule Operations - PostgreSQL implementation of the repository contract.

All statements run on the connection of the surrounding transaction opened by
``PostgresScheduleRepository.transaction()``; nothing here commits on its own.
Driver errors are wrapped in ``ScheduleOperationError`` / ``AuditOperationError``
with the SQLSTATE preserved for retry classification.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, time, timedelta
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional, Sequence, Set

import psycopg

from ..constants import TRANSIENT_SQLSTATES
from ..exceptions import FatalStorageError, TransientStorageError
from ..models.audit_model import ShiftAuditEntry, ShiftConflict
from ..models.run_model import RunResult
from ..models.schedule_model import ScheduleModel
from ..models.shift_model import ShiftInstance
from ..utils.time_utils import shift_window
from .core import AsyncDatabase
from .exceptions import AuditOperationError, ScheduleOperationError
from .repository import RepositoryTransaction, ScheduleRepository


class ScheduleQueryBuilder:
    """Centralized query builder for schedule operations.

    Indexes these queries rely on (created by migration 001):
    - CREATE UNIQUE INDEX uq_shift_instances_model_date ON shift_instances(model_id, shift_date) WHERE model_id IS NOT NULL;
    - CREATE INDEX idx_shift_instances_company_date ON shift_instances(company_id, shift_date);
    - CREATE INDEX idx_schedule_models_company_active ON schedule_models(company_id) WHERE is_active;
    - CREATE INDEX idx_shift_audit_log_created_at ON shift_audit_log(created_at);
    """

    @staticmethod
    def get_model_fields():
        """Get standard fields for schedule model queries."""
        return """
            m.id, m.company_id, m.cadence, m.day_of_week, m.day_of_month,
            m.interval_weeks, m.start_time, m.end_time, m.start_date, m.end_date,
            m.note, m.is_active
        """

    @staticmethod
    def get_shift_fields():
        """Get standard fields for shift instance queries."""
        return """
            id, company_id, model_id, shift_date, start_time, end_time,
            is_linked, note, created_at
        """

    @staticmethod
    def build_active_models_query(where_conditions: List[str]):
        """Build active model query; extra conditions are ANDed on."""
        fields = ScheduleQueryBuilder.get_model_fields()
        conditions = ["m.is_active = TRUE", "c.is_active = TRUE"] + where_conditions
        return f"""
            SELECT {fields}
            FROM schedule_models m
            JOIN companies c ON c.id = m.company_id
            WHERE {" AND ".join(conditions)}
            ORDER BY m.company_id, m.id
        """

    @staticmethod
    def build_existing_dates_query():
        return """
            SELECT shift_date
            FROM shift_instances
            WHERE company_id = %(company_id)s
              AND model_id = %(model_id)s
              AND shift_date BETWEEN %(start_date)s AND %(end_date)s
        """

    @staticmethod
    def build_overlap_query():
        """
        Half-open window test against every shift of the company.

        Shifts last under a day, so only the neighbouring dates can reach
        into the candidate's window.
        """
        fields = ScheduleQueryBuilder.get_shift_fields()
        return f"""
            SELECT {fields}
            FROM shift_instances
            WHERE company_id = %(company_id)s
              AND shift_date BETWEEN %(from_date)s AND %(to_date)s
              AND starts_at < %(ends_at)s
              AND ends_at > %(starts_at)s
            ORDER BY starts_at, id
            LIMIT 1
        """

    @staticmethod
    def build_bulk_insert_shifts_query(row_count: int):
        """Build multi-row insert using indexed named parameters."""
        columns = [
            "company_id",
            "model_id",
            "shift_date",
            "start_time",
            "end_time",
            "starts_at",
            "ends_at",
            "is_linked",
            "note",
        ]
        rows = []
        for i in range(row_count):
            rows.append(
                "(" + ", ".join(f"%({column}_{i})s" for column in columns) + ")"
            )
        return f"""
            INSERT INTO shift_instances ({", ".join(columns)})
            VALUES {", ".join(rows)}
            ON CONFLICT (model_id, shift_date) WHERE model_id IS NOT NULL
            DO NOTHING
        """

    @staticmethod
    def build_delete_future_unlinked_query():
        return """
            DELETE FROM shift_instances
            WHERE model_id = %(model_id)s
              AND is_linked = FALSE
              AND shift_date >= %(from_date)s
        """

    @staticmethod
    def build_delete_orphaned_query(where_conditions: List[str]):
        conditions = [
            "model_id IS NOT NULL",
            "is_linked = FALSE",
            "shift_date >= %(from_date)s",
            "NOT (model_id = ANY(%(valid_model_ids)s::int[]))",
        ] + where_conditions
        return f"""
            DELETE FROM shift_instances
            WHERE {" AND ".join(conditions)}
        """

    @staticmethod
    def build_insert_audit_query():
        return """
            INSERT INTO shift_audit_log (
                run_id, model_id, company_id, shift_date, start_time, end_time,
                result, cadence, recurring_pattern, description
            ) VALUES (
                %(run_id)s, %(model_id)s, %(company_id)s, %(shift_date)s,
                %(start_time)s, %(end_time)s, %(result)s, %(cadence)s,
                %(recurring_pattern)s, %(description)s
            )
        """

    @staticmethod
    def build_insert_conflict_query():
        return """
            INSERT INTO shift_conflicts (
                run_id, company_id, model_id, shift_date, start_time, end_time,
                conflicting_shift_id, conflicting_model_id,
                conflicting_start_time, conflicting_end_time
            ) VALUES (
                %(run_id)s, %(company_id)s, %(model_id)s, %(shift_date)s,
                %(start_time)s, %(end_time)s, %(conflicting_shift_id)s,
                %(conflicting_model_id)s, %(conflicting_start_time)s,
                %(conflicting_end_time)s
            )
        """

    @staticmethod
    def build_prune_queries():
        return [
            "DELETE FROM shift_audit_log WHERE created_at < %(before)s",
            "DELETE FROM shift_conflicts WHERE created_at < %(before)s",
        ]

    @staticmethod
    def build_record_run_query():
        return """
            INSERT INTO scheduler_runs (
                run_id, status, stage, reference_time, started_at,
                shifts_created, duplicates_skipped, overlaps_blocked,
                orphaned_deleted, reset_deleted, weekly_models_loaded,
                monthly_models_loaded, conflicts, audit_entries,
                duration_seconds, error_message
            ) VALUES (
                %(run_id)s, %(status)s, %(stage)s, %(reference_time)s, %(started_at)s,
                %(shifts_created)s, %(duplicates_skipped)s, %(overlaps_blocked)s,
                %(orphaned_deleted)s, %(reset_deleted)s, %(weekly_models_loaded)s,
                %(monthly_models_loaded)s, %(conflicts)s, %(audit_entries)s,
                %(duration_seconds)s, %(error_message)s
            )
            ON CONFLICT (run_id) DO NOTHING
        """


def _shift_params(shift: ShiftInstance, index: int) -> Dict[str, Any]:
    starts_at, ends_at = shift_window(shift.shift_date, shift.start_time, shift.end_time)
    return {
        f"company_id_{index}": shift.company_id,
        f"model_id_{index}": shift.model_id,
        f"shift_date_{index}": shift.shift_date,
        f"start_time_{index}": shift.start_time,
        f"end_time_{index}": shift.end_time,
        f"starts_at_{index}": starts_at,
        f"ends_at_{index}": ends_at,
        f"is_linked_{index}": shift.is_linked,
        f"note_{index}": shift.note,
    }


def _audit_params(entry: ShiftAuditEntry) -> Dict[str, Any]:
    params = entry.model_dump()
    params["result"] = entry.result.value
    params["cadence"] = entry.cadence.value
    return params


class PostgresScheduleTransaction(RepositoryTransaction):
    """Repository operations bound to one open psycopg connection."""

    def __init__(self, conn: Any, insert_batch_size: int = 1000) -> None:
        self.conn = conn
        self.insert_batch_size = max(insert_batch_size, 1)

    async def load_active_models(
        self, company_id: Optional[int] = None, model_id: Optional[int] = None
    ) -> List[ScheduleModel]:
        try:
            conditions: List[str] = []
            params: Dict[str, Any] = {}
            if company_id:
                conditions.append("m.company_id = %(company_id)s")
                params["company_id"] = company_id
            if model_id:
                conditions.append("m.id = %(model_id)s")
                params["model_id"] = model_id

            query = ScheduleQueryBuilder.build_active_models_query(conditions)
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
            return [ScheduleModel.model_validate(dict(row)) for row in rows]

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to load active schedule models",
                operation="load_active_models",
                sqlstate=e.sqlstate,
            ) from e

    async def existing_shift_dates(
        self, company_id: int, model_id: int, start: date, end: date
    ) -> Set[date]:
        try:
            query = ScheduleQueryBuilder.build_existing_dates_query()
            params = {
                "company_id": company_id,
                "model_id": model_id,
                "start_date": start,
                "end_date": end,
            }
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
            return {row["shift_date"] for row in rows}

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to fetch existing shift dates",
                operation="existing_shift_dates",
                details={"model_id": model_id},
                sqlstate=e.sqlstate,
            ) from e

    async def find_overlapping_shift(
        self, company_id: int, shift_date: date, start_time: time, end_time: time
    ) -> Optional[ShiftInstance]:
        try:
            starts_at, ends_at = shift_window(shift_date, start_time, end_time)
            query = ScheduleQueryBuilder.build_overlap_query()
            params = {
                "company_id": company_id,
                "from_date": shift_date - timedelta(days=1),
                "to_date": shift_date + timedelta(days=1),
                "starts_at": starts_at,
                "ends_at": ends_at,
            }
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
            return ShiftInstance.model_validate(dict(row)) if row else None

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to check shift overlap",
                operation="find_overlapping_shift",
                details={"company_id": company_id, "shift_date": str(shift_date)},
                sqlstate=e.sqlstate,
            ) from e

    async def insert_shifts(self, shifts: Sequence[ShiftInstance]) -> int:
        if not shifts:
            return 0
        try:
            inserted = 0
            async with self.conn.cursor() as cur:
                for offset in range(0, len(shifts), self.insert_batch_size):
                    chunk = shifts[offset : offset + self.insert_batch_size]
                    params: Dict[str, Any] = {}
                    for i, shift in enumerate(chunk):
                        params.update(_shift_params(shift, i))
                    query = ScheduleQueryBuilder.build_bulk_insert_shifts_query(
                        len(chunk)
                    )
                    await cur.execute(query, params)
                    inserted += max(cur.rowcount, 0)
            return inserted

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to insert shifts",
                operation="insert_shifts",
                details={"count": len(shifts)},
                sqlstate=e.sqlstate,
            ) from e

    async def delete_future_unlinked_shifts(self, model_id: int, from_date: date) -> int:
        try:
            query = ScheduleQueryBuilder.build_delete_future_unlinked_query()
            async with self.conn.cursor() as cur:
                await cur.execute(query, {"model_id": model_id, "from_date": from_date})
                return max(cur.rowcount, 0)

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to delete future shifts",
                operation="delete_future_unlinked_shifts",
                details={"model_id": model_id},
                sqlstate=e.sqlstate,
            ) from e

    async def delete_orphaned_shifts(
        self,
        valid_model_ids: Iterable[int],
        from_date: date,
        company_id: Optional[int] = None,
        model_id: Optional[int] = None,
    ) -> int:
        try:
            conditions: List[str] = []
            params: Dict[str, Any] = {
                "from_date": from_date,
                "valid_model_ids": sorted(set(valid_model_ids)),
            }
            if company_id:
                conditions.append("company_id = %(company_id)s")
                params["company_id"] = company_id
            if model_id:
                conditions.append("model_id = %(model_id)s")
                params["model_id"] = model_id

            query = ScheduleQueryBuilder.build_delete_orphaned_query(conditions)
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)
                return max(cur.rowcount, 0)

        except psycopg.Error as e:
            raise ScheduleOperationError(
                "Failed to delete orphaned shifts",
                operation="delete_orphaned_shifts",
                sqlstate=e.sqlstate,
            ) from e

    async def insert_audit_entries(self, entries: Sequence[ShiftAuditEntry]) -> int:
        if not entries:
            return 0
        try:
            query = ScheduleQueryBuilder.build_insert_audit_query()
            async with self.conn.cursor() as cur:
                await cur.executemany(query, [_audit_params(e) for e in entries])
            return len(entries)

        except psycopg.Error as e:
            raise AuditOperationError(
                "Failed to write audit entries",
                operation="insert_audit_entries",
                sqlstate=e.sqlstate,
            ) from e

    async def insert_conflicts(self, conflicts: Sequence[ShiftConflict]) -> int:
        if not conflicts:
            return 0
        try:
            query = ScheduleQueryBuilder.build_insert_conflict_query()
            async with self.conn.cursor() as cur:
                await cur.executemany(
                    query, [conflict.model_dump() for conflict in conflicts]
                )
            return len(conflicts)

        except psycopg.Error as e:
            raise AuditOperationError(
                "Failed to write shift conflicts",
                operation="insert_conflicts",
                sqlstate=e.sqlstate,
            ) from e

    async def prune_audit_entries(self, before: datetime) -> int:
        try:
            pruned = 0
            async with self.conn.cursor() as cur:
                for query in ScheduleQueryBuilder.build_prune_queries():
                    await cur.execute(query, {"before": before})
                    pruned += max(cur.rowcount, 0)
            return pruned

        except psycopg.Error as e:
            raise AuditOperationError(
                "Failed to prune audit trail",
                operation="prune_audit_entries",
                sqlstate=e.sqlstate,
            ) from e

    async def record_run(self, result: RunResult) -> None:
        try:
            query = ScheduleQueryBuilder.build_record_run_query()
            params = result.model_dump()
            params["status"] = result.status.value
            params["stage"] = result.stage.value
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)

        except psycopg.Error as e:
            raise AuditOperationError(
                "Failed to record run summary",
                operation="record_run",
                details={"run_id": result.run_id},
                sqlstate=e.sqlstate,
            ) from e


class PostgresScheduleRepository(ScheduleRepository):
    """
    Repository backed by the shared ``AsyncDatabase`` pool.

    Each ``transaction()`` borrows one pooled connection for its lifetime.
    """

    def __init__(self, db: AsyncDatabase, insert_batch_size: int = 1000) -> None:
        """Initialize with async database instance."""
        self.db = db
        self.insert_batch_size = insert_batch_size

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[PostgresScheduleTransaction, None]:
        """
        Borrow a connection and run one transaction on it.

        Operation errors raised inside the block pass through unchanged.
        Driver errors from acquiring the connection or committing are mapped
        onto the engine's storage errors: lock contention becomes
        ``TransientStorageError``, anything else ``FatalStorageError``.
        """
        try:
            async with self.db.get_connection() as conn:
                yield PostgresScheduleTransaction(conn, self.insert_batch_size)
        except psycopg.Error as e:
            if e.sqlstate in TRANSIENT_SQLSTATES:
                raise TransientStorageError(
                    f"Transaction aborted by lock contention: {e}"
                ) from e
            raise FatalStorageError(f"Storage unavailable: {e}") from e
