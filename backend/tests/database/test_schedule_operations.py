# backend/tests/database/test_schedule_operations.py
"""
Tests for the PostgreSQL repository: query shapes, parameter binding and
driver error wrapping. The connection and cursor are mocked.
"""

from datetime import date, datetime, time, timezone

import psycopg
import pytest

from shift_scheduler.database.exceptions import (
    AuditOperationError,
    ScheduleOperationError,
)
from shift_scheduler.database.schedule_operations import (
    PostgresScheduleRepository,
    PostgresScheduleTransaction,
    ScheduleQueryBuilder,
)
from shift_scheduler.enums import AuditResult, Cadence, FailureKind, RunStage, RunStatus
from shift_scheduler.exceptions import FatalStorageError, TransientStorageError
from shift_scheduler.models.audit_model import ShiftAuditEntry
from shift_scheduler.models.run_model import RunResult
from shift_scheduler.services.retry_handler import classify_failure


def _model_row(**overrides):
    row = {
        "id": 1,
        "company_id": 1,
        "cadence": "weekly",
        "day_of_week": 0,
        "day_of_month": None,
        "interval_weeks": 1,
        "start_time": time(9, 0),
        "end_time": time(17, 0),
        "start_date": None,
        "end_date": None,
        "note": None,
        "is_active": True,
    }
    row.update(overrides)
    return row


@pytest.mark.unit
class TestScheduleQueryBuilder:
    def test_active_models_query_joins_active_companies(self):
        query = ScheduleQueryBuilder.build_active_models_query(
            ["m.company_id = %(company_id)s"]
        )

        assert "FROM schedule_models m" in query
        assert "JOIN companies c ON c.id = m.company_id" in query
        assert "m.is_active = TRUE AND c.is_active = TRUE" in query
        assert "AND m.company_id = %(company_id)s" in query
        assert "ORDER BY m.company_id, m.id" in query

    def test_overlap_query_is_half_open(self):
        query = ScheduleQueryBuilder.build_overlap_query()

        assert "starts_at < %(ends_at)s" in query
        assert "ends_at > %(starts_at)s" in query
        assert "shift_date BETWEEN %(from_date)s AND %(to_date)s" in query
        assert "LIMIT 1" in query

    def test_bulk_insert_uses_indexed_parameters(self):
        query = ScheduleQueryBuilder.build_bulk_insert_shifts_query(2)

        assert "%(company_id_0)s" in query
        assert "%(note_1)s" in query
        assert "%(note_2)s" not in query
        assert "ON CONFLICT (model_id, shift_date) WHERE model_id IS NOT NULL" in query
        assert "DO NOTHING" in query

    def test_orphan_delete_never_touches_manual_or_linked(self):
        query = ScheduleQueryBuilder.build_delete_orphaned_query([])

        assert "model_id IS NOT NULL" in query
        assert "is_linked = FALSE" in query
        assert "shift_date >= %(from_date)s" in query
        assert "NOT (model_id = ANY(%(valid_model_ids)s::int[]))" in query

    def test_record_run_is_idempotent_on_run_id(self):
        assert "ON CONFLICT (run_id) DO NOTHING" in ScheduleQueryBuilder.build_record_run_query()


@pytest.mark.unit
class TestPostgresScheduleTransaction:
    @pytest.mark.asyncio
    async def test_load_active_models_builds_filters(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.fetchall.return_value = [_model_row(), _model_row(id=2, company_id=3)]
        tx = PostgresScheduleTransaction(conn)

        models = await tx.load_active_models(company_id=3, model_id=2)

        query, params = cursor.execute.call_args.args
        assert "m.company_id = %(company_id)s" in query
        assert "m.id = %(model_id)s" in query
        assert params == {"company_id": 3, "model_id": 2}
        assert [m.id for m in models] == [1, 2]
        assert models[0].cadence == Cadence.WEEKLY

    @pytest.mark.asyncio
    async def test_zero_filters_are_ignored(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.fetchall.return_value = []
        tx = PostgresScheduleTransaction(conn)

        await tx.load_active_models(company_id=0, model_id=0)

        _, params = cursor.execute.call_args.args
        assert params == {}

    @pytest.mark.asyncio
    async def test_existing_shift_dates(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.fetchall.return_value = [
            {"shift_date": date(2025, 1, 20)},
            {"shift_date": date(2025, 1, 27)},
        ]
        tx = PostgresScheduleTransaction(conn)

        dates = await tx.existing_shift_dates(1, 1, date(2025, 1, 16), date(2025, 1, 29))

        assert dates == {date(2025, 1, 20), date(2025, 1, 27)}

    @pytest.mark.asyncio
    async def test_overlap_parameters_span_midnight(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.fetchone.return_value = None
        tx = PostgresScheduleTransaction(conn)

        found = await tx.find_overlapping_shift(1, date(2025, 1, 20), time(22, 0), time(6, 0))

        assert found is None
        _, params = cursor.execute.call_args.args
        assert params["starts_at"] == datetime(2025, 1, 20, 22, 0)
        assert params["ends_at"] == datetime(2025, 1, 21, 6, 0)
        assert params["from_date"] == date(2025, 1, 19)
        assert params["to_date"] == date(2025, 1, 21)

    @pytest.mark.asyncio
    async def test_insert_shifts_chunks_by_batch_size(self, mock_async_db, make_shift):
        _, conn, cursor = mock_async_db
        cursor.rowcount = 2
        tx = PostgresScheduleTransaction(conn, insert_batch_size=2)
        shifts = [
            make_shift(model_id=1, shift_date=date(2025, 1, d)) for d in (20, 21, 22)
        ]

        inserted = await tx.insert_shifts(shifts)

        assert cursor.execute.await_count == 2
        first_params = cursor.execute.call_args_list[0].args[1]
        assert first_params["model_id_0"] == 1
        assert first_params["shift_date_1"] == date(2025, 1, 21)
        assert inserted == 4

    @pytest.mark.asyncio
    async def test_insert_nothing_skips_the_database(self, mock_async_db):
        _, conn, cursor = mock_async_db
        tx = PostgresScheduleTransaction(conn)

        assert await tx.insert_shifts([]) == 0
        cursor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_orphans_passes_valid_ids(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.rowcount = 5
        tx = PostgresScheduleTransaction(conn)

        deleted = await tx.delete_orphaned_shifts([3, 1, 3], date(2025, 1, 16), company_id=2)

        query, params = cursor.execute.call_args.args
        assert deleted == 5
        assert params["valid_model_ids"] == [1, 3]
        assert params["company_id"] == 2
        assert "company_id = %(company_id)s" in query

    @pytest.mark.asyncio
    async def test_audit_entries_bind_enum_values(self, mock_async_db):
        _, conn, cursor = mock_async_db
        tx = PostgresScheduleTransaction(conn)
        entry = ShiftAuditEntry(
            run_id="r1",
            model_id=1,
            company_id=1,
            shift_date=date(2025, 1, 20),
            start_time=time(9, 0),
            end_time=time(17, 0),
            result=AuditResult.CREATED,
            cadence=Cadence.WEEKLY,
            recurring_pattern="Every week",
        )

        assert await tx.insert_audit_entries([entry]) == 1

        rows = cursor.executemany.call_args.args[1]
        assert rows[0]["result"] == "created"
        assert rows[0]["cadence"] == "weekly"

    @pytest.mark.asyncio
    async def test_record_run_binds_status(self, mock_async_db):
        _, conn, cursor = mock_async_db
        tx = PostgresScheduleTransaction(conn)
        now = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
        result = RunResult(
            run_id="r1",
            status=RunStatus.FAILED,
            stage=RunStage.FAILED,
            reference_time=now,
            started_at=now,
            error_message="cleanup: boom",
        )

        await tx.record_run(result)

        params = cursor.execute.call_args.args[1]
        assert params["status"] == "failed"
        assert params["stage"] == "failed"
        assert params["error_message"] == "cleanup: boom"

    @pytest.mark.asyncio
    async def test_driver_errors_are_wrapped_with_sqlstate(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.execute.side_effect = psycopg.errors.DeadlockDetected("deadlock detected")
        tx = PostgresScheduleTransaction(conn)

        with pytest.raises(ScheduleOperationError) as exc_info:
            await tx.delete_future_unlinked_shifts(1, date(2025, 1, 16))

        error = exc_info.value
        assert error.operation == "delete_future_unlinked_shifts"
        assert error.sqlstate == "40P01"
        assert isinstance(error.__cause__, psycopg.Error)
        assert classify_failure(error) == FailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_audit_errors_use_audit_exception(self, mock_async_db):
        _, conn, cursor = mock_async_db
        cursor.execute.side_effect = psycopg.OperationalError("connection lost")
        tx = PostgresScheduleTransaction(conn)

        with pytest.raises(AuditOperationError) as exc_info:
            await tx.prune_audit_entries(datetime(2025, 1, 12, tzinfo=timezone.utc))

        assert classify_failure(exc_info.value) == FailureKind.FATAL


@pytest.mark.unit
class TestPostgresScheduleRepository:
    @pytest.mark.asyncio
    async def test_transaction_borrows_pooled_connection(self, mock_async_db):
        db, conn, _ = mock_async_db
        repository = PostgresScheduleRepository(db, insert_batch_size=50)

        async with repository.transaction() as tx:
            assert isinstance(tx, PostgresScheduleTransaction)
            assert tx.conn is conn
            assert tx.insert_batch_size == 50

        db.get_connection.assert_called_once()

    @pytest.mark.asyncio
    async def test_connection_failure_is_fatal(self, mock_async_db):
        db, _, _ = mock_async_db
        db.get_connection.return_value.__aenter__.side_effect = psycopg.OperationalError(
            "connection refused"
        )
        repository = PostgresScheduleRepository(db)

        with pytest.raises(FatalStorageError) as exc_info:
            async with repository.transaction():
                pass

        assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)
        assert classify_failure(exc_info.value) == FailureKind.FATAL

    @pytest.mark.asyncio
    async def test_serialization_failure_on_commit_is_transient(self, mock_async_db):
        db, _, _ = mock_async_db
        db.get_connection.return_value.__aexit__.side_effect = (
            psycopg.errors.SerializationFailure("could not serialize access")
        )
        repository = PostgresScheduleRepository(db)

        with pytest.raises(TransientStorageError):
            async with repository.transaction():
                pass

    @pytest.mark.asyncio
    async def test_operation_errors_pass_through(self, mock_async_db):
        db, _, _ = mock_async_db
        repository = PostgresScheduleRepository(db)
        error = ScheduleOperationError("boom", operation="insert_shifts", sqlstate="23502")

        with pytest.raises(ScheduleOperationError) as exc_info:
            async with repository.transaction():
                raise error

        assert exc_info.value is error
