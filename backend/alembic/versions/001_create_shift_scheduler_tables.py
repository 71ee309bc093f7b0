"""Create shift scheduler tables

Revision ID: 001_create_shift_scheduler_tables
Revises:
Create Date: 2025-09-01 12:00:00.000000

Companies, recurring schedule models, materialized shift instances, and the
run history / audit trail written by the scheduler engine.
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_create_shift_scheduler_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create scheduler tables and indexes."""

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.VARCHAR(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "schedule_models",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("cadence", sa.VARCHAR(20), nullable=False),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=True),
        sa.Column("day_of_month", sa.SmallInteger(), nullable=True),
        sa.Column("interval_weeks", sa.SmallInteger(), nullable=False, server_default="1"),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "cadence IN ('weekly', 'monthly')", name="ck_schedule_models_cadence"
        ),
        sa.CheckConstraint(
            "day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6",
            name="ck_schedule_models_day_of_week",
        ),
        sa.CheckConstraint(
            "day_of_month IS NULL OR day_of_month BETWEEN 1 AND 31",
            name="ck_schedule_models_day_of_month",
        ),
        sa.CheckConstraint(
            "interval_weeks >= 1", name="ck_schedule_models_interval_weeks"
        ),
    )
    op.create_index(
        "idx_schedule_models_company_active",
        "schedule_models",
        ["company_id"],
        postgresql_where=sa.text("is_active"),
    )

    # No foreign key on model_id: shifts outlive deleted models until cleanup.
    op.create_table(
        "shift_instances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=True),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("starts_at", sa.TIMESTAMP(timezone=False), nullable=False),
        sa.Column("ends_at", sa.TIMESTAMP(timezone=False), nullable=False),
        sa.Column("is_linked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.CheckConstraint("ends_at > starts_at", name="ck_shift_instances_window"),
    )
    op.create_index(
        "uq_shift_instances_model_date",
        "shift_instances",
        ["model_id", "shift_date"],
        unique=True,
        postgresql_where=sa.text("model_id IS NOT NULL"),
    )
    op.create_index(
        "idx_shift_instances_company_date",
        "shift_instances",
        ["company_id", "shift_date"],
    )

    op.create_table(
        "scheduler_runs",
        sa.Column("run_id", sa.VARCHAR(64), nullable=False),
        sa.Column("status", sa.VARCHAR(20), nullable=False),
        sa.Column("stage", sa.VARCHAR(32), nullable=False),
        sa.Column("reference_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("shifts_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duplicates_skipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overlaps_blocked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("orphaned_deleted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reset_deleted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weekly_models_loaded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_models_loaded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("conflicts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("audit_entries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_seconds", sa.Float(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("run_id"),
    )
    op.create_index("idx_scheduler_runs_started_at", "scheduler_runs", ["started_at"])

    op.create_table(
        "shift_audit_log",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("run_id", sa.VARCHAR(64), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("result", sa.VARCHAR(20), nullable=False),
        sa.Column("cadence", sa.VARCHAR(20), nullable=False),
        sa.Column("recurring_pattern", sa.VARCHAR(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shift_audit_log_created_at", "shift_audit_log", ["created_at"])
    op.create_index("idx_shift_audit_log_run_id", "shift_audit_log", ["run_id"])

    op.create_table(
        "shift_conflicts",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("run_id", sa.VARCHAR(64), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=False),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("conflicting_shift_id", sa.Integer(), nullable=True),
        sa.Column("conflicting_model_id", sa.Integer(), nullable=True),
        sa.Column("conflicting_start_time", sa.Time(), nullable=False),
        sa.Column("conflicting_end_time", sa.Time(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shift_conflicts_created_at", "shift_conflicts", ["created_at"])


def downgrade() -> None:
    """Drop scheduler tables."""
    op.drop_index("idx_shift_conflicts_created_at", table_name="shift_conflicts")
    op.drop_table("shift_conflicts")
    op.drop_index("idx_shift_audit_log_run_id", table_name="shift_audit_log")
    op.drop_index("idx_shift_audit_log_created_at", table_name="shift_audit_log")
    op.drop_table("shift_audit_log")
    op.drop_index("idx_scheduler_runs_started_at", table_name="scheduler_runs")
    op.drop_table("scheduler_runs")
    op.drop_index("idx_shift_instances_company_date", table_name="shift_instances")
    op.drop_index("uq_shift_instances_model_date", table_name="shift_instances")
    op.drop_table("shift_instances")
    op.drop_index("idx_schedule_models_company_active", table_name="schedule_models")
    op.drop_table("schedule_models")
    op.drop_table("companies")
