"""create scheduled task execution records

Revision ID: 0002_scheduled_task_runs
Revises: 0001_families_and_ledger
Create Date: 2026-10-17 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_scheduled_task_runs"
down_revision = "0001_families_and_ledger"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "scheduled_task_runs",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("TaskName", sa.String(length=120), nullable=False),
        sa.Column("PeriodLabel", sa.String(length=64), nullable=False),
        sa.Column(
            "RecordedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.UniqueConstraint("TaskName", "PeriodLabel", name="uq_scheduled_task_runs_task_period"),
    )
    op.create_index("ix_scheduled_task_runs_Id", "scheduled_task_runs", ["Id"])
    op.create_index(
        "ix_scheduled_task_runs_task_period",
        "scheduled_task_runs",
        ["TaskName", "PeriodLabel"],
    )


def downgrade() -> None:
    op.drop_index("ix_scheduled_task_runs_task_period", table_name="scheduled_task_runs")
    op.drop_index("ix_scheduled_task_runs_Id", table_name="scheduled_task_runs")
    op.drop_table("scheduled_task_runs")
