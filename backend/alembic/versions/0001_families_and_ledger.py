"""create families, users, allowances, requests and transactions

Revision ID: 0001_families_and_ledger
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_families_and_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "families",
        sa.Column("Id", sa.String(length=36), primary_key=True),
        sa.Column("Name", sa.String(length=120), nullable=False),
        sa.Column(
            "CreatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )

    op.create_table(
        "users",
        sa.Column("Id", sa.String(length=36), primary_key=True),
        sa.Column(
            "FamilyId",
            sa.String(length=36),
            sa.ForeignKey("families.Id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("Role", sa.String(length=20), nullable=False),
        sa.Column("Name", sa.String(length=120), nullable=False),
        sa.Column("Email", sa.String(length=254), nullable=True),
        sa.Column("PasswordHash", sa.String(length=255), nullable=True),
        sa.Column("SessionVersion", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "CreatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.UniqueConstraint("Email", name="uq_users_email"),
    )
    op.create_index("ix_users_FamilyId", "users", ["FamilyId"])

    op.create_table(
        "allowances",
        sa.Column("Id", sa.String(length=36), primary_key=True),
        sa.Column(
            "UserId",
            sa.String(length=36),
            sa.ForeignKey("users.Id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("Amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("Schedule", sa.String(length=3), nullable=False, server_default="Sat"),
        sa.Column(
            "UpdatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.UniqueConstraint("UserId", name="uq_allowances_user"),
    )
    op.create_index("ix_allowances_Schedule", "allowances", ["Schedule"])

    op.create_table(
        "requests",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column(
            "UserId",
            sa.String(length=36),
            sa.ForeignKey("users.Id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("Name", sa.String(length=200), nullable=False),
        sa.Column("Description", sa.Text(), nullable=False),
        sa.Column("Amount", sa.Integer(), nullable=False),
        sa.Column("Url", sa.String(length=2000), nullable=True),
        sa.Column(
            "Time",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )
    op.create_index("ix_requests_Id", "requests", ["Id"])
    op.create_index("ix_requests_UserId", "requests", ["UserId"])

    op.create_table(
        "transactions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column(
            "UserId",
            sa.String(length=36),
            sa.ForeignKey("users.Id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("TransactionType", sa.String(length=20), nullable=False),
        sa.Column("Description", sa.Text(), nullable=False),
        sa.Column("Amount", sa.Integer(), nullable=False),
        sa.Column(
            "Time",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )
    op.create_index("ix_transactions_Id", "transactions", ["Id"])
    op.create_index("ix_transactions_UserId", "transactions", ["UserId"])
    op.create_index("ix_transactions_Time", "transactions", ["Time"])


def downgrade() -> None:
    op.drop_index("ix_transactions_Time", table_name="transactions")
    op.drop_index("ix_transactions_UserId", table_name="transactions")
    op.drop_index("ix_transactions_Id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_requests_UserId", table_name="requests")
    op.drop_index("ix_requests_Id", table_name="requests")
    op.drop_table("requests")
    op.drop_index("ix_allowances_Schedule", table_name="allowances")
    op.drop_table("allowances")
    op.drop_index("ix_users_FamilyId", table_name="users")
    op.drop_table("users")
    op.drop_table("families")
