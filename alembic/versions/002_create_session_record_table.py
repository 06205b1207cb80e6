"""Create session record table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "session_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("session_token", sa.String(length=64), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("device_type", sa.String(length=64), nullable=True),
        sa.Column("browser_info", sa.String(length=256), nullable=True),
        sa.Column("vr_mode", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_session_record_account_id"), "session_record", ["account_id"], unique=False)
    op.create_index(op.f("ix_session_record_session_token"), "session_record", ["session_token"], unique=True)
    op.create_index(op.f("ix_session_record_ended_at"), "session_record", ["ended_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_session_record_ended_at"), table_name="session_record")
    op.drop_index(op.f("ix_session_record_session_token"), table_name="session_record")
    op.drop_index(op.f("ix_session_record_account_id"), table_name="session_record")
    op.drop_table("session_record")
