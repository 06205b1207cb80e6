"""Create reset ticket table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "reset_ticket",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reset_ticket_account_id"), "reset_ticket", ["account_id"], unique=False)
    op.create_index(op.f("ix_reset_ticket_token"), "reset_ticket", ["token"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_reset_ticket_token"), table_name="reset_ticket")
    op.drop_index(op.f("ix_reset_ticket_account_id"), table_name="reset_ticket")
    op.drop_table("reset_ticket")
