"""add push_histories table

Revision ID: c4d5e6f7a8b9
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "c4d5e6f7a8b9"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "push_histories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("target", sa.String(length=10), nullable=False, server_default="all"),
        sa.Column("ios_tokens_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ios_success_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ios_failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("android_tokens_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("android_success_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("android_failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_tokens_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_success_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="success"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_push_histories_owner_id", "push_histories", ["owner_id"])
    op.create_index("ix_push_histories_status", "push_histories", ["status"])
    op.create_index("ix_push_histories_created_at", "push_histories", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_push_histories_created_at", table_name="push_histories")
    op.drop_index("ix_push_histories_status", table_name="push_histories")
    op.drop_index("ix_push_histories_owner_id", table_name="push_histories")
    op.drop_table("push_histories")
