"""initial_schema

Users, deposits, assignment records and the deposit activity log.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - create all tables, indexes, and constraints."""

    # ========================================
    # Tables
    # ========================================

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("user", "admin", name="userrole"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "deposits",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("defend_count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("defend_count >= 0", name="ck_deposit_defend_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "assignment_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("assignment", sa.String(length=255), nullable=False),
        sa.Column("check", sa.Boolean(), nullable=False),
        sa.Column("pass", sa.Boolean(), nullable=False),
        sa.Column("defended", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "assignment", name="uq_assignment_user"),
    )

    op.create_table(
        "deposit_activities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("extra_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    # ========================================
    # Indexes
    # ========================================

    op.create_index(
        "ix_assignment_records_user_id", "assignment_records", ["user_id"]
    )
    op.create_index(
        "ix_assignment_records_assignment", "assignment_records", ["assignment"]
    )
    op.create_index(
        "ix_deposit_activities_user_id", "deposit_activities", ["user_id"]
    )
    op.create_index(
        "ix_deposit_activities_created_at", "deposit_activities", ["created_at"]
    )
    op.create_index(
        "ix_activity_user_created", "deposit_activities", ["user_id", "created_at"]
    )


def downgrade() -> None:
    """Downgrade schema - drop everything in reverse order."""
    op.drop_index("ix_activity_user_created", table_name="deposit_activities")
    op.drop_index("ix_deposit_activities_created_at", table_name="deposit_activities")
    op.drop_index("ix_deposit_activities_user_id", table_name="deposit_activities")
    op.drop_index("ix_assignment_records_assignment", table_name="assignment_records")
    op.drop_index("ix_assignment_records_user_id", table_name="assignment_records")

    op.drop_table("deposit_activities")
    op.drop_table("assignment_records")
    op.drop_table("deposits")
    op.drop_table("users")

    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
