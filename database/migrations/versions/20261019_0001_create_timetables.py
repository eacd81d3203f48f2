"""create personal and cohort timetables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "personal_timetables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("entries", sa.JSON(), nullable=False),
        sa.Column("clashes", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_personal_timetables_user_id", "personal_timetables", ["user_id"], unique=True)

    op.create_table(
        "cohort_timetables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("cohort_id", sa.String(length=100), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("cohort_constraint", sa.JSON(), nullable=False),
        sa.Column("entries", sa.JSON(), nullable=False),
        sa.Column("unplaceable", sa.JSON(), nullable=False),
        sa.Column("unresolved_conflicts", sa.JSON(), nullable=False),
        sa.Column("generated_by", sa.String(length=100), nullable=False, server_default="automated_system"),
        sa.Column("last_generated", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_cohort_timetables_cohort_id", "cohort_timetables", ["cohort_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_cohort_timetables_cohort_id", table_name="cohort_timetables")
    op.drop_table("cohort_timetables")
    op.drop_index("ix_personal_timetables_user_id", table_name="personal_timetables")
    op.drop_table("personal_timetables")
