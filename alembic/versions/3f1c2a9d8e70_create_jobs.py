"""create jobs, job_steps and parts

Revision ID: 3f1c2a9d8e70
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "3f1c2a9d8e70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("title", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "job_steps",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("job_id", sa.String(32), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text, nullable=False, server_default=""),
        sa.Column("actual_hours", sa.Numeric, nullable=True),
        sa.Column("estimated_hours", sa.Numeric, nullable=True),
        sa.Column("step_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_job_steps_job_id", "job_steps", ["job_id"])

    op.create_table(
        "parts",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("job_id", sa.String(32), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False, server_default=""),
        sa.Column("part_number", sa.Text, nullable=False, server_default=""),
        sa.Column("quantity", sa.Numeric, nullable=True),
        sa.Column("price", sa.Numeric, nullable=True),
    )
    op.create_index("ix_parts_job_id", "parts", ["job_id"])


def downgrade() -> None:
    op.drop_index("ix_parts_job_id", table_name="parts")
    op.drop_table("parts")
    op.drop_index("ix_job_steps_job_id", table_name="job_steps")
    op.drop_table("job_steps")
    op.drop_table("jobs")
