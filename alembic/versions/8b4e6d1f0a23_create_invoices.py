"""create invoices, invoice_line_items and invoice_change_logs

Revision ID: 8b4e6d1f0a23
Revises: 3f1c2a9d8e70
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "8b4e6d1f0a23"
down_revision: Union[str, Sequence[str], None] = "3f1c2a9d8e70"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "invoices",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("date", sa.Date, nullable=True),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("paid_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("customer_id", sa.String(32), nullable=True),
        sa.Column("job_id", sa.String(32), sa.ForeignKey("jobs.id"), nullable=True),
        sa.Column("subtotal", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("amount_paid", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("revision_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("auto_sync_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_invoices_job_id", "invoices", ["job_id"])

    op.create_table(
        "invoice_line_items",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "invoice_id",
            sa.String(32),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("source_type", sa.String(20), nullable=True),
        sa.Column("source_id", sa.String(32), nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("quantity", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("rate", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("taxable", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_invoice_line_items_invoice_id", "invoice_line_items", ["invoice_id"])

    op.create_table(
        "invoice_change_logs",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "invoice_id",
            sa.String(32),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("changed_by", sa.String(255), nullable=False, server_default="system"),
        sa.Column("changes", sa.Text, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_invoice_change_logs_invoice_id", "invoice_change_logs", ["invoice_id"])


def downgrade() -> None:
    op.drop_index("ix_invoice_change_logs_invoice_id", table_name="invoice_change_logs")
    op.drop_table("invoice_change_logs")
    op.drop_index("ix_invoice_line_items_invoice_id", table_name="invoice_line_items")
    op.drop_table("invoice_line_items")
    op.drop_index("ix_invoices_job_id", table_name="invoices")
    op.drop_table("invoices")
