from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from ulid import ULID

from garage.errors import ConcurrentModificationError, PersistenceError
from garage.models.change_log import InvoiceChangeLog
from garage.models.invoice import Invoice, InvoiceLineItem, InvoiceTotals, LineItemType, SourceType
from garage.models.job import Job, JobStep, Part
from garage.repositories.base import InvoiceRepository, JobRepository

logger = logging.getLogger(__name__)

# Columns a revision may write besides revision_number/updated_at.
UPDATABLE_INVOICE_COLUMNS = frozenset(
    {
        "date",
        "due_date",
        "paid_date",
        "status",
        "amount",
        "amount_paid",
        "subtotal",
        "tax_rate",
        "tax_amount",
        "discount_amount",
        "notes",
        "auto_sync_enabled",
    }
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _bind(value: object) -> object:
    """Convert model values to driver-neutral parameters."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


class SQLAlchemyJobRepository(JobRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_by_id(self, job_id: str) -> Job | None:
        row = (
            self.conn.execute(text("SELECT * FROM jobs WHERE id = :id"), {"id": job_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        step_rows = (
            self.conn.execute(
                text("SELECT * FROM job_steps WHERE job_id = :job_id ORDER BY step_order, id"),
                {"job_id": job_id},
            )
            .mappings()
            .fetchall()
        )
        part_rows = (
            self.conn.execute(
                text("SELECT * FROM parts WHERE job_id = :job_id ORDER BY id"),
                {"job_id": job_id},
            )
            .mappings()
            .fetchall()
        )
        return Job(
            id=row["id"],
            title=row["title"] or "",
            job_steps=[
                JobStep(
                    id=step["id"],
                    job_id=step["job_id"],
                    title=step["title"] or "",
                    actual_hours=step["actual_hours"],
                    estimated_hours=step["estimated_hours"],
                )
                for step in step_rows
            ],
            parts=[
                Part(
                    id=part["id"],
                    job_id=part["job_id"],
                    name=part["name"] or "",
                    part_number=part["part_number"] or "",
                    quantity=part["quantity"],
                    price=part["price"],
                )
                for part in part_rows
            ],
        )


class SQLAlchemyInvoiceRepository(InvoiceRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.conn.commit()
        except SQLAlchemyError as exc:
            self.conn.rollback()
            logger.error("Invoice write rolled back: %s", exc)
            raise PersistenceError("Invoice write failed and was rolled back") from exc
        except Exception:
            self.conn.rollback()
            raise

    @staticmethod
    def _build_item(row: RowMapping) -> InvoiceLineItem:
        return InvoiceLineItem(
            id=row["id"],
            invoice_id=row["invoice_id"],
            source_type=SourceType(row["source_type"]) if row["source_type"] else None,
            source_id=row["source_id"],
            type=LineItemType(row["type"]),
            description=row["description"] or "",
            quantity=row["quantity"],
            rate=row["rate"],
            amount=row["amount"],
            taxable=bool(row["taxable"]),
            is_locked=bool(row["is_locked"]),
        )

    @classmethod
    def _build_invoice(cls, row: RowMapping, item_rows: list[RowMapping]) -> Invoice:
        return Invoice(
            id=row["id"],
            date=row["date"],
            due_date=row["due_date"],
            paid_date=row["paid_date"],
            status=row["status"],
            customer_id=row["customer_id"],
            job_id=row["job_id"],
            subtotal=row["subtotal"],
            tax_rate=row["tax_rate"],
            tax_amount=row["tax_amount"],
            discount_amount=row["discount_amount"],
            amount=row["amount"],
            amount_paid=row["amount_paid"],
            notes=row["notes"] or "",
            revision_number=row["revision_number"],
            auto_sync_enabled=bool(row["auto_sync_enabled"]),
            line_items=[cls._build_item(item_row) for item_row in item_rows],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_invoice(self, row: RowMapping) -> Invoice:
        items = (
            self.conn.execute(
                text("SELECT * FROM invoice_line_items WHERE invoice_id = :invoice_id ORDER BY position"),
                {"invoice_id": row["id"]},
            )
            .mappings()
            .fetchall()
        )
        return self._build_invoice(row, list(items))

    def _build_invoices_from_rows(self, rows: list[RowMapping]) -> list[Invoice]:
        if not rows:
            return []
        invoice_ids = [row["id"] for row in rows]
        placeholders = ", ".join(f":id{i}" for i in range(len(invoice_ids)))
        params = {f"id{i}": iid for i, iid in enumerate(invoice_ids)}
        all_items = (
            self.conn.execute(
                text(f"SELECT * FROM invoice_line_items WHERE invoice_id IN ({placeholders}) ORDER BY position"),
                params,
            )
            .mappings()
            .fetchall()
        )
        items_by_invoice: dict[str, list[RowMapping]] = {}
        for item_row in all_items:
            items_by_invoice.setdefault(item_row["invoice_id"], []).append(item_row)
        return [self._build_invoice(row, items_by_invoice.get(row["id"], [])) for row in rows]

    def get_by_id(self, invoice_id: str) -> Invoice | None:
        row = (
            self.conn.execute(text("SELECT * FROM invoices WHERE id = :id"), {"id": invoice_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invoice(row)

    def list_all(self, limit: int = 50, offset: int = 0) -> list[Invoice]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM invoices ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"),
                {"limit": limit, "offset": offset},
            )
            .mappings()
            .fetchall()
        )
        return self._build_invoices_from_rows(list(rows))

    def list_by_job(self, job_id: str) -> list[Invoice]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM invoices WHERE job_id = :job_id ORDER BY created_at DESC, id DESC"),
                {"job_id": job_id},
            )
            .mappings()
            .fetchall()
        )
        return self._build_invoices_from_rows(list(rows))

    def create(self, invoice: Invoice) -> None:
        now = _now()
        self.conn.execute(
            text(
                "INSERT INTO invoices (id, date, due_date, paid_date, status, customer_id, job_id, "
                "subtotal, tax_rate, tax_amount, discount_amount, amount, amount_paid, notes, "
                "revision_number, auto_sync_enabled, created_at, updated_at) "
                "VALUES (:id, :date, :due_date, :paid_date, :status, :customer_id, :job_id, "
                ":subtotal, :tax_rate, :tax_amount, :discount_amount, :amount, :amount_paid, :notes, "
                ":revision_number, :auto_sync_enabled, :created_at, :updated_at)"
            ),
            {
                "id": invoice.id,
                "date": _bind(invoice.date),
                "due_date": _bind(invoice.due_date),
                "paid_date": _bind(invoice.paid_date),
                "status": invoice.status.value,
                "customer_id": invoice.customer_id,
                "job_id": invoice.job_id,
                "subtotal": _bind(invoice.subtotal),
                "tax_rate": _bind(invoice.tax_rate),
                "tax_amount": _bind(invoice.tax_amount),
                "discount_amount": _bind(invoice.discount_amount),
                "amount": _bind(invoice.amount),
                "amount_paid": _bind(invoice.amount_paid),
                "notes": invoice.notes,
                "revision_number": invoice.revision_number,
                "auto_sync_enabled": invoice.auto_sync_enabled,
                "created_at": now,
                "updated_at": now,
            },
        )
        self._insert_items(invoice.id, invoice.line_items)

    def _insert_items(self, invoice_id: str, items: list[InvoiceLineItem]) -> None:
        for position, item in enumerate(items):
            self.conn.execute(
                text(
                    "INSERT INTO invoice_line_items (id, invoice_id, position, source_type, source_id, "
                    "type, description, quantity, rate, amount, taxable, is_locked) "
                    "VALUES (:id, :invoice_id, :position, :source_type, :source_id, "
                    ":type, :description, :quantity, :rate, :amount, :taxable, :is_locked)"
                ),
                {
                    "id": item.id,
                    "invoice_id": invoice_id,
                    "position": position,
                    "source_type": _bind(item.source_type),
                    "source_id": item.source_id,
                    "type": item.type.value,
                    "description": item.description,
                    "quantity": _bind(item.quantity),
                    "rate": _bind(item.rate),
                    "amount": _bind(item.amount),
                    "taxable": item.taxable,
                    "is_locked": item.is_locked,
                },
            )

    def line_item_owners(self, item_ids: list[str]) -> dict[str, str]:
        """Map each stored item id to the invoice that holds it."""
        if not item_ids:
            return {}
        placeholders = ", ".join(f":id{i}" for i in range(len(item_ids)))
        params = {f"id{i}": item_id for i, item_id in enumerate(item_ids)}
        rows = (
            self.conn.execute(
                text(f"SELECT id, invoice_id FROM invoice_line_items WHERE id IN ({placeholders})"),
                params,
            )
            .mappings()
            .fetchall()
        )
        return {row["id"]: row["invoice_id"] for row in rows}

    def replace_line_items(self, invoice_id: str, items: list[InvoiceLineItem]) -> None:
        self.conn.execute(
            text("DELETE FROM invoice_line_items WHERE invoice_id = :invoice_id"),
            {"invoice_id": invoice_id},
        )
        self._insert_items(invoice_id, items)
        logger.debug("Replaced line items for invoice %s (%d rows)", invoice_id, len(items))

    def update_totals(self, invoice_id: str, totals: InvoiceTotals, expected_revision: int) -> None:
        self.update_fields(
            invoice_id,
            {"subtotal": totals.subtotal, "tax_amount": totals.tax_amount, "amount": totals.amount},
            expected_revision,
        )

    def update_fields(self, invoice_id: str, fields: dict[str, object], expected_revision: int) -> None:
        unknown = set(fields) - UPDATABLE_INVOICE_COLUMNS
        if unknown:
            raise ValueError(f"Not an updatable invoice column: {', '.join(sorted(unknown))}")
        columns = sorted(fields)
        assignments = [f"{column} = :{column}" for column in columns]
        assignments += ["revision_number = :new_revision", "updated_at = :updated_at"]
        params: dict[str, object] = {column: _bind(fields[column]) for column in columns}
        params.update(
            {
                "new_revision": expected_revision + 1,
                "updated_at": _now(),
                "id": invoice_id,
                "expected_revision": expected_revision,
            }
        )
        result = self.conn.execute(
            text(
                f"UPDATE invoices SET {', '.join(assignments)} "
                "WHERE id = :id AND revision_number = :expected_revision"
            ),
            params,
        )
        if result.rowcount == 0:
            logger.warning("Revision conflict on invoice %s (expected %d)", invoice_id, expected_revision)
            raise ConcurrentModificationError(invoice_id, expected_revision)

    def delete(self, invoice_id: str) -> None:
        params = {"invoice_id": invoice_id}
        self.conn.execute(text("DELETE FROM invoice_change_logs WHERE invoice_id = :invoice_id"), params)
        self.conn.execute(text("DELETE FROM invoice_line_items WHERE invoice_id = :invoice_id"), params)
        self.conn.execute(text("DELETE FROM invoices WHERE id = :invoice_id"), params)

    def append_change_log(self, entry: InvoiceChangeLog) -> None:
        self.conn.execute(
            text(
                "INSERT INTO invoice_change_logs (id, invoice_id, change_type, changed_by, changes, created_at) "
                "VALUES (:id, :invoice_id, :change_type, :changed_by, :changes, :created_at)"
            ),
            {
                "id": entry.id or str(ULID()),
                "invoice_id": entry.invoice_id,
                "change_type": entry.change_type,
                "changed_by": entry.changed_by,
                "changes": json.dumps(entry.changes),
                "created_at": entry.created_at or _now(),
            },
        )

    @staticmethod
    def _row_to_change_log(row: RowMapping) -> InvoiceChangeLog:
        changes = row["changes"]
        if isinstance(changes, str):
            changes = json.loads(changes)
        return InvoiceChangeLog(
            id=row["id"],
            invoice_id=row["invoice_id"],
            change_type=row["change_type"],
            changed_by=row["changed_by"],
            changes=changes or {},
            created_at=row["created_at"],
        )

    def list_change_logs(self, invoice_id: str) -> list[InvoiceChangeLog]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT * FROM invoice_change_logs WHERE invoice_id = :invoice_id "
                    "ORDER BY created_at DESC, id DESC"
                ),
                {"invoice_id": invoice_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_change_log(row) for row in rows]
