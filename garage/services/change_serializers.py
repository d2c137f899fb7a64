"""Serializers that turn models into JSON-safe dicts for change-log entries.

Decimals become strings so no precision is lost; dates and datetimes become
ISO 8601 strings; enums become their values.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from garage.models.invoice import Invoice, InvoiceLineItem, InvoiceTotals


def serialize_value(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


def serialize_fields(fields: dict[str, object]) -> dict[str, object]:
    return {name: serialize_value(value) for name, value in fields.items()}


def serialize_line_item(item: InvoiceLineItem) -> dict:
    return {
        "id": item.id,
        "source_type": serialize_value(item.source_type),
        "source_id": item.source_id,
        "type": item.type.value,
        "description": item.description,
        "quantity": str(item.quantity),
        "rate": str(item.rate),
        "amount": str(item.amount),
        "taxable": item.taxable,
        "is_locked": item.is_locked,
    }


def serialize_totals(totals: InvoiceTotals) -> dict:
    return serialize_fields(totals.model_dump())


def serialize_invoice(invoice: Invoice) -> dict:
    """Serialize an Invoice (with line_items) for a creation entry."""
    return {
        "id": invoice.id,
        "job_id": invoice.job_id,
        "customer_id": invoice.customer_id,
        "status": invoice.status.value,
        "date": serialize_value(invoice.date),
        "due_date": serialize_value(invoice.due_date),
        "subtotal": str(invoice.subtotal),
        "tax_rate": str(invoice.tax_rate),
        "tax_amount": str(invoice.tax_amount),
        "discount_amount": str(invoice.discount_amount),
        "amount": str(invoice.amount),
        "revision_number": invoice.revision_number,
        "auto_sync_enabled": invoice.auto_sync_enabled,
        "line_items": [serialize_line_item(item) for item in invoice.line_items],
    }
