from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ChangeType:
    """String constants for invoice change-log entries."""

    CREATED = "created"
    UPDATED = "updated"
    SYNCED = "synced"


class InvoiceChangeLog(BaseModel):
    id: str = ""
    invoice_id: str
    change_type: str
    changed_by: str = "system"
    changes: dict = {}
    created_at: datetime | None = None
