from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from garage.models import Number
from garage.models.invoice import Invoice
from garage.models.job import LaborSettings

SYNC_DISABLED_MESSAGE = "Auto-sync is disabled for this invoice"
SYNC_SUCCESS_MESSAGE = "Invoice synced successfully"


class SyncOptions(BaseModel):
    force_sync: bool = False
    preserve_custom_items: bool = True
    lock_modified_items: bool = False


class SyncRequest(SyncOptions):
    """Body of a sync trigger; labor settings override the configured defaults."""

    labor_settings: LaborSettings | None = None


class SyncChanges(BaseModel):
    labor_hours: Number = Decimal(0)
    parts_count: int = 0
    new_subtotal: Number = Decimal(0)
    new_total: Number = Decimal(0)


class SyncResult(BaseModel):
    success: bool
    skipped: bool = False
    message: str = ""
    changes: SyncChanges | None = None
    invoice: Invoice | None = None


class SyncStatus(BaseModel):
    sync_needed: bool = False
    changes: list[str] = []
    last_synced: datetime | None = None
