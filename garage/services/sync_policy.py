from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from garage.models import ZERO, normalize_number
from garage.models.invoice import Invoice, InvoiceLineItem, LineItemType
from garage.models.job import Job
from garage.models.sync import SyncStatus
from garage.services.line_item_generator import generate_part_items, total_labor_hours

logger = logging.getLogger(__name__)


def can_sync(invoice: Invoice, force_sync: bool = False) -> bool:
    return invoice.auto_sync_enabled or force_sync


def _labor_hours(items: Iterable[InvoiceLineItem]) -> Decimal:
    return sum((item.quantity for item in items), ZERO)


def _labor_changes(current: list[InvoiceLineItem], job: Job, billed_hours: Decimal | None) -> list[str]:
    """Compare job hours with the hours the current labor lines were generated from.

    Rate and description come from labor settings, not from the job, and are
    not compared.
    """
    job_hours = total_labor_hours(job)
    per_step = {item.source_id: item.quantity for item in current if item.source_id}
    if per_step:
        step_hours = {
            step.id: normalize_number(step.actual_hours)
            for step in job.job_steps
            if normalize_number(step.actual_hours) > 0
        }
        if per_step == step_hours:
            return []
        return [f"labor hours changed: {_labor_hours(current)} -> {job_hours}"]

    if billed_hours is None:
        billed_hours = _labor_hours(current)
    if billed_hours != job_hours:
        return [f"labor hours changed: {billed_hours} -> {job_hours}"]
    return []


def _part_changes(current: list[InvoiceLineItem], generated: list[InvoiceLineItem]) -> list[str]:
    current_by_source = {item.source_id: item for item in current}
    generated_by_source = {item.source_id: item for item in generated}
    changes: list[str] = []
    for source_id, item in generated_by_source.items():
        existing = current_by_source.get(source_id)
        if existing is None:
            changes.append(f"part added: {item.description}")
        elif existing.content() != item.content():
            changes.append(f"part changed: {item.description}")
    for source_id, item in current_by_source.items():
        if source_id not in generated_by_source:
            changes.append(f"part removed: {item.description}")
    return changes


def check_sync_status(
    invoice: Invoice,
    job: Job,
    billed_labor_hours: Decimal | None = None,
    last_synced: datetime | None = None,
) -> SyncStatus:
    """Compare the job's current labor and parts with the invoice's machine-derived lines.

    Read-only advisory; locked and user-authored items are ignored.
    ``billed_labor_hours`` is the job total the labor lines were last generated
    from; without it the hours on the current labor lines are used.
    """
    current = [item for item in invoice.line_items if item.is_generated and not item.is_locked]

    def by_type(items: list[InvoiceLineItem], item_type: LineItemType) -> list[InvoiceLineItem]:
        return [item for item in items if item.type == item_type]

    changes = _labor_changes(by_type(current, LineItemType.LABOR), job, billed_labor_hours)
    changes += _part_changes(by_type(current, LineItemType.PART), generate_part_items(job))
    logger.debug("Sync status for invoice %s: %d change(s)", invoice.id, len(changes))
    return SyncStatus(sync_needed=bool(changes), changes=changes, last_synced=last_synced)
