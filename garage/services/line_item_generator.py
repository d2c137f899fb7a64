"""Derive billable line items from a job's labor and parts records."""

from __future__ import annotations

import logging
from decimal import Decimal

from ulid import ULID

from garage.models import ZERO, normalize_number
from garage.models.invoice import InvoiceLineItem, LineItemType, SourceType
from garage.models.job import Job, JobStep, LaborSettings, Part
from garage.settings import settings

logger = logging.getLogger(__name__)


def new_item_id() -> str:
    return str(ULID())


def _format_hours(hours: Decimal) -> str:
    return f"{hours.normalize():f}"


def total_labor_hours(job: Job) -> Decimal:
    return sum((normalize_number(step.actual_hours) for step in job.job_steps), ZERO)


def _labor_description(job: Job, labor_settings: LaborSettings) -> str:
    if labor_settings.description.strip():
        return labor_settings.description
    return f"{settings.default_labor_description} - {job.title}" if job.title else settings.default_labor_description


def _labor_item(source_id: str | None, description: str, quantity: Decimal, rate: Decimal) -> InvoiceLineItem:
    return InvoiceLineItem(
        id=new_item_id(),
        source_type=SourceType.JOB_LABOR,
        source_id=source_id,
        type=LineItemType.LABOR,
        description=description,
        quantity=quantity,
        rate=rate,
        amount=quantity * rate,
        taxable=True,
        is_locked=False,
    )


def _step_item(step: JobStep, hours: Decimal, rate: Decimal, labor_settings: LaborSettings) -> InvoiceLineItem:
    prefix = labor_settings.description.strip() or settings.default_labor_description
    title = step.title or "Job step"
    description = f"{prefix} - {title} ({_format_hours(hours)} hrs)"
    return _labor_item(step.id, description, hours, rate)


def generate_labor_items(job: Job, labor_settings: LaborSettings) -> list[InvoiceLineItem]:
    total_hours = total_labor_hours(job)
    if total_hours <= 0:
        return []

    if labor_settings.consolidate_labor:
        if labor_settings.is_hourly:
            quantity, rate = total_hours, normalize_number(labor_settings.hourly_rate)
        else:
            quantity, rate = Decimal(1), normalize_number(labor_settings.fixed_amount)
        return [_labor_item(None, _labor_description(job, labor_settings), quantity, rate)]

    # Per-step lines always bill hourly; a fixed amount has no per-step split.
    rate = normalize_number(labor_settings.hourly_rate)
    items: list[InvoiceLineItem] = []
    for step in job.job_steps:
        hours = normalize_number(step.actual_hours)
        if hours <= 0:
            continue
        items.append(_step_item(step, hours, rate, labor_settings))
    return items


def _part_description(part: Part) -> str:
    if part.part_number:
        return f"{part.name} - {part.part_number}"
    return part.name


def generate_part_items(job: Job) -> list[InvoiceLineItem]:
    items: list[InvoiceLineItem] = []
    for part in job.parts:
        if not part.id:
            logger.debug("Skipping part without id on job %s", job.id)
            continue
        quantity = normalize_number(part.quantity)
        if quantity <= 0:
            quantity = Decimal(1)
        rate = normalize_number(part.price)
        items.append(
            InvoiceLineItem(
                id=new_item_id(),
                source_type=SourceType.JOB_PART,
                source_id=part.id,
                type=LineItemType.PART,
                description=_part_description(part),
                quantity=quantity,
                rate=rate,
                amount=quantity * rate,
                taxable=True,
                is_locked=False,
            )
        )
    return items


def generate_line_items(job: Job, labor_settings: LaborSettings) -> list[InvoiceLineItem]:
    """Build the machine-derived item set for a job: labor first, then parts.

    Every call mints fresh item ids; callers match regenerated items by
    ``source_type``/``source_id``, never by id.
    """
    items = generate_labor_items(job, labor_settings) + generate_part_items(job)
    logger.debug("Generated %d line items for job %s", len(items), job.id)
    return items
