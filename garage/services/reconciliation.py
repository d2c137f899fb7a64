"""Merge freshly generated items with the items already on an invoice."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from garage.models.invoice import InvoiceLineItem, LineItemType
from garage.models.sync import SyncOptions

logger = logging.getLogger(__name__)


def _dedupe_by_id(items: Iterable[InvoiceLineItem]) -> list[InvoiceLineItem]:
    seen: set[str] = set()
    result: list[InvoiceLineItem] = []
    for item in items:
        if item.id and item.id in seen:
            logger.debug("Dropping duplicate line item %s", item.id)
            continue
        seen.add(item.id)
        result.append(item)
    return result


def protected_items(current: list[InvoiceLineItem], options: SyncOptions) -> list[InvoiceLineItem]:
    """Current items that a full resync must carry over untouched."""
    custom = [item for item in current if item.is_custom] if options.preserve_custom_items else []
    locked = [item for item in current if item.is_locked] if options.lock_modified_items else []
    return _dedupe_by_id([*custom, *locked])


def reconcile(
    generated: list[InvoiceLineItem],
    current: list[InvoiceLineItem],
    options: SyncOptions | None = None,
) -> list[InvoiceLineItem]:
    """Full resync: generated items first, then the protected current items.

    Every other current item (stale labor and parts lines, and protected
    subsets whose option is off) is dropped.
    """
    options = options or SyncOptions()
    kept = protected_items(current, options)
    merged = _dedupe_by_id([*generated, *kept])
    logger.debug(
        "Reconciled %d generated + %d protected of %d current -> %d items",
        len(generated),
        len(kept),
        len(current),
        len(merged),
    )
    return merged


def reconcile_labor(
    generated_labor: list[InvoiceLineItem],
    current: list[InvoiceLineItem],
) -> list[InvoiceLineItem]:
    """Labor-only resync: swap unlocked labor lines, leave everything else in place."""
    kept = [item for item in current if item.type != LineItemType.LABOR or item.is_locked]
    return _dedupe_by_id([*kept, *generated_labor])
