from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from pydantic import ValidationError
from ulid import ULID

from garage.errors import InvalidInputError, NotFoundError
from garage.models import normalize_number
from garage.models.change_log import ChangeType, InvoiceChangeLog
from garage.models.invoice import Invoice, InvoiceLineItem, InvoicePatch, InvoiceStatus
from garage.models.job import Job, LaborSettings, LaborType
from garage.models.sync import (
    SYNC_DISABLED_MESSAGE,
    SYNC_SUCCESS_MESSAGE,
    SyncChanges,
    SyncOptions,
    SyncResult,
    SyncStatus,
)
from garage.repositories.base import InvoiceRepository, JobRepository
from garage.services.change_serializers import serialize_fields, serialize_invoice, serialize_totals
from garage.services.line_item_generator import (
    generate_labor_items,
    generate_line_items,
    new_item_id,
    total_labor_hours,
)
from garage.services.reconciliation import reconcile, reconcile_labor
from garage.services.sync_policy import can_sync, check_sync_status
from garage.services.totals import compute_totals
from garage.settings import settings

logger = logging.getLogger(__name__)

TOTAL_FIELDS = frozenset({"subtotal", "tax_amount", "amount"})
TOTALS_INPUT_FIELDS = frozenset({"discount_amount", "tax_rate"})


def _new_invoice_id() -> str:
    return f"INV-{ULID()}"


class InvoiceService:
    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        job_repo: JobRepository,
        default_hourly_rate: Decimal | None = None,
    ) -> None:
        self.invoice_repo = invoice_repo
        self.job_repo = job_repo
        if default_hourly_rate is None:
            default_hourly_rate = settings.default_hourly_rate
        self.default_hourly_rate = normalize_number(default_hourly_rate)

    # ---- Lookups ----

    def _require_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None:
            logger.warning("Invoice not found: id=%s", invoice_id)
            raise NotFoundError("invoice", invoice_id)
        return invoice

    def _require_job(self, job_id: str | None) -> Job:
        job = self.job_repo.get_by_id(job_id) if job_id else None
        if job is None:
            logger.warning("Job not found: id=%s", job_id)
            raise NotFoundError("job", str(job_id))
        return job

    def default_labor_settings(self, job: Job) -> LaborSettings:
        return LaborSettings(
            type=LaborType.HOURLY,
            hourly_rate=self.default_hourly_rate,
            description=f"{settings.default_labor_description} - {job.title}",
            consolidate_labor=True,
        )

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self._require_invoice(invoice_id)
        logger.debug("get_invoice id=%s revision=%d", invoice_id, invoice.revision_number)
        return invoice

    def list_invoices(self, job_id: str | None = None, limit: int = 50, offset: int = 0) -> list[Invoice]:
        if job_id:
            result = self.invoice_repo.list_by_job(job_id)
        else:
            result = self.invoice_repo.list_all(limit=limit, offset=offset)
        logger.debug("Listed %d invoices (job=%s)", len(result), job_id)
        return result

    def list_changes(self, invoice_id: str) -> list[InvoiceChangeLog]:
        self._require_invoice(invoice_id)
        return self.invoice_repo.list_change_logs(invoice_id)

    # ---- Writes ----

    def _commit_revision(
        self,
        invoice: Invoice,
        fields: dict[str, object],
        change_type: str,
        changed_by: str,
        changes: dict,
        line_items: list[InvoiceLineItem] | None = None,
    ) -> Invoice:
        """Persist items, invoice fields, the revision bump and the change log as one unit."""
        with self.invoice_repo.transaction():
            if line_items is not None:
                owned = [item.model_copy(update={"invoice_id": invoice.id}) for item in line_items]
                self.invoice_repo.replace_line_items(invoice.id, owned)
            self.invoice_repo.update_fields(invoice.id, fields, expected_revision=invoice.revision_number)
            self.invoice_repo.append_change_log(
                InvoiceChangeLog(
                    invoice_id=invoice.id,
                    change_type=change_type,
                    changed_by=changed_by,
                    changes=changes,
                )
            )
        return self._require_invoice(invoice.id)

    def create_invoice_from_job(
        self,
        job_id: str,
        customer_id: str | None = None,
        date: dt.date | None = None,
        due_date: dt.date | None = None,
        tax_rate: object = 0,
        discount_amount: object = 0,
        notes: str = "",
        auto_sync_enabled: bool = True,
        labor_settings: LaborSettings | None = None,
        extra_items: Iterable[InvoiceLineItem | Mapping] = (),
        changed_by: str = "system",
    ) -> Invoice:
        rates = self._parse_patch({"tax_rate": tax_rate, "discount_amount": discount_amount})
        tax_rate, discount_amount = rates.tax_rate, rates.discount_amount
        job = self._require_job(job_id)
        labor_settings = labor_settings or self.default_labor_settings(job)
        invoice_id = _new_invoice_id()
        items = [
            item.model_copy(update={"invoice_id": invoice_id})
            for item in generate_line_items(job, labor_settings) + self._prepare_items(extra_items)
        ]
        self._check_item_ownership(items, invoice_id)
        totals = compute_totals(items, discount_amount, tax_rate)
        try:
            invoice = Invoice(
                id=invoice_id,
                date=date or dt.date.today(),
                due_date=due_date,
                status=InvoiceStatus.DRAFT,
                customer_id=customer_id,
                job_id=job.id,
                subtotal=totals.subtotal,
                tax_rate=tax_rate,
                tax_amount=totals.tax_amount,
                discount_amount=discount_amount,
                amount=totals.amount,
                notes=notes,
                revision_number=1,
                auto_sync_enabled=auto_sync_enabled,
                line_items=items,
            )
        except ValidationError as exc:
            raise InvalidInputError(str(exc)) from exc

        with self.invoice_repo.transaction():
            self.invoice_repo.create(invoice)
            self.invoice_repo.append_change_log(
                InvoiceChangeLog(
                    invoice_id=invoice.id,
                    change_type=ChangeType.CREATED,
                    changed_by=changed_by,
                    changes={
                        "created": True,
                        "labor_hours": str(total_labor_hours(job)),
                        "invoice": serialize_invoice(invoice),
                    },
                )
            )
        logger.info(
            "Invoice created: id=%s job=%s items=%d total=%s",
            invoice.id,
            job.id,
            len(items),
            totals.amount,
        )
        return self._require_invoice(invoice.id)

    def sync_invoice(
        self,
        invoice_id: str,
        options: SyncOptions | None = None,
        labor_settings: LaborSettings | None = None,
        changed_by: str = "system",
    ) -> SyncResult:
        """Regenerate the job-derived items and merge them into the invoice.

        Returns a skipped result, without touching the invoice, when auto-sync
        is off and the sync is not forced.
        """
        options = options or SyncOptions()
        invoice = self._require_invoice(invoice_id)

        if not can_sync(invoice, options.force_sync):
            logger.warning("Sync skipped for invoice %s: auto-sync disabled", invoice_id)
            return SyncResult(success=False, skipped=True, message=SYNC_DISABLED_MESSAGE)

        job = self._require_job(invoice.job_id)
        labor_settings = labor_settings or self.default_labor_settings(job)

        generated = generate_line_items(job, labor_settings)
        merged = reconcile(generated, invoice.line_items, options)
        totals = compute_totals(merged, invoice.discount_amount, invoice.tax_rate)
        labor_hours = total_labor_hours(job)

        updated = self._commit_revision(
            invoice,
            totals.model_dump(),
            ChangeType.SYNCED,
            changed_by,
            {
                "synced_from_job": job.id,
                "labor_hours": str(labor_hours),
                "parts_count": len(job.parts),
                "options": options.model_dump(include=set(SyncOptions.model_fields)),
                "totals": serialize_totals(totals),
            },
            line_items=merged,
        )
        logger.info(
            "Invoice synced: id=%s revision=%d items=%d subtotal=%s total=%s",
            updated.id,
            updated.revision_number,
            len(merged),
            totals.subtotal,
            totals.amount,
        )
        return SyncResult(
            success=True,
            message=SYNC_SUCCESS_MESSAGE,
            changes=SyncChanges(
                labor_hours=labor_hours,
                parts_count=len(job.parts),
                new_subtotal=totals.subtotal,
                new_total=totals.amount,
            ),
            invoice=updated,
        )

    def resync_labor(
        self,
        invoice_id: str,
        labor_settings: LaborSettings,
        changed_by: str = "user",
    ) -> Invoice:
        """Apply changed labor settings: swap unlocked labor lines only."""
        invoice = self._require_invoice(invoice_id)
        job = self._require_job(invoice.job_id)

        labor_items = generate_labor_items(job, labor_settings)
        merged = reconcile_labor(labor_items, invoice.line_items)
        totals = compute_totals(merged, invoice.discount_amount, invoice.tax_rate)

        updated = self._commit_revision(
            invoice,
            totals.model_dump(),
            ChangeType.SYNCED,
            changed_by,
            {
                "scope": "labor",
                "synced_from_job": job.id,
                "labor_hours": str(total_labor_hours(job)),
                "labor_settings": labor_settings.model_dump(mode="json"),
                "labor_items": len(labor_items),
                "totals": serialize_totals(totals),
            },
            line_items=merged,
        )
        logger.info("Invoice labor resynced: id=%s revision=%d", updated.id, updated.revision_number)
        return updated

    @staticmethod
    def _parse_patch(patch: InvoicePatch | Mapping | None) -> InvoicePatch | None:
        if patch is None or isinstance(patch, InvoicePatch):
            return patch
        try:
            return InvoicePatch.model_validate(dict(patch))
        except ValidationError as exc:
            raise InvalidInputError(str(exc)) from exc

    @staticmethod
    def _prepare_items(line_items: Iterable[InvoiceLineItem | Mapping]) -> list[InvoiceLineItem]:
        prepared: list[InvoiceLineItem] = []
        seen: set[str] = set()
        for raw in line_items:
            try:
                item = raw if isinstance(raw, InvoiceLineItem) else InvoiceLineItem.model_validate(dict(raw))
            except ValidationError as exc:
                raise InvalidInputError(str(exc)) from exc
            if not item.id:
                item = item.model_copy(update={"id": new_item_id()})
            elif item.id in seen:
                raise InvalidInputError(f"Duplicate line item id: {item.id}")
            seen.add(item.id)
            prepared.append(item)
        return prepared

    def _check_item_ownership(self, items: list[InvoiceLineItem], invoice_id: str) -> None:
        owners = self.invoice_repo.line_item_owners([item.id for item in items])
        taken = sorted(item_id for item_id, owner in owners.items() if owner != invoice_id)
        if taken:
            logger.warning("Rejected line item ids held by other invoices: %s", taken)
            raise InvalidInputError(f"Line item id already used by another invoice: {', '.join(taken)}")

    def update_invoice(
        self,
        invoice_id: str,
        patch: InvoicePatch | Mapping | None = None,
        line_items: Iterable[InvoiceLineItem | Mapping] | None = None,
        changed_by: str = "user",
    ) -> Invoice:
        """Manual edit: allow-listed fields and/or a full replacement item set.

        Totals are recomputed whenever the items, discount or tax rate change;
        explicit totals in the same patch are ignored in that case.
        """
        parsed = self._parse_patch(patch)
        items = self._prepare_items(line_items) if line_items is not None else None
        fields = parsed.changed_fields() if parsed is not None else {}
        if not fields and items is None:
            raise InvalidInputError("No valid fields to update")

        invoice = self._require_invoice(invoice_id)
        if items is not None:
            self._check_item_ownership(items, invoice.id)

        if items is not None or TOTALS_INPUT_FIELDS & fields.keys():
            overridden = sorted(TOTAL_FIELDS & fields.keys())
            if overridden:
                logger.warning("Ignoring explicit %s on invoice %s: totals are recomputed", overridden, invoice_id)
            totals = compute_totals(
                items if items is not None else invoice.line_items,
                fields.get("discount_amount", invoice.discount_amount),
                fields.get("tax_rate", invoice.tax_rate),
            )
            fields.update(totals.model_dump())

        changes: dict = {"fields": serialize_fields(fields)}
        if items is not None:
            changes["line_items_replaced"] = len(items)
        updated = self._commit_revision(invoice, fields, ChangeType.UPDATED, changed_by, changes, line_items=items)
        logger.info(
            "Invoice updated: id=%s revision=%d fields=%s",
            updated.id,
            updated.revision_number,
            sorted(fields),
        )
        return updated

    def delete_invoice(self, invoice_id: str) -> None:
        self._require_invoice(invoice_id)
        with self.invoice_repo.transaction():
            self.invoice_repo.delete(invoice_id)
        logger.info("Invoice %s deleted", invoice_id)

    # ---- Advisory ----

    def sync_status(self, invoice_id: str) -> SyncStatus:
        """Report whether the job changed since the invoice lines were last generated."""
        invoice = self._require_invoice(invoice_id)
        job = self._require_job(invoice.job_id)
        entries = self.invoice_repo.list_change_logs(invoice_id)
        synced = [
            entry.created_at
            for entry in entries
            if entry.change_type == ChangeType.SYNCED and entry.created_at is not None
        ]
        # Newest first; created and synced entries record the job hours they billed.
        billed = next((entry.changes["labor_hours"] for entry in entries if "labor_hours" in entry.changes), None)
        return check_sync_status(
            invoice,
            job,
            billed_labor_hours=normalize_number(billed) if billed is not None else None,
            last_synced=max(synced, default=None),
        )
