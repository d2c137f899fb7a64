import datetime as dt
from decimal import Decimal

import pytest
from pydantic import ValidationError

from garage.models.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoicePatch,
    InvoiceStatus,
    LineItemType,
    SourceType,
)
from garage.models.sync import SyncOptions


class TestInvoiceLineItem:
    def test_numeric_fields_absorb_dirty_input(self):
        item = InvoiceLineItem(type=LineItemType.CUSTOM, quantity=None, rate="abc", amount="12.5")
        assert item.quantity == Decimal(0)
        assert item.rate == Decimal(0)
        assert item.amount == Decimal("12.5")

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            InvoiceLineItem(type=LineItemType.CUSTOM, quantity=-1)

    def test_negative_amount_allowed(self):
        item = InvoiceLineItem(source_type=SourceType.DISCOUNT, type=LineItemType.CUSTOM, amount="-20")
        assert item.amount == Decimal("-20")
        assert item.is_custom

    def test_generated_by_source_type(self):
        item = InvoiceLineItem(source_type=SourceType.JOB_PART, type=LineItemType.PART)
        assert item.is_generated
        assert not item.is_custom

    def test_untracked_labor_counts_as_generated(self):
        item = InvoiceLineItem(type=LineItemType.LABOR)
        assert item.is_generated
        assert not item.is_custom

    def test_json_dump_uses_numbers(self):
        item = InvoiceLineItem(type=LineItemType.PART, quantity=2, rate="40", amount="80")
        dumped = item.model_dump(mode="json")
        assert dumped["amount"] == 80.0
        assert dumped["type"] == "part"


class TestInvoice:
    def test_totals_property(self):
        invoice = Invoice(subtotal="100", tax_amount="8", amount="108")
        assert invoice.totals.amount == Decimal("108")

    def test_defaults(self):
        invoice = Invoice()
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.revision_number == 1
        assert invoice.auto_sync_enabled is True


class TestInvoicePatch:
    def test_only_set_fields_are_changed(self):
        patch = InvoicePatch.model_validate({"notes": "hi", "unknown": 1})
        assert patch.changed_fields() == {"notes": "hi"}

    def test_blank_date_clears(self):
        patch = InvoicePatch.model_validate({"due_date": ""})
        assert patch.changed_fields() == {"due_date": None}

    def test_date_parsed(self):
        patch = InvoicePatch.model_validate({"paid_date": "2025-04-10"})
        assert patch.paid_date == dt.date(2025, 4, 10)

    def test_bad_date_rejected(self):
        with pytest.raises(ValidationError):
            InvoicePatch.model_validate({"date": "not-a-date"})

    def test_bad_status_rejected(self):
        with pytest.raises(ValidationError):
            InvoicePatch.model_validate({"status": "archived"})

    @pytest.mark.parametrize("field", ["status", "notes", "auto_sync_enabled"])
    def test_null_rejected(self, field):
        with pytest.raises(ValidationError, match="must not be null"):
            InvoicePatch.model_validate({field: None})

    def test_numeric_normalized(self):
        patch = InvoicePatch.model_validate({"amount_paid": "garbage", "discount_amount": None})
        assert patch.changed_fields() == {"amount_paid": Decimal(0), "discount_amount": Decimal(0)}

    @pytest.mark.parametrize("rate", ["-1", "100.01"])
    def test_tax_rate_out_of_range(self, rate):
        with pytest.raises(ValidationError):
            InvoicePatch.model_validate({"tax_rate": rate})

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError):
            InvoicePatch.model_validate({"discount_amount": "-5"})


class TestSyncOptions:
    def test_defaults(self):
        options = SyncOptions()
        assert options.force_sync is False
        assert options.preserve_custom_items is True
        assert options.lock_modified_items is False
