from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from garage.models import Number, normalize_number


class SourceType(str, Enum):
    JOB_LABOR = "job_labor"
    JOB_PART = "job_part"
    CUSTOM = "custom"
    FEE = "fee"
    DISCOUNT = "discount"


class LineItemType(str, Enum):
    LABOR = "labor"
    PART = "part"
    CUSTOM = "custom"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# User-authored content; survives synchronization by type.
CUSTOM_SOURCE_TYPES = frozenset({SourceType.CUSTOM, SourceType.FEE, SourceType.DISCOUNT})
GENERATED_SOURCE_TYPES = frozenset({SourceType.JOB_LABOR, SourceType.JOB_PART})


class InvoiceLineItem(BaseModel):
    id: str = ""
    invoice_id: str | None = None
    source_type: SourceType | None = None
    source_id: str | None = None
    type: LineItemType
    description: str = ""
    quantity: Number = Decimal(0)
    rate: Number = Decimal(0)
    amount: Number = Decimal(0)
    taxable: bool = True
    is_locked: bool = False

    @field_validator("quantity")
    @classmethod
    def _non_negative_quantity(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("quantity must be >= 0")
        return value

    @property
    def is_custom(self) -> bool:
        return self.source_type in CUSTOM_SOURCE_TYPES

    @property
    def is_generated(self) -> bool:
        if self.source_type is not None:
            return self.source_type in GENERATED_SOURCE_TYPES
        # Rows written before source tracking existed.
        return self.type in (LineItemType.LABOR, LineItemType.PART)

    def content(self) -> tuple[str, str, Decimal, Decimal, Decimal]:
        """Identity-free view of the billable content."""
        return (self.type.value, self.description, self.quantity, self.rate, self.amount)


class InvoiceTotals(BaseModel):
    subtotal: Number = Decimal(0)
    tax_amount: Number = Decimal(0)
    amount: Number = Decimal(0)


class Invoice(BaseModel):
    id: str = ""
    date: dt.date | None = None
    due_date: dt.date | None = None
    paid_date: dt.date | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    customer_id: str | None = None
    job_id: str | None = None
    subtotal: Number = Decimal(0)
    tax_rate: Number = Decimal(0)
    tax_amount: Number = Decimal(0)
    discount_amount: Number = Decimal(0)
    amount: Number = Decimal(0)
    amount_paid: Number = Decimal(0)
    notes: str = ""
    revision_number: int = 1
    auto_sync_enabled: bool = True
    line_items: list[InvoiceLineItem] = []
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @property
    def totals(self) -> InvoiceTotals:
        return InvoiceTotals(subtotal=self.subtotal, tax_amount=self.tax_amount, amount=self.amount)


PATCH_DATE_FIELDS = ("date", "due_date", "paid_date")
PATCH_NUMERIC_FIELDS = ("amount", "amount_paid", "subtotal", "tax_rate", "tax_amount", "discount_amount")


class InvoicePatch(BaseModel):
    """Partial update restricted to the editable invoice columns.

    Only fields present in ``model_fields_set`` are written. Unknown keys are
    dropped.
    """

    model_config = ConfigDict(extra="ignore")

    date: dt.date | None = None
    due_date: dt.date | None = None
    paid_date: dt.date | None = None
    status: InvoiceStatus | None = None
    amount: Decimal | None = None
    amount_paid: Decimal | None = None
    subtotal: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None
    discount_amount: Decimal | None = None
    notes: str | None = None
    auto_sync_enabled: bool | None = None

    @field_validator("status", "notes", "auto_sync_enabled", mode="before")
    @classmethod
    def _not_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator(*PATCH_DATE_FIELDS, mode="before")
    @classmethod
    def _blank_date(cls, value: object) -> object:
        if value == "":
            return None
        return value

    @field_validator(*PATCH_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _normalize(cls, value: object) -> Decimal:
        return normalize_number(value)

    @field_validator("tax_rate")
    @classmethod
    def _tax_rate_range(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and not (0 <= value <= 100):
            raise ValueError("tax_rate must be between 0 and 100")
        return value

    @field_validator("discount_amount")
    @classmethod
    def _discount_non_negative(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and value < 0:
            raise ValueError("discount_amount must be >= 0")
        return value

    def changed_fields(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in sorted(self.model_fields_set)}
