from __future__ import annotations

from collections.abc import Iterable

from garage.models import ZERO, normalize_number
from garage.models.invoice import InvoiceLineItem, InvoiceTotals


def compute_totals(
    items: Iterable[InvoiceLineItem],
    discount_amount: object = 0,
    tax_rate: object = 0,
) -> InvoiceTotals:
    """Subtotal of every item, less the discount, plus tax on the remainder.

    Taxable and non-taxable items are summed alike and nothing is clamped or
    rounded: a discount above the subtotal yields negative tax and total.
    """
    subtotal = sum((normalize_number(item.amount) for item in items), ZERO)
    taxable_amount = subtotal - normalize_number(discount_amount)
    tax_amount = taxable_amount * normalize_number(tax_rate) / 100
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        amount=taxable_amount + tax_amount,
    )
