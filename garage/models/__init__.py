from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

from garage.settings import settings

ZERO = Decimal(0)
CENT = Decimal("0.01")


def normalize_number(value: object) -> Decimal:
    """Coerce numeric-ish input to a finite Decimal.

    None, blank strings, unparsable strings, NaN/infinity and non-numeric
    types all become ``Decimal(0)``. Never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        # repr gives the shortest round-tripping form: 0.1 -> Decimal('0.1')
        result = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def format_money(value: object) -> str:
    """Format an amount for display: Decimal('1234.5') -> '$1,234.50'"""
    amount = normalize_number(value).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{settings.currency_symbol}{abs(amount):,.2f}"


# Decimal field that absorbs dirty input at the model boundary.
Number = Annotated[
    Decimal,
    BeforeValidator(normalize_number),
    PlainSerializer(float, return_type=float, when_used="json"),
]
