"""Currency helpers. All arithmetic runs on integer minor units (cents)."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")


def parse_amount(value: Any) -> Decimal:
    """Parse a JSON scalar into a two-place Decimal. Missing or non-numeric values are 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace("\u00a0", "").replace(" ", "")
        if not text:
            return Decimal("0.00")
        # Slovak bank exports use a decimal comma
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return Decimal("0.00")
    if not amount.is_finite():
        return Decimal("0.00")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError("Amount is out of range") from e


def to_minor_units(value: Any) -> int:
    return int(parse_amount(value) * 100)


def from_minor_units(minor: int) -> Decimal:
    return (Decimal(minor) / 100).quantize(CENT)


def normalize_vs(value: Any) -> str:
    """Variable symbols are opaque strings; leading zeros are kept."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
