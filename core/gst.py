"""
GST arithmetic for invoices.

This module is the single source of truth for tax math. The live preview
endpoint and the authoritative create/update paths both call into it.

Rounding policy: every derived field is rounded to paise (2 places,
half away from zero) as it is produced, and the payable grand total is
then rounded to a whole rupee. The difference is carried as round_off.

Intra-state supply only: GST is always split into equal CGST and SGST halves.
"""

import re
from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Iterable

ZERO = Decimal("0")
PAISE = Decimal("0.01")
RUPEE = Decimal("1")
HUNDRED = Decimal("100")
TWO = Decimal("2")

# Inputs outside 10**-40 .. 10**40 in magnitude are treated as zero. Within
# that range every product, sum and quantize below fits the working precision.
_MAX_EXPONENT = 40
_MONEY_CONTEXT = Context(prec=120, rounding=ROUND_HALF_UP)

_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")


def to_decimal(value: Any) -> Decimal:
    """
    Leniently coerce a request value to Decimal.

    Numbers and numeric strings convert directly. A string with a numeric
    prefix ("12 kg") keeps the prefix. Anything else (None, "", "abc",
    booleans, NaN, infinities) becomes zero, and so does a magnitude above
    1e40 or below 1e-40. Never raises.
    """
    number = _coerce(value)
    if not number or not -_MAX_EXPONENT <= number.adjusted() <= _MAX_EXPONENT:
        return ZERO
    return number


def _coerce(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return ZERO
        return Decimal(str(value))

    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value)
        if match is None:
            return ZERO
        try:
            return Decimal(match.group(1))
        except InvalidOperation:
            return ZERO

    return ZERO


def round2(value: Decimal) -> Decimal:
    """Round to paise, half away from zero."""
    with localcontext(_MONEY_CONTEXT):
        return value.quantize(PAISE, rounding=ROUND_HALF_UP)


def round_to_rupee(value: Decimal) -> Decimal:
    """Round to a whole rupee, half away from zero."""
    with localcontext(_MONEY_CONTEXT):
        return value.quantize(RUPEE, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItemTax:
    """Derived tax fields for one line item."""

    taxable_value: Decimal
    gst_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-level totals aggregated from line items."""

    subtotal: Decimal
    cgst_total: Decimal
    sgst_total: Decimal
    round_off: Decimal
    grand_total: Decimal

    @property
    def raw_total(self) -> Decimal:
        """Payable amount before rounding to the rupee."""
        with localcontext(_MONEY_CONTEXT):
            return self.subtotal + self.cgst_total + self.sgst_total


def compute_line_item(quantity: Any, unit_price: Any, gst_rate: Any) -> LineItemTax:
    """
    Compute taxable value, GST split and line total.

    Args:
        quantity: Units sold (number or numeric string)
        unit_price: Price per unit before tax
        gst_rate: GST rate as a percentage (18 means 18%)

    Returns:
        LineItemTax with every field rounded to paise. cgst_amount and
        sgst_amount are always equal. total_amount may differ by one paisa
        from taxable_value + cgst_amount + sgst_amount when gst_amount has
        an odd paisa.
    """
    qty = to_decimal(quantity)
    price = to_decimal(unit_price)
    rate = to_decimal(gst_rate)

    with localcontext(_MONEY_CONTEXT):
        taxable_value = round2(qty * price)
        gst_amount = round2(taxable_value * rate / HUNDRED)
        half = round2(gst_amount / TWO)
        total_amount = round2(taxable_value + gst_amount)

    return LineItemTax(
        taxable_value=taxable_value,
        gst_amount=gst_amount,
        cgst_amount=half,
        sgst_amount=half,
        total_amount=total_amount,
    )


def aggregate(items: Iterable[Any]) -> InvoiceTotals:
    """
    Sum line items into invoice totals.

    Accepts anything exposing taxable_value, cgst_amount and sgst_amount
    (LineItemTax results or stored LineItem models). An empty iterable
    yields all-zero totals.
    """
    subtotal = ZERO
    cgst_total = ZERO
    sgst_total = ZERO

    with localcontext(_MONEY_CONTEXT):
        for item in items:
            subtotal += item.taxable_value
            cgst_total += item.cgst_amount
            sgst_total += item.sgst_amount

        subtotal = round2(subtotal)
        cgst_total = round2(cgst_total)
        sgst_total = round2(sgst_total)

        raw_total = subtotal + cgst_total + sgst_total
        grand_total = round_to_rupee(raw_total)
        round_off = round2(grand_total - raw_total)

    return InvoiceTotals(
        subtotal=subtotal,
        cgst_total=cgst_total,
        sgst_total=sgst_total,
        round_off=round_off,
        grand_total=grand_total,
    )


def is_valid_gstin(gstin: str | None) -> bool:
    """GSTIN is optional on invoices; when present it must be well formed."""
    if not gstin:
        return True
    return _GSTIN_PATTERN.match(gstin) is not None


def gst_rate_label(rate: Any) -> str:
    """Display label for a GST slab: 0 is 'NIL', others are 'N%'."""
    value = to_decimal(rate)
    if value == ZERO:
        return "NIL"
    return f"{value.normalize():f}%"
