"""Invoice arithmetic: numeric coercion, cent rounding and invoice totals.

Every function here is total. Inputs that cannot be read as a number are
treated as zero instead of raising, so an editor can recompute totals on every
keystroke. Rejecting such inputs is the job of the validators.
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Iterable
import math

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from escrow_invoice.config import settings

CENT = Decimal("0.01")

QTY_KEYS = ("qty", "quantity")
UNIT_PRICE_KEYS = ("unitPrice", "unit_price", "price")


def parse_number(value: Any) -> float | None:
    """Strictly parse ``value`` as a finite number.

    Returns ``None`` for absent, blank, non-numeric and non-finite input.
    Numeric strings are accepted with surrounding whitespace.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            number = float(stripped)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_number(value: Any) -> float:
    """Coerce ``value`` to a float, degrading to ``0.0`` when it is not numeric."""

    number = parse_number(value)
    return 0.0 if number is None else number


def _decimal(value: Any) -> Decimal:
    # repr() gives the shortest string that round-trips, so 0.1 stays 0.1
    return Decimal(repr(to_number(value)))


def _cents(value: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_float(value: Decimal) -> float:
    # results beyond the float range degrade to zero like any unreadable input
    number = float(value)
    return number if math.isfinite(number) else 0.0


def round2(value: Any) -> float:
    """Round to two decimal places, half away from zero."""

    # rounds the shortest decimal form of the value, so 1.005 gives 1.01
    return _to_float(_cents(_decimal(value)))


def compute_line_total(quantity: Any, unit_price: Any) -> float:
    """Return ``quantity * unit_price`` rounded to cents."""

    return _to_float(_cents(_decimal(quantity) * _decimal(unit_price)))


def line_value(item: Any, keys: Iterable[str]) -> Any:
    """Return the first present value among ``keys`` on a line item.

    Line items arrive as plain mappings from JSON bodies or as model objects.
    """

    for key in keys:
        if isinstance(item, Mapping):
            value = item.get(key)
        else:
            value = getattr(item, key, None)
        if value is not None:
            return value
    return None


class InvoiceTotals(BaseModel):
    """Derived monetary totals of an invoice. Recomputed, never stored."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    lines_sum: float
    tax_amount: float
    discount_amount: float
    total: float


def compute_invoice_total(line_items: Iterable[Any] | None = None, tax: Any = 0, discount: Any = 0) -> InvoiceTotals:
    """Compute line sum, tax, discount and grand total.

    Each line total is rounded to cents before summing. Summing raw products
    and rounding once gives different results for sub-cent prices.
    """

    lines_sum = Decimal("0")
    for item in line_items or []:
        line_total = compute_line_total(line_value(item, QTY_KEYS), line_value(item, UNIT_PRICE_KEYS))
        lines_sum += Decimal(repr(line_total))

    tax_amount = to_number(tax)
    discount_amount = to_number(discount)
    total = _cents(lines_sum + Decimal(repr(tax_amount)) - Decimal(repr(discount_amount)))

    return InvoiceTotals(
        lines_sum=_to_float(lines_sum),
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=_to_float(total),
    )


def amounts_match(claimed: Any, computed: Any, tolerance: float | None = None) -> bool:
    """Return True when both amounts agree to within ``tolerance`` after cent rounding.

    The comparison runs on decimals so that 100.01 vs 100.00 sits exactly on
    a one-cent tolerance instead of a hair above it.
    """

    if tolerance is None:
        tolerance = settings.amount_tolerance
    difference = abs(_cents(_decimal(claimed)) - _cents(_decimal(computed)))
    return difference <= Decimal(repr(float(tolerance)))


def format_currency(value: Any, currency: str | None = None) -> str:
    """Render ``value`` as ``"<currency> <amount>"`` with two decimals, or ``""``."""

    number = parse_number(value)
    if number is None:
        return ""
    return f"{currency or settings.default_currency} {round2(number):.2f}"
