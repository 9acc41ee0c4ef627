"""Structural validation of invoices built in the editor."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
import logging

from pydantic import BaseModel

from escrow_invoice.config import SUPPORTED_CURRENCIES, settings
from escrow_invoice.money import (
    QTY_KEYS,
    UNIT_PRICE_KEYS,
    amounts_match,
    compute_invoice_total,
    format_currency,
    line_value,
    parse_number,
)

logger = logging.getLogger(__name__)


def _get(invoice: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = invoice.get(key)
        if value is not None:
            return value
    return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _validate_line(idx: int, item: Any, errors: dict[str, str]) -> None:
    if _is_blank(line_value(item, ("description",))):
        errors[f"line_{idx}_description"] = "Description required"

    qty = parse_number(line_value(item, QTY_KEYS))
    if qty is None or qty <= 0:
        errors[f"line_{idx}_qty"] = "Quantity must be > 0"

    # A zero unit price is rejected here; the request rules accept it.
    unit_price = parse_number(line_value(item, UNIT_PRICE_KEYS))
    if not unit_price or unit_price < 0:
        errors[f"line_{idx}_unitPrice"] = "Unit price required"


def validate_invoice(invoice: Mapping[str, Any] | BaseModel) -> dict[str, str]:
    """Return field key -> message for every problem found; empty means valid.

    All rules run, so the editor can show every error at once. Keys follow the
    editor's field names (``vendor_name``, ``line_0_qty``, ...).
    """

    if isinstance(invoice, BaseModel):
        invoice = invoice.model_dump()

    errors: dict[str, str] = {}

    if _is_blank(_get(invoice, "vendor_name", "vendorName")):
        errors["vendor_name"] = "Vendor name required"
    if _is_blank(_get(invoice, "buyer_name", "buyerName")):
        errors["buyer_name"] = "Buyer name required"
    if not _get(invoice, "date"):
        errors["date"] = "Invoice date required"

    amount = parse_number(_get(invoice, "total_amount", "totalAmount"))
    if amount is None or amount <= 0:
        errors["total_amount"] = "Total must be a positive number"

    currency = _get(invoice, "currency")
    if currency is not None and currency not in SUPPORTED_CURRENCIES:
        errors["currency"] = "Unsupported currency"

    line_items = _get(invoice, "line_items", "lineItems")
    if not isinstance(line_items, Sequence) or isinstance(line_items, str) or not line_items:
        errors["line_items"] = "Add at least one line item"
        return errors

    for idx, item in enumerate(line_items):
        _validate_line(idx, item, errors)

    if "total_amount" not in errors:
        totals = compute_invoice_total(
            line_items,
            _get(invoice, "tax"),
            _get(invoice, "discount"),
        )
        if not amounts_match(amount, totals.total, settings.amount_tolerance):
            logger.debug("Invoice total %s does not match computed %s", amount, totals.total)
            expected = format_currency(totals.total, currency if currency in SUPPORTED_CURRENCIES else None)
            errors["total_amount"] = f"Total does not match line items (expected {expected})"

    return errors
