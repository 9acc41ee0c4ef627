"""Request rule sets applied at the API boundary.

Each rule set takes the request payload (body fields with path parameters
merged in) and returns the list of failed rules. Every rule runs; nothing
short-circuits, mirroring how the editor reports all problems together.
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Iterable, List
import logging
import re

from escrow_invoice.config import SUPPORTED_CURRENCIES, settings
from escrow_invoice.errors import ErrorCode, FieldError
from escrow_invoice.money import (
    QTY_KEYS,
    UNIT_PRICE_KEYS,
    amounts_match,
    compute_line_total,
    line_value,
    parse_number,
    round2,
)

logger = logging.getLogger(__name__)

STACKS_ADDRESS = re.compile(r"^(SP|ST)[0-9A-Z]{38,41}$")
INVALID_ADDRESS = "Invalid Stacks address format"
BOOLEAN_STRINGS = {"true", "false", "0", "1"}
UNSAFE_CHARS = re.compile(r"[<>]")

Payload = Mapping[str, Any]
RuleSet = Callable[[Payload], List[FieldError]]


def is_valid_stacks_address(address: Any) -> bool:
    """Structural check only: network prefix plus 38-41 uppercase alphanumerics."""

    return isinstance(address, str) and STACKS_ADDRESS.fullmatch(address) is not None


def sanitize_input(value: Any) -> Any:
    """Strip angle brackets and surrounding whitespace from strings."""

    if not isinstance(value, str):
        return value
    return UNSAFE_CHARS.sub("", value).strip()


def compute_line_sum(line_items: Iterable[Any] | None) -> float:
    """Sum of cent-rounded line totals; unreadable numbers count as zero."""

    total = Decimal("0")
    for item in line_items or []:
        line_total = compute_line_total(line_value(item, QTY_KEYS), line_value(item, UNIT_PRICE_KEYS))
        total += Decimal(repr(line_total))
    return float(total)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    return parse_number(value)


def _required(errors: list[FieldError], payload: Payload, field: str, message: str) -> None:
    if _is_empty(payload.get(field)):
        errors.append(FieldError(field=field, message=message))


def _length(
    errors: list[FieldError],
    payload: Payload,
    field: str,
    message: str,
    min_len: int = 0,
    max_len: int | None = None,
    optional: bool = False,
) -> None:
    value = payload.get(field)
    if optional and value is None:
        return
    size = len(_as_text(value))
    if size < min_len or (max_len is not None and size > max_len):
        errors.append(FieldError(field=field, message=message))


def _address(errors: list[FieldError], payload: Payload, field: str, optional: bool = False) -> None:
    value = payload.get(field)
    if optional and value is None:
        return
    if not is_valid_stacks_address(_as_text(value)):
        errors.append(FieldError(field=field, message=INVALID_ADDRESS))


def _plain(amount: float) -> str:
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def _line_items(payload: Payload) -> list[Any]:
    items = payload.get("lineItems") or payload.get("line_items") or []
    return items if isinstance(items, list) else []


def _check_total_amount(errors: list[FieldError], payload: Payload) -> None:
    raw = payload.get("totalAmount")
    amount = _float(raw)
    if amount is None or amount <= 0:
        errors.append(FieldError(field="totalAmount", message="Total amount must be greater than 0"))

    items = _line_items(payload)
    if not items:
        errors.append(FieldError(field="totalAmount", message="At least one line item is required"))
        return
    if amount is None:
        return

    line_sum = round2(compute_line_sum(items))
    rounded_amount = round2(amount)
    if not amounts_match(rounded_amount, line_sum, settings.amount_tolerance):
        logger.debug("Amount mismatch: claimed %s, line items %s", rounded_amount, line_sum)
        errors.append(
            FieldError(
                field="totalAmount",
                message=f"Total amount {_plain(rounded_amount)} does not match line items sum {_plain(line_sum)}",
                code=ErrorCode.AMOUNT_MISMATCH,
            )
        )


def _check_line_items(errors: list[FieldError], payload: Payload) -> None:
    items = payload.get("lineItems")
    if not isinstance(items, list) or not items:
        errors.append(FieldError(field="lineItems", message="At least one line item is required"))
        return

    for idx, item in enumerate(items):
        prefix = f"lineItems[{idx}]"
        if not isinstance(item, Mapping):
            item = {}
        if _is_empty(item.get("description")):
            errors.append(FieldError(field=f"{prefix}.description", message="Line item description is required"))
        qty = _float(item.get("qty"))
        if qty is None or qty <= 0:
            errors.append(FieldError(field=f"{prefix}.qty", message="Line item quantity must be greater than 0"))
        # Zero is a valid unit price at the boundary.
        unit_price = _float(item.get("unitPrice"))
        if unit_price is None or unit_price < 0:
            errors.append(
                FieldError(field=f"{prefix}.unitPrice", message="Line item unit price must be non-negative")
            )


def create_invoice_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "description", "Description is required")
    _length(errors, payload, "description", "Description must be between 10 and 5000 characters", 10, 5000)
    _required(errors, payload, "clientAddress", "Client address is required")
    _address(errors, payload, "clientAddress")
    _address(errors, payload, "contractorAddress", optional=True)
    _address(errors, payload, "arbitratorAddress", optional=True)
    _check_total_amount(errors, payload)
    currency = payload.get("currency")
    if currency is not None and currency not in SUPPORTED_CURRENCIES:
        errors.append(FieldError(field="currency", message="Invalid currency"))
    _check_line_items(errors, payload)
    return errors


def release_milestone_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "id", "Invoice ID is required")
    _required(errors, payload, "milestoneId", "Milestone ID is required")
    _required(errors, payload, "clientKey", "Client private key is required")
    return errors


def raise_dispute_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "id", "Invoice ID is required")
    _required(errors, payload, "raisedBy", "Raiser wallet address is required")
    _address(errors, payload, "raisedBy")
    _required(errors, payload, "reason", "Dispute reason is required")
    _length(errors, payload, "reason", "Reason must be between 10 and 1000 characters", 10, 1000)
    _length(errors, payload, "evidence", "Evidence must not exceed 5000 characters", max_len=5000, optional=True)
    return errors


def resolve_dispute_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "id", "Dispute ID is required")
    _required(errors, payload, "resolution", "Resolution is required")
    _length(errors, payload, "resolution", "Resolution must be between 10 and 1000 characters", 10, 1000)
    favor_client = payload.get("favorClient")
    if not isinstance(favor_client, bool) and _as_text(favor_client).lower() not in BOOLEAN_STRINGS:
        errors.append(FieldError(field="favorClient", message="favorClient must be a boolean"))
    _required(errors, payload, "arbitratorKey", "Arbitrator private key is required")
    return errors


def wallet_address_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "wallet", "Wallet address is required")
    _address(errors, payload, "wallet")
    return errors


def invoice_id_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "id", "Invoice ID is required")
    return errors


def ai_parse_rules(payload: Payload) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(errors, payload, "description", "Description is required")
    _length(errors, payload, "description", "Description must be between 20 and 10000 characters", 20, 10000)
    return errors


RULE_SETS: Mapping[str, RuleSet] = MappingProxyType(
    {
        "create_invoice": create_invoice_rules,
        "release_milestone": release_milestone_rules,
        "raise_dispute": raise_dispute_rules,
        "resolve_dispute": resolve_dispute_rules,
        "wallet_address": wallet_address_rules,
        "invoice_id": invoice_id_rules,
        "ai_parse": ai_parse_rules,
    }
)


def apply_rule_set(name: str, payload: Payload) -> list[FieldError]:
    """Run the named rule set and log a summary of any rejection."""

    errors = RULE_SETS[name](payload)
    if errors:
        logger.info(
            "Rule set %s rejected request: %d error(s), amount_mismatch=%s",
            name,
            len(errors),
            any(err.code is ErrorCode.AMOUNT_MISMATCH for err in errors),
        )
    return errors
