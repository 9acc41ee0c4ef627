"""Validate an invoice JSON file from the command line."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import orjson

from escrow_invoice.boundary import RULE_SETS, apply_rule_set
from escrow_invoice.money import compute_invoice_total
from escrow_invoice.validation import validate_invoice


def check(payload: dict, rule_set: str | None = None) -> dict:
    """Return a JSON-ready result for ``payload``."""

    if rule_set:
        errors = apply_rule_set(rule_set, payload)
        return {
            "valid": not errors,
            "ruleSet": rule_set,
            "errors": [err.model_dump(mode="json") for err in errors],
        }

    line_items = payload.get("line_items") or payload.get("lineItems")
    totals = compute_invoice_total(
        line_items if isinstance(line_items, list) else [],
        payload.get("tax"),
        payload.get("discount"),
    )
    errors = validate_invoice(payload)
    return {"valid": not errors, "errors": errors, "totals": totals.model_dump(by_alias=True)}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="JSON file holding one invoice")
    parser.add_argument("--rules", choices=sorted(RULE_SETS), help="run a request rule set instead")
    args = parser.parse_args(argv)

    payload = orjson.loads(args.path.read_bytes())
    if not isinstance(payload, dict):
        print("Expected a JSON object.", file=sys.stderr)
        return 2

    result = check(payload, args.rules)
    print(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode("utf8"))
    return 0 if result["valid"] else 1


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
