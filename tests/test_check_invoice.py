import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "check_invoice.py"


@pytest.fixture(scope="module")
def check_invoice():
    spec = importlib.util.spec_from_file_location("check_invoice", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_valid_invoice_file(check_invoice, tmp_path, capsys):
    path = tmp_path / "invoice.json"
    path.write_text(
        json.dumps(
            {
                "vendor_name": "Acme",
                "buyer_name": "Globex",
                "date": "2024-03-01",
                "tax": 10,
                "discount": 5,
                "total_amount": 305,
                "line_items": [{"description": "Consulting", "qty": 2, "unitPrice": 150}],
            }
        )
    )

    assert check_invoice.main([str(path)]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["valid"] is True
    assert result["totals"]["total"] == 305


def test_rule_set_mode_reports_mismatch(check_invoice, tmp_path, capsys):
    path = tmp_path / "deal.json"
    path.write_text(
        json.dumps(
            {
                "description": "Escrow for logo work",
                "clientAddress": "ST" + "7" * 39,
                "totalAmount": 99,
                "lineItems": [{"description": "Logo", "qty": 1, "unitPrice": 120}],
            }
        )
    )

    assert check_invoice.main([str(path), "--rules", "create_invoice"]) == 1
    result = json.loads(capsys.readouterr().out)
    assert result["errors"][0]["code"] == "AMOUNT_MISMATCH"
