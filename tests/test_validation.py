from pydantic import BaseModel

from escrow_invoice import validation
from escrow_invoice.config import Settings
from escrow_invoice.validation import validate_invoice


def _invoice(**overrides):
    invoice = {
        "vendor_name": "Acme Studio",
        "buyer_name": "Globex",
        "date": "2024-03-01",
        "currency": "USD",
        "tax": 10,
        "discount": 5,
        "total_amount": 305,
        "line_items": [{"description": "Consulting", "qty": 2, "unitPrice": 150.00}],
    }
    invoice.update(overrides)
    return invoice


def test_valid_invoice_has_no_errors():
    assert validate_invoice(_invoice()) == {}


def test_total_mismatch_is_reported_on_total_amount():
    errors = validate_invoice(_invoice(total_amount=400))

    assert list(errors) == ["total_amount"]
    assert errors["total_amount"].startswith("Total does not match line items")
    assert "USD 305.00" in errors["total_amount"]


def test_all_errors_reported_together():
    errors = validate_invoice({})

    assert set(errors) == {"vendor_name", "buyer_name", "date", "total_amount", "line_items"}
    assert errors["line_items"] == "Add at least one line item"


def test_blank_names_rejected():
    errors = validate_invoice(_invoice(vendor_name="   ", buyer_name=""))

    assert errors["vendor_name"] == "Vendor name required"
    assert errors["buyer_name"] == "Buyer name required"


def test_empty_line_items():
    errors = validate_invoice(_invoice(line_items=[]))

    assert errors == {"line_items": "Add at least one line item"}


def test_line_errors_keyed_by_position():
    items = [
        {"description": "Design", "qty": 1, "unitPrice": 100},
        {"description": " ", "qty": 0, "unitPrice": "abc"},
    ]

    errors = validate_invoice(_invoice(line_items=items, total_amount=100, tax=0, discount=0))

    assert errors == {
        "line_1_description": "Description required",
        "line_1_qty": "Quantity must be > 0",
        "line_1_unitPrice": "Unit price required",
    }


def test_zero_unit_price_is_rejected_in_editor():
    items = [{"description": "Free setup", "qty": 1, "unitPrice": 0}]

    errors = validate_invoice(_invoice(line_items=items, total_amount=1, tax=1, discount=0))

    assert errors == {"line_0_unitPrice": "Unit price required"}


def test_non_positive_total_amount():
    assert validate_invoice(_invoice(total_amount=0))["total_amount"] == "Total must be a positive number"
    assert validate_invoice(_invoice(total_amount="x"))["total_amount"] == "Total must be a positive number"


def test_one_cent_tolerance_edges():
    items = [{"description": "Hosting", "qty": 1, "unitPrice": 100.01}]

    assert validate_invoice(_invoice(line_items=items, total_amount=100.00, tax=0, discount=0)) == {}

    items = [{"description": "Hosting", "qty": 1, "unitPrice": 100.02}]
    errors = validate_invoice(_invoice(line_items=items, total_amount=100.00, tax=0, discount=0))
    assert "total_amount" in errors


def test_tolerance_comes_from_settings(monkeypatch):
    monkeypatch.setattr(validation, "settings", Settings(amount_tolerance=0.05))
    items = [{"description": "Hosting", "qty": 1, "unitPrice": 100.04}]

    assert validate_invoice(_invoice(line_items=items, total_amount=100.00, tax=0, discount=0)) == {}


def test_camel_case_fields_accepted():
    invoice = {
        "vendorName": "Acme Studio",
        "buyerName": "Globex",
        "date": "2024-03-01",
        "totalAmount": "300",
        "lineItems": [{"description": "Consulting", "quantity": "2", "unit_price": "150"}],
    }

    assert validate_invoice(invoice) == {}


def test_unsupported_currency():
    assert validate_invoice(_invoice(currency="EUR")) == {"currency": "Unsupported currency"}


def test_model_input():
    class Draft(BaseModel):
        vendor_name: str
        buyer_name: str
        date: str
        total_amount: float
        line_items: list

    draft = Draft(
        vendor_name="Acme",
        buyer_name="Globex",
        date="2024-01-01",
        total_amount=42.0,
        line_items=[{"description": "Audit", "qty": 1, "unitPrice": 42}],
    )

    assert validate_invoice(draft) == {}


def test_boolean_quantity_rejected():
    items = [{"description": "Consulting", "qty": True, "unitPrice": 300}]

    errors = validate_invoice(_invoice(line_items=items, total_amount=300, tax=0, discount=0))

    assert "line_0_qty" in errors
