"""FastAPI application entrypoint."""
from __future__ import annotations

from typing import Any, Dict
import logging

import uvicorn
from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from escrow_invoice.boundary import RULE_SETS, apply_rule_set, sanitize_input
from escrow_invoice.config import settings
from escrow_invoice.errors import (
    ErrorCode,
    FieldError,
    InvoiceAPIError,
    ResourceNotFound,
    RuleViolation,
)
from escrow_invoice.models import (
    HealthResponse,
    RuleCheckResponse,
    TotalsRequest,
    TotalsResponse,
    ValidationResponse,
)
from escrow_invoice.money import compute_invoice_total, format_currency
from escrow_invoice.validation import validate_invoice

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Escrow Invoice Engine", default_response_class=ORJSONResponse)


@app.exception_handler(InvoiceAPIError)
async def _invoice_error(request: Request, exc: InvoiceAPIError) -> ORJSONResponse:
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def _request_error(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = [
        FieldError(field=".".join(str(part) for part in err.get("loc", ())[1:]) or "body", message=err.get("msg", ""))
        for err in exc.errors()
    ]
    return await _invoice_error(request, RuleViolation(errors))


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    if exc.status_code == 404:
        error = ResourceNotFound(f"Resource not found: {request.url.path}")
    else:
        error = InvoiceAPIError(exc.status_code, ErrorCode.INVALID_INPUT, str(exc.detail))
    return ORJSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InvoiceAPIError(500, ErrorCode.INTERNAL_SERVER_ERROR, "Internal server error")
    return ORJSONResponse(status_code=500, content=error.to_payload())


def _run_rules(name: str, payload: Dict[str, Any]) -> RuleCheckResponse:
    if name not in RULE_SETS:
        raise ResourceNotFound(f"Unknown rule set: {name}")
    cleaned = {key: sanitize_input(value) for key, value in payload.items()}
    errors = apply_rule_set(name, cleaned)
    if errors:
        raise RuleViolation(errors)
    return RuleCheckResponse(rule_set=name)


@app.post("/invoices/totals", response_model=TotalsResponse)
def invoice_totals(request: TotalsRequest):
    totals = compute_invoice_total(request.line_items, request.tax, request.discount)
    currency = request.currency or settings.default_currency
    return TotalsResponse(
        **totals.model_dump(),
        currency=currency,
        formatted_total=format_currency(totals.total, currency),
    )


@app.post("/invoices/validate", response_model=ValidationResponse)
def invoice_validate(invoice: Dict[str, Any] = Body(...)):
    errors = validate_invoice(invoice)
    line_items = invoice.get("line_items") or invoice.get("lineItems")
    totals = compute_invoice_total(
        line_items if isinstance(line_items, list) else [],
        invoice.get("tax"),
        invoice.get("discount"),
    )
    return ValidationResponse(valid=not errors, errors=errors, totals=totals)


@app.post("/rules/{rule_set}", response_model=RuleCheckResponse)
def check_rules(rule_set: str, payload: Dict[str, Any] = Body(default={})):
    return _run_rules(rule_set, payload)


@app.get("/wallets/{wallet}/check", response_model=RuleCheckResponse)
def check_wallet(wallet: str):
    return _run_rules("wallet_address", {"wallet": wallet})


@app.get("/healthz", response_model=HealthResponse)
def healthz():
    return {"status": "ok", "env": settings.env}


def run() -> None:
    """Serve the API with uvicorn."""

    uvicorn.run(
        "escrow_invoice.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()
