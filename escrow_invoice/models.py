"""Pydantic request/response models."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from escrow_invoice.money import InvoiceTotals


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TotalsRequest(_CamelModel):
    # Values stay loosely typed: unreadable numbers count as zero in the totals.
    line_items: List[Dict[str, Any]] = Field(default_factory=list)
    tax: Any = 0
    discount: Any = 0
    currency: Optional[str] = None

    @field_validator("line_items", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return value


class TotalsResponse(InvoiceTotals):
    currency: str
    formatted_total: str


class ValidationResponse(_CamelModel):
    valid: bool
    errors: Dict[str, str]
    totals: InvoiceTotals


class RuleCheckResponse(_CamelModel):
    success: bool = True
    rule_set: str


class HealthResponse(BaseModel):
    status: str
    env: str
