"""Error codes, user-facing messages and HTTP error types."""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


DEFAULT_USER_MESSAGE = "Something went wrong. Please try again or contact support."

USER_MESSAGES: Mapping[ErrorCode, str] = MappingProxyType(
    {
        ErrorCode.INVALID_INPUT: "Please check the required fields and try again.",
        ErrorCode.AMOUNT_MISMATCH: (
            "The invoice total doesn't match the line items. Please verify your calculations."
        ),
        ErrorCode.UNAUTHORIZED: "You don't have permission to perform this action.",
        ErrorCode.NOT_FOUND: "The requested resource was not found.",
        ErrorCode.TOO_MANY_REQUESTS: (
            "You're sending requests too quickly. Please wait a moment and try again."
        ),
    }
)
"""Immutable code -> user message table, built once at import."""


def user_message(code: ErrorCode | str) -> str:
    try:
        return USER_MESSAGES.get(ErrorCode(code), DEFAULT_USER_MESSAGE)
    except ValueError:
        return DEFAULT_USER_MESSAGE


class FieldError(BaseModel):
    """One failed request rule."""

    field: str
    message: str
    code: ErrorCode = ErrorCode.INVALID_INPUT


class InvoiceAPIError(HTTPException):
    """HTTP error carrying a classified error code."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "userMessage": user_message(self.code),
                "details": self.details,
            },
        }


class RuleViolation(InvoiceAPIError):
    """Raised when a request rule set reports one or more field errors."""

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = list(errors)
        mismatch = any(err.code is ErrorCode.AMOUNT_MISMATCH for err in self.errors)
        code = ErrorCode.AMOUNT_MISMATCH if mismatch else ErrorCode.INVALID_INPUT
        message = "; ".join(err.message for err in self.errors) or "Invalid request"
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            code,
            message,
            details=[err.model_dump(mode="json") for err in self.errors],
        )


class ResourceNotFound(InvoiceAPIError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND, message)
