"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_CURRENCIES: tuple[str, ...] = ("sBTC", "STX", "USD")


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    env: str = Field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    default_currency: str = Field(default_factory=lambda: os.getenv("DEFAULT_CURRENCY", "USD"))
    amount_tolerance: float = Field(default_factory=lambda: float(os.getenv("AMOUNT_TOLERANCE", "0.01")))
    api_host: str = Field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = Field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))

    @field_validator("default_currency")
    @classmethod
    def _validate_currency(cls, value: str) -> str:
        if value not in SUPPORTED_CURRENCIES:
            raise ValueError(f"default_currency must be one of {', '.join(SUPPORTED_CURRENCIES)}")
        return value

    @field_validator("amount_tolerance")
    @classmethod
    def _validate_tolerance(cls, value: float) -> float:
        """Keep the cross-field tolerance below one currency unit."""

        if not 0 <= value < 1:
            raise ValueError("amount_tolerance must be between 0 and 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


settings = get_settings()
"""Module-level settings singleton used across the application."""
