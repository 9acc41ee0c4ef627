import pytest
from pydantic import ValidationError

from escrow_invoice.config import Settings, get_settings


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_CURRENCY", "STX")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = Settings()

    assert cfg.default_currency == "STX"
    assert cfg.log_level == "DEBUG"


@pytest.mark.parametrize("kwargs", [{"default_currency": "EUR"}, {"amount_tolerance": 1.5}, {"amount_tolerance": -0.01}])
def test_invalid_settings(kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)


def test_settings_frozen():
    cfg = Settings()
    with pytest.raises(ValidationError):
        cfg.amount_tolerance = 0.5


def test_get_settings_cached():
    assert get_settings() is get_settings()


@pytest.mark.parametrize("name, value", [("DEFAULT_CURRENCY", "EUR"), ("AMOUNT_TOLERANCE", "5")])
def test_invalid_env_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings()
