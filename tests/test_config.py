"""
Startup configuration validation
"""
import pytest

from phoneauth.core.config import settings, validate_config

STRONG = "x" * 40


@pytest.fixture
def prod(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod")
    monkeypatch.setattr(settings, "SMS_PROVIDER", "twilio")
    monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setattr(settings, "TWILIO_FROM_NUMBER", "+15005550006")
    monkeypatch.setattr(settings, "OTP_SIGNING_KEY", STRONG)
    monkeypatch.setattr(settings, "SESSION_SECRET", STRONG)
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://u:p@db/phoneauth")
    return monkeypatch


def test_dev_config_passes():
    validate_config()


def test_valid_production_config(prod):
    validate_config()


def test_stub_provider_rejected_in_production(prod):
    prod.setattr(settings, "SMS_PROVIDER", "stub")
    with pytest.raises(ValueError, match="stub"):
        validate_config()


def test_missing_twilio_credentials(prod):
    prod.setattr(settings, "TWILIO_AUTH_TOKEN", "")
    with pytest.raises(ValueError, match="TWILIO_AUTH_TOKEN"):
        validate_config()


@pytest.mark.parametrize("name", ["OTP_SIGNING_KEY", "SESSION_SECRET"])
def test_short_secrets_rejected(prod, name):
    prod.setattr(settings, name, "short")
    with pytest.raises(ValueError, match=name):
        validate_config()


def test_sqlite_rejected_in_production(prod):
    prod.setattr(settings, "DATABASE_URL", "sqlite:///./phoneauth.db")
    with pytest.raises(ValueError, match="SQLite"):
        validate_config()


def test_unknown_provider(monkeypatch):
    monkeypatch.setattr(settings, "SMS_PROVIDER", "carrier-pigeon")
    with pytest.raises(ValueError, match="SMS_PROVIDER"):
        validate_config()


def test_redis_backend_needs_url(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_BACKEND", "redis")
    monkeypatch.setattr(settings, "REDIS_URL", "")
    with pytest.raises(ValueError, match="REDIS_URL"):
        validate_config()
