from pydantic import BaseModel
import os
import logging
from datetime import timedelta


class Settings(BaseModel):
    # Environment
    ENV: str = os.getenv("ENV", "dev")  # dev, staging, prod
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./phoneauth.db")
    REDIS_URL: str = os.getenv("REDIS_URL", "")

    # OTP hashing. Empty key means OTP issuance/verification refuses to run.
    OTP_SIGNING_KEY: str = os.getenv("OTP_SIGNING_KEY", "")
    OTP_TTL_MINUTES: int = int(os.getenv("OTP_TTL_MINUTES", "5"))
    OTP_VERIFY_LIMIT_PER_CHALLENGE: int = int(os.getenv("OTP_VERIFY_LIMIT_PER_CHALLENGE", "5"))
    OTP_ENFORCE_IP_BINDING: bool = os.getenv("OTP_ENFORCE_IP_BINDING", "false").lower() == "true"

    # Send limits
    OTP_SEND_LIMIT_PER_HOUR: int = int(os.getenv("OTP_SEND_LIMIT_PER_HOUR", "5"))
    OTP_SEND_LIMIT_PER_IP_HOUR: int = int(os.getenv("OTP_SEND_LIMIT_PER_IP_HOUR", "20"))
    OTP_SHORT_WINDOW_LIMIT: int = int(os.getenv("OTP_SHORT_WINDOW_LIMIT", "3"))
    OTP_SHORT_WINDOW_MINUTES: int = int(os.getenv("OTP_SHORT_WINDOW_MINUTES", "10"))
    RATE_LIMIT_BACKEND: str = os.getenv("RATE_LIMIT_BACKEND", "database")  # database, redis

    # Sessions
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "")
    SESSION_TTL_DAYS: int = int(os.getenv("SESSION_TTL_DAYS", "7"))
    SESSION_COOKIE_NAME: str = "auth_session"

    # SMS delivery
    SMS_PROVIDER: str = os.getenv("SMS_PROVIDER", "stub")  # stub, twilio
    TWILIO_ACCOUNT_SID: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_FROM_NUMBER: str = os.getenv("TWILIO_FROM_NUMBER", "")
    TWILIO_TIMEOUT_SECONDS: int = int(os.getenv("TWILIO_TIMEOUT_SECONDS", "10"))
    SMS_BRAND_NAME: str = os.getenv("SMS_BRAND_NAME", "LOANZAAR Distribution Services")
    SMS_TERMS_SITE: str = os.getenv("SMS_TERMS_SITE", "LOANZAAR.com")

    # Server-to-server bypass for role guards (disabled when empty)
    INTERNAL_ADMIN_SECRET: str = os.getenv("INTERNAL_ADMIN_SECRET", "")

    DEFAULT_PHONE_REGION: str = os.getenv("DEFAULT_PHONE_REGION", "IN")
    DEV_RETURN_OTP: bool = os.getenv("DEV_RETURN_OTP", "false").lower() == "true"
    SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.OTP_TTL_MINUTES)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self.SESSION_TTL_DAYS)

    @property
    def redis_enabled(self) -> bool:
        """Redis counters are used only when selected and a URL is configured."""
        return self.RATE_LIMIT_BACKEND.lower() == "redis" and bool(self.REDIS_URL)


settings = Settings()

MIN_SECRET_LENGTH = 32


def validate_config():
    """Validate configuration at startup. Raises ValueError if invalid."""
    logger = logging.getLogger(__name__)

    if settings.SMS_PROVIDER not in ("stub", "twilio"):
        error_msg = f"Unknown SMS_PROVIDER: {settings.SMS_PROVIDER}. Must be one of: stub, twilio"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if settings.RATE_LIMIT_BACKEND == "redis" and not settings.REDIS_URL:
        error_msg = "RATE_LIMIT_BACKEND=redis requires REDIS_URL"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if settings.ENV not in ("prod", "production"):
        if not settings.OTP_SIGNING_KEY:
            logger.warning("OTP_SIGNING_KEY is not set; OTP issuance will be refused")
        return

    if settings.SMS_PROVIDER == "stub":
        error_msg = "SMS_PROVIDER=stub is not allowed in production"
        logger.error(error_msg)
        raise ValueError(error_msg)

    missing = []
    if not settings.TWILIO_ACCOUNT_SID:
        missing.append("TWILIO_ACCOUNT_SID")
    if not settings.TWILIO_AUTH_TOKEN:
        missing.append("TWILIO_AUTH_TOKEN")
    if not settings.TWILIO_FROM_NUMBER:
        missing.append("TWILIO_FROM_NUMBER")
    if missing:
        error_msg = f"Twilio SMS provider selected but missing required configuration: {', '.join(missing)}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    for name in ("OTP_SIGNING_KEY", "SESSION_SECRET"):
        value = getattr(settings, name)
        if len(value) < MIN_SECRET_LENGTH:
            error_msg = f"{name} must be set to at least {MIN_SECRET_LENGTH} characters in production"
            logger.error(error_msg)
            raise ValueError(error_msg)

    if settings.DATABASE_URL.startswith("sqlite"):
        error_msg = (
            "CRITICAL: SQLite database is not supported in production. "
            "Please use PostgreSQL (e.g., RDS, managed Postgres)."
        )
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info("Production configuration validated")
