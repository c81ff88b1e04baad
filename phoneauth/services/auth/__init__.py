"""
Auth services package: OTP codes, SMS delivery, rate limiting, audit
"""
from .sms_provider import SMSProvider
from .stub_provider import StubSMSProvider
from .twilio_sms import TwilioSMSProvider
from .provider_factory import get_sms_provider, reset_sms_provider
from .rate_limit import RateLimitService, get_rate_limit_service, reset_rate_limit_service
from .audit import AuditService
from .templates import render_otp_message
from .otp_codes import (
    generate_otp_code,
    sign_otp_code,
    codes_match,
    recover_otp_code,
    ensure_signing_key,
)

__all__ = [
    "SMSProvider",
    "StubSMSProvider",
    "TwilioSMSProvider",
    "get_sms_provider",
    "reset_sms_provider",
    "RateLimitService",
    "get_rate_limit_service",
    "reset_rate_limit_service",
    "AuditService",
    "render_otp_message",
    "generate_otp_code",
    "sign_otp_code",
    "codes_match",
    "recover_otp_code",
    "ensure_signing_key",
]
