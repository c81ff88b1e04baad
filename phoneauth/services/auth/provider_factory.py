"""
SMS provider factory
"""
import logging
from typing import Optional

from ...core.config import settings
from .sms_provider import SMSProvider
from .stub_provider import StubSMSProvider
from .twilio_sms import TwilioSMSProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[SMSProvider] = None


def get_sms_provider() -> SMSProvider:
    """
    Get SMS provider instance based on SMS_PROVIDER.

    Returns:
        SMSProvider instance (cached per process)
    """
    global _provider_instance

    provider_type = settings.SMS_PROVIDER.lower()

    if provider_type == "twilio":
        if _provider_instance is None or not isinstance(_provider_instance, TwilioSMSProvider):
            try:
                _provider_instance = TwilioSMSProvider()
                logger.info("[OTP] Using Twilio SMS provider")
            except ValueError as e:
                logger.error(f"[OTP] Failed to initialize Twilio SMS: {e}")
                raise
        return _provider_instance

    elif provider_type == "stub":
        if _provider_instance is None or not isinstance(_provider_instance, StubSMSProvider):
            _provider_instance = StubSMSProvider()
            logger.info("[OTP] Using stub provider")
        return _provider_instance

    else:
        raise ValueError(f"Unknown SMS provider: {provider_type}. Must be one of: twilio, stub")


def reset_sms_provider():
    global _provider_instance
    _provider_instance = None
