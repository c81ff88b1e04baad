"""
Stub SMS provider for dev/staging environments
"""
import logging

from ...core.config import settings
from ...utils.phone import get_phone_last4
from .sms_provider import SMSProvider

logger = logging.getLogger(__name__)


class StubSMSProvider(SMSProvider):
    """
    Log sink used outside production.

    Message bodies (which contain the code) are logged for dev convenience,
    never in prod.
    """

    name = "stub"

    def __init__(self):
        self.sent = []
        if settings.ENV == "prod":
            logger.warning("[OTP][Stub] WARNING: Stub provider enabled in production! This should not happen.")
        else:
            logger.info(f"[OTP][Stub] Stub provider enabled for environment: {settings.ENV}")

    async def send_message(self, phone: str, message: str) -> bool:
        self.sent.append((phone, message))
        if settings.ENV == "prod":
            logger.info(f"[OTP][Stub] Message to ***{get_phone_last4(phone)} suppressed")
        else:
            logger.info(f"[OTP][Stub] Message to {phone}: {message}")
        return True
