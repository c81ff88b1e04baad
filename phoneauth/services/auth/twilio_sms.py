"""
Twilio SMS delivery provider
"""
import asyncio
import logging

from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient
from twilio.base.exceptions import TwilioException

from ...core.config import settings
from ...utils.phone import get_phone_last4
from .sms_provider import SMSProvider

logger = logging.getLogger(__name__)


class TwilioSMSProvider(SMSProvider):
    """
    Sends messages through the Twilio Messages API.

    Requires TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER.
    """

    name = "twilio"

    def __init__(self, client: Client = None):
        if client is None:
            if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
                raise ValueError("Twilio credentials not configured")
            # Explicit HTTP timeout so a stalled connection cannot hang a worker thread
            http_client = TwilioHttpClient()
            http_client.timeout = settings.TWILIO_TIMEOUT_SECONDS
            client = Client(
                settings.TWILIO_ACCOUNT_SID,
                settings.TWILIO_AUTH_TOKEN,
                http_client=http_client,
            )

        if not settings.TWILIO_FROM_NUMBER:
            raise ValueError("TWILIO_FROM_NUMBER not configured for SMS provider")

        self.client = client
        self.from_number = settings.TWILIO_FROM_NUMBER
        self.timeout_seconds = settings.TWILIO_TIMEOUT_SECONDS

    async def send_message(self, phone: str, message: str) -> bool:
        phone_last4 = get_phone_last4(phone)

        def _create_message():
            """Blocking Twilio API call, run in a worker thread"""
            return self.client.messages.create(
                body=message,
                from_=self.from_number,
                to=phone,
            )

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(_create_message),
                timeout=self.timeout_seconds,
            )
            logger.info(f"[OTP][TwilioSMS] SMS sent to ***{phone_last4}, SID: {result.sid}")
            return True
        except asyncio.TimeoutError:
            # The challenge is already stored; the caller can resend
            logger.error(f"[OTP][TwilioSMS] Timeout sending SMS to ***{phone_last4} (>{self.timeout_seconds}s)")
            return False
        except TwilioException as e:
            logger.error(f"[OTP][TwilioSMS] Failed to send SMS to ***{phone_last4}: {e}")
            return False
