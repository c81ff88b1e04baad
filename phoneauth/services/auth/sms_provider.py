"""
Abstract SMS delivery interface
"""
from abc import ABC, abstractmethod


class SMSProvider(ABC):
    """Abstract base class for SMS delivery gateways"""

    name = "abstract"

    @abstractmethod
    async def send_message(self, phone: str, message: str) -> bool:
        """
        Deliver a text message.

        Args:
            phone: Normalized phone number in E.164 format
            message: Fully rendered SMS body

        Returns:
            True if the gateway accepted the message
        """
        pass
