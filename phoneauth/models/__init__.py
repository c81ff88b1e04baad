"""
Models package
"""
from .profile import Profile, ProfileRole
from .otp_challenge import OTPChallenge, ConsumedReason, OTPContext
from .otp_send_event import OTPSendEvent, SendKind
from .auth_session import AuthSession

__all__ = [
    "Profile",
    "ProfileRole",
    "OTPChallenge",
    "ConsumedReason",
    "OTPContext",
    "OTPSendEvent",
    "SendKind",
    "AuthSession",
]
