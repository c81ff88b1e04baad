"""
OTP SMS templates per request context.
"""
from ...core.config import settings
from ...models import OTPContext


def render_otp_message(context: str, code: str) -> str:
    """Render the SMS body for a code. Unknown contexts use the login wording."""
    minutes = settings.OTP_TTL_MINUTES
    brand = settings.SMS_BRAND_NAME
    if context == OTPContext.REGISTRATION:
        return (
            f"One time OTP for your registration is {code}.\n"
            f"This OTP is valid for {minutes} minutes.\n"
            f"By giving this OTP you are agreeing to the {settings.SMS_TERMS_SITE} T&C.\n"
            f"- {brand}"
        )
    return (
        f"Your login code is {code}.\n"
        f"This code is valid for {minutes} minutes.\n"
        "Do not share this code with anyone.\n"
        f"- {brand}"
    )
