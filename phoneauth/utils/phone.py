"""
Phone number normalization and validation utilities

E.164 (+919820012345) is the only canonical form. It keys OTP challenges,
send events and profiles, so equal national numbers in different
countries never share an identity.

Region policy: Indian numbers must be valid mobiles and pass the
fake-number rules below. Numbers from other regions only need to be
possible numbers for their country.
"""
import re
from typing import Tuple

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from ..core.config import settings

INDIA_COUNTRY_CODE = 91

_REPEATED_DIGIT = re.compile(r"^(\d)\1+$")


def _is_run(digits: str, step: int) -> bool:
    return all(int(b) - int(a) == step for a, b in zip(digits, digits[1:]))


def _check_indian_mobile(national: str):
    """
    Reject numbers that parse as valid but are obviously fake.

    Raises:
        ValueError: If the number fails one of the mobile rules
    """
    if len(national) != 10:
        raise ValueError("Mobile number must be exactly 10 digits")
    if national[0] not in "6789":
        raise ValueError("Mobile number must start with 6, 7, 8, or 9")
    if _REPEATED_DIGIT.match(national):
        raise ValueError("Invalid mobile number (repetitive sequence)")
    if _is_run(national, 1):
        raise ValueError("Invalid mobile number (ascending sequence)")
    if _is_run(national, -1):
        raise ValueError("Invalid mobile number (descending sequence)")


def _parse(phone: str, default_region: str) -> phonenumbers.PhoneNumber:
    if not phone or not phone.strip():
        raise ValueError("Phone number is required")
    try:
        parsed = phonenumbers.parse(phone.strip(), default_region)
    except NumberParseException as e:
        raise ValueError(f"Invalid phone number format: {str(e)}")

    if parsed.country_code == INDIA_COUNTRY_CODE:
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError("Invalid phone number")
        _check_indian_mobile(str(parsed.national_number))
    elif not phonenumbers.is_possible_number(parsed):
        raise ValueError("Invalid phone number")
    return parsed


def normalize_phone(phone: str, default_region: str = None) -> str:
    """
    Normalize phone number to E.164 format.

    Args:
        phone: Phone number string (can be in various formats)
        default_region: Region used when no country code is present
            (default: settings.DEFAULT_PHONE_REGION)

    Returns:
        Normalized phone number in E.164 format (e.g., +919820012345)

    Raises:
        ValueError: If phone number is invalid
    """
    parsed = _parse(phone, default_region or settings.DEFAULT_PHONE_REGION)
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def validate_phone(phone: str, default_region: str = None) -> bool:
    """Validate phone number without raising exception."""
    try:
        normalize_phone(phone, default_region)
        return True
    except ValueError:
        return False


def get_phone_last4(phone: str) -> str:
    """
    Get last 4 digits of phone number for safe logging.

    Returns:
        Last 4 digits as string, or all digits if fewer than 4
    """
    digits = ''.join(filter(str.isdigit, phone or ""))
    return digits[-4:]


def parse_phone(phone: str, default_region: str = None) -> Tuple[str, str, str]:
    """
    Parse phone number and return (e164, national_number, last4).

    Raises:
        ValueError: If phone number is invalid
    """
    parsed = _parse(phone, default_region or settings.DEFAULT_PHONE_REGION)
    e164 = phonenumbers.format_number(parsed, PhoneNumberFormat.E164)
    return e164, str(parsed.national_number), get_phone_last4(e164)
