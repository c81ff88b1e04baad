"""
OTP code generation and keyed hashing.

Codes are 4 digits drawn from `secrets`; only the HMAC-SHA256 of a code
is ever stored. Every function that needs the signing key raises
ServerMisconfigured when it is missing instead of hashing with a default.
"""
import hashlib
import hmac
import logging
import secrets
from typing import Optional

from ...core.config import settings
from ...errors import ServerMisconfigured

logger = logging.getLogger(__name__)

OTP_MIN = 1000
OTP_MAX = 9999


def generate_otp_code() -> str:
    """Uniform 4-digit code in [1000, 9999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def _signing_key() -> bytes:
    key = settings.OTP_SIGNING_KEY
    if not key:
        logger.error("[OTP] OTP_SIGNING_KEY is not configured; refusing to hash codes")
        raise ServerMisconfigured("OTP_SIGNING_KEY is not configured")
    return key.encode()


def sign_otp_code(code: str) -> str:
    """Hex HMAC-SHA256 of the code under OTP_SIGNING_KEY."""
    return hmac.new(_signing_key(), code.encode(), hashlib.sha256).hexdigest()


def ensure_signing_key():
    """Fail fast (ServerMisconfigured) before any OTP work when the key is missing."""
    _signing_key()


def codes_match(code: str, otp_hash: str) -> bool:
    """Constant-time comparison of a submitted code against a stored hash."""
    return hmac.compare_digest(sign_otp_code(code), otp_hash)


def recover_otp_code(otp_hash: str) -> Optional[str]:
    """
    Find the code behind a stored hash.

    Used by the silent resend path so the same code can be delivered again
    without ever persisting it. The search covers the 9000-code space and
    is only possible with the signing key. Worst case is 9000 HMACs (a few
    milliseconds); async callers run it in a worker thread.
    """
    key = _signing_key()
    for candidate in range(OTP_MIN, OTP_MAX + 1):
        code = str(candidate)
        digest = hmac.new(key, code.encode(), hashlib.sha256).hexdigest()
        if hmac.compare_digest(digest, otp_hash):
            return code
    return None
