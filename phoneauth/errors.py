"""
Auth error taxonomy.

Each error carries the client-facing `code` and HTTP status. The exception
handler in `exception_handlers` renders them as {"success": false, "code": ...};
messages stay server-side.
"""
from typing import Optional


class AuthError(Exception):
    code = "AUTH_ERROR"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidRequest(AuthError):
    """Malformed input. Never says whether an account exists."""
    code = "INVALID_REQUEST"
    status_code = 400


class RateLimited(AuthError):
    """Raised internally by the send path; callers always see success."""
    code = "RATE_LIMITED"
    status_code = 429


class InvalidOtp(AuthError):
    """No challenge, wrong code and exhausted attempts all collapse here."""
    code = "INVALID_OTP"
    status_code = 400


class ExpiredOtp(AuthError):
    code = "EXPIRED_OTP"
    status_code = 400


class IpMismatch(AuthError):
    code = "IP_MISMATCH"
    status_code = 400


class SessionInvalid(AuthError):
    code = "SESSION_INVALID"
    status_code = 401

    MISSING = "session_missing"
    REVOKED = "revoked"
    EXPIRED = "expired"
    INVALID_COOKIE = "invalid_cookie"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"session invalid: {reason}")
        self.reason = reason


class Forbidden(AuthError):
    code = "FORBIDDEN"
    status_code = 403


class ServerMisconfigured(AuthError):
    code = "SERVER_MISCONFIGURED"
    status_code = 500
