"""
auth_session cookie codec.

Value format: base64url(JSON{profileId, role, createdAt}).base64url(HMAC-SHA256)
signed with SESSION_SECRET. The cookie is a hint for UI code; anything
that gates data also checks the AuthSession row.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Optional, Dict, Any

from starlette.responses import Response

from ..core.config import settings
from ..core.env import is_production_env
from ..errors import ServerMisconfigured

logger = logging.getLogger(__name__)


def _get_secret_key() -> bytes:
    secret = settings.SESSION_SECRET
    if not secret:
        logger.error("[Session] SESSION_SECRET is not configured; refusing to sign cookies")
        raise ServerMisconfigured("SESSION_SECRET is not configured")
    return secret.encode()


def _base64url_encode(data: bytes) -> str:
    """Base64 URL-safe encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def _base64url_decode(data: str) -> bytes:
    """Base64 URL-safe decode with padding restoration."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += '=' * padding
    return base64.urlsafe_b64decode(data)


def _sign(payload_b64: str) -> str:
    digest = hmac.new(_get_secret_key(), payload_b64.encode(), hashlib.sha256).digest()
    return _base64url_encode(digest)


def encode_session_cookie(profile_id: str, role: str, created_at: str) -> str:
    payload = {"profileId": profile_id, "role": role, "createdAt": created_at}
    payload_json = json.dumps(payload, separators=(',', ':'))
    payload_b64 = _base64url_encode(payload_json.encode())
    return f"{payload_b64}.{_sign(payload_b64)}"


def decode_session_cookie(value: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a cookie value.

    Returns:
        {"profileId", "role", "createdAt"} or None if missing, unsigned,
        tampered or malformed
    """
    if not value:
        return None
    parts = value.split('.')
    if len(parts) != 2:
        return None
    payload_b64, signature_b64 = parts

    expected = _sign(payload_b64)
    if not hmac.compare_digest(expected, signature_b64):
        logger.warning("[Session] Cookie signature mismatch")
        return None

    try:
        payload = json.loads(_base64url_decode(payload_b64).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(payload, dict):
        return None
    if not payload.get("profileId") or not payload.get("role") or not payload.get("createdAt"):
        return None
    return {
        "profileId": str(payload["profileId"]),
        "role": str(payload["role"]),
        "createdAt": str(payload["createdAt"]),
    }


def _should_use_secure_cookie() -> bool:
    return is_production_env()


def set_session_cookie(response: Response, value: str):
    ttl_seconds = int(settings.session_ttl.total_seconds())
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=value,
        max_age=ttl_seconds,
        expires=ttl_seconds,
        path="/",
        httponly=True,
        secure=_should_use_secure_cookie(),
        samesite="lax",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=_should_use_secure_cookie(),
        samesite="lax",
    )
