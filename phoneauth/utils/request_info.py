"""
Client identity helpers for request handlers.
"""
from typing import Optional

from starlette.requests import Request

UNKNOWN_IP = "0.0.0.0"


def get_client_ip(request: Request) -> str:
    """
    Resolve the caller's IP.

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer, 0.0.0.0.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IP


def get_user_agent(request: Request) -> Optional[str]:
    user_agent = request.headers.get("user-agent")
    return user_agent[:512] if user_agent else None


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)
