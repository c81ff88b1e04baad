"""
Typed access context resolved once per request.

Guards ask "does this context satisfy X" instead of comparing role
strings. The profile's role is read from the database, never from the
cookie, so a demoted admin loses access on the next request.
"""
import enum
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from ..core.config import settings
from ..errors import SessionInvalid
from ..models import Profile, ProfileRole
from ..services.session_service import validate_session

logger = logging.getLogger(__name__)

INTERNAL_SECRET_HEADER = "x-internal-secret"


class Capability(str, enum.Enum):
    GUEST = "guest"
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"
    INTERNAL_SERVICE = "internal_service"


_ROLE_CAPABILITY = {
    ProfileRole.USER: Capability.USER,
    ProfileRole.AGENT: Capability.AGENT,
    ProfileRole.ADMIN: Capability.ADMIN,
}


@dataclass(frozen=True)
class AccessContext:
    capability: Capability
    profile_id: Optional[str] = None
    session_id: Optional[str] = None
    # Why a guest is a guest (SessionInvalid reason); None for authenticated contexts
    guest_reason: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.capability not in (Capability.GUEST, Capability.INTERNAL_SERVICE)

    @property
    def is_internal(self) -> bool:
        return self.capability == Capability.INTERNAL_SERVICE

    @classmethod
    def guest(cls, reason: str) -> "AccessContext":
        return cls(capability=Capability.GUEST, guest_reason=reason)


def has_internal_secret(request: Request) -> bool:
    """Constant-time check of the server-to-server header. Off when no secret is configured."""
    expected = settings.INTERNAL_ADMIN_SECRET
    provided = request.headers.get(INTERNAL_SECRET_HEADER)
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def resolve_access(db: Session, request: Request, now: Optional[datetime] = None) -> AccessContext:
    if has_internal_secret(request):
        logger.info(f"[Access] Internal service call to {request.url.path}")
        return AccessContext(capability=Capability.INTERNAL_SERVICE)

    try:
        info = validate_session(db, request.cookies.get(settings.SESSION_COOKIE_NAME), now=now)
    except SessionInvalid as e:
        return AccessContext.guest(e.reason)

    profile = db.query(Profile).filter(Profile.id == info.profile_id).first()
    if profile is None:
        return AccessContext.guest(SessionInvalid.MISSING)

    capability = _ROLE_CAPABILITY.get(profile.role)
    if capability is None:
        logger.warning(f"[Access] Profile {profile.id} has unknown role {profile.role!r}")
        return AccessContext.guest(SessionInvalid.INVALID_COOKIE)

    return AccessContext(
        capability=capability,
        profile_id=profile.id,
        session_id=info.session.id,
    )
