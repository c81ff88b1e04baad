"""
Session issuance, validation and revocation.

Two read tiers:
- peek_session(): cookie signature only. Good enough for UI hints.
- validate_session(): cookie plus the latest AuthSession row for the
  profile. Every guard that gates data uses this one.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..errors import SessionInvalid
from ..models import AuthSession, Profile
from ..security.cookies import encode_session_cookie, decode_session_cookie
from .auth.audit import AuditService

logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    profile_id: str
    role: str  # role claimed by the cookie; guards re-read the profile
    created_at: str
    session: AuthSession

    def to_dict(self):
        return {
            "profileId": self.profile_id,
            "role": self.role,
            "createdAt": self.created_at,
            "sessionId": self.session.id,
            "expiresAt": self.session.expires_at.isoformat(),
        }


def issue_session(
    db: Session,
    profile: Profile,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[AuthSession, str]:
    """
    Write a session row and mint the matching cookie value.

    Returns:
        (auth_session, cookie_value)
    """
    now = now or datetime.utcnow()
    auth_session = AuthSession(
        profile_id=profile.id,
        ip=ip,
        user_agent=user_agent,
        created_at=now,
        expires_at=now + settings.session_ttl,
        revoked=False,
    )
    db.add(auth_session)
    db.commit()

    cookie_value = encode_session_cookie(profile.id, profile.role, now.isoformat() + "Z")
    AuditService.log_session("issued", profile.id, session_id=auth_session.id)
    return auth_session, cookie_value


def peek_session(cookie_value: Optional[str]) -> Optional[Dict[str, Any]]:
    """Cookie-only read. Never use for authorization."""
    return decode_session_cookie(cookie_value)


def latest_session(db: Session, profile_id: str) -> Optional[AuthSession]:
    return (
        db.query(AuthSession)
        .filter(AuthSession.profile_id == profile_id)
        .order_by(AuthSession.created_at.desc())
        .first()
    )


def validate_session(
    db: Session,
    cookie_value: Optional[str],
    now: Optional[datetime] = None,
) -> SessionInfo:
    """
    Validate a cookie against the durable session record.

    Raises:
        SessionInvalid: reason is one of invalid_cookie, session_missing,
            revoked, expired
    """
    now = now or datetime.utcnow()
    if not cookie_value:
        raise SessionInvalid(SessionInvalid.MISSING)

    payload = decode_session_cookie(cookie_value)
    if payload is None:
        raise SessionInvalid(SessionInvalid.INVALID_COOKIE)

    profile_id = payload["profileId"]
    auth_session = latest_session(db, profile_id)
    if auth_session is None:
        reason = SessionInvalid.MISSING
    elif auth_session.revoked:
        reason = SessionInvalid.REVOKED
    elif auth_session.expires_at <= now:
        reason = SessionInvalid.EXPIRED
    else:
        return SessionInfo(
            profile_id=profile_id,
            role=payload["role"],
            created_at=payload["createdAt"],
            session=auth_session,
        )

    AuditService.log_session("rejected", profile_id, reason=reason)
    raise SessionInvalid(reason)


def revoke_latest_session(db: Session, profile_id: str, now: Optional[datetime] = None) -> Optional[AuthSession]:
    """Revoke the profile's current session (logout). Returns the revoked row, if any."""
    now = now or datetime.utcnow()
    auth_session = latest_session(db, profile_id)
    if auth_session is None or auth_session.revoked:
        return None
    auth_session.revoke(now)
    db.commit()
    AuditService.log_session("revoked", profile_id, session_id=auth_session.id)
    return auth_session


def revoke_session_by_id(db: Session, session_id: str, now: Optional[datetime] = None) -> Optional[AuthSession]:
    now = now or datetime.utcnow()
    auth_session = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if auth_session is None:
        return None
    if not auth_session.revoked:
        auth_session.revoke(now)
        db.commit()
        AuditService.log_session("revoked", auth_session.profile_id, session_id=auth_session.id)
    return auth_session
