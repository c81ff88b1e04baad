"""
OTPChallenge model - one issued code for a phone.

Lifecycle:
    issued -> reused (silent resend, row unchanged apart from resend_count)
    issued -> superseded | verified | expired | exhausted (consumed = True)

Rows are never deleted; they back rate limiting and audit.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Index

from ..db import Base
from ._ids import new_id


class OTPContext:
    REGISTRATION = "registration"
    LOGIN = "login"

    ALL = (REGISTRATION, LOGIN)


class ConsumedReason:
    SUPERSEDED = "superseded"
    VERIFIED = "verified"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class OTPChallenge(Base):
    __tablename__ = "otp_challenges"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(20), nullable=False, index=True)  # E.164 format
    otp_hash = Column(String(64), nullable=False)  # hex HMAC-SHA256, never the plaintext code
    context = Column(String(20), nullable=False, default=OTPContext.LOGIN)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)
    consumed_reason = Column(String(20), nullable=True)
    verify_attempts = Column(Integer, nullable=False, default=0)
    resend_count = Column(Integer, nullable=False, default=0)
    ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)

    __table_args__ = (
        Index("ix_otp_challenges_phone_consumed_created", "phone", "consumed", "created_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def consume(self, reason: str):
        self.consumed = True
        self.consumed_reason = reason

    def to_dict(self):
        """Admin listing shape. The hash is deliberately omitted."""
        return {
            "id": self.id,
            "phone": self.phone,
            "context": self.context,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "consumed": self.consumed,
            "consumedReason": self.consumed_reason,
            "verifyAttempts": self.verify_attempts,
            "resendCount": self.resend_count,
            "ip": self.ip,
            "profileId": self.profile_id,
        }
