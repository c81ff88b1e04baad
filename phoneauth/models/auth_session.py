"""
AuthSession model - durable record behind the auth_session cookie.
"""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index

from ..db import Base
from ._ids import new_id


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_auth_sessions_profile_created", "profile_id", "created_at"),
    )

    def revoke(self, now: datetime):
        self.revoked = True
        self.revoked_at = now
