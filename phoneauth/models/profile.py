"""
Profile model - one row per verified phone number.
"""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime

from ..db import Base
from ._ids import new_id


class ProfileRole:
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"

    ALL = (USER, AGENT, ADMIN)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(20), nullable=False, unique=True, index=True)  # E.164, e.g. +919876543210
    full_name = Column(String(200), nullable=True)
    # Changed only by privileged operations outside the OTP flow
    role = Column(String(20), nullable=False, default=ProfileRole.USER)
    phone_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "phone": self.phone,
            "fullName": self.full_name,
            "role": self.role,
            "phoneVerified": self.phone_verified,
            "verifiedAt": self.verified_at.isoformat() if self.verified_at else None,
        }
