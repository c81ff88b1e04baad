"""
OTPSendEvent model - one row per SMS delivery attempt.

Counting these rows over a time window is the database rate-limit
backend, so the limit holds no matter which instance served the request.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index

from ..db import Base
from ._ids import new_id


class SendKind:
    ISSUED = "issued"
    RESENT = "resent"


class OTPSendEvent(Base):
    __tablename__ = "otp_send_events"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(20), nullable=False)
    ip = Column(String(64), nullable=False)
    challenge_id = Column(String(36), ForeignKey("otp_challenges.id"), nullable=False)
    kind = Column(String(10), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_otp_send_events_phone_created", "phone", "created_at"),
        Index("ix_otp_send_events_ip_created", "ip", "created_at"),
    )
