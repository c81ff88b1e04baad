"""
Structured audit logging service for authentication events
"""
import logging
import json
from typing import Optional
from datetime import datetime

from ...core.env import get_env_name

logger = logging.getLogger(__name__)


class AuditService:
    """
    Structured audit logging service for authentication events.

    Never logs codes or full phone numbers.
    """

    @staticmethod
    def _log_audit_event(
        event_type: str,
        outcome: str,
        request_id: Optional[str] = None,
        phone_last4: Optional[str] = None,
        ip: Optional[str] = None,
        error: Optional[str] = None,
        **kwargs
    ):
        audit_data = {
            "event_type": event_type,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "outcome": outcome,
            "env": get_env_name(),
        }
        if request_id:
            audit_data["request_id"] = request_id
        if phone_last4:
            audit_data["phone_last4"] = phone_last4
        if ip:
            audit_data["ip"] = ip
        if error:
            audit_data["error"] = error
        audit_data.update({k: v for k, v in kwargs.items() if v is not None})

        logger.info(f"[Auth][Audit] {json.dumps(audit_data)}")

    @staticmethod
    def log_otp_send(outcome: str, phone_last4=None, ip=None, request_id=None, reason=None, challenge_id=None):
        """outcome: issued, resent, rate_limited, invalid_phone, delivery_failed, error"""
        AuditService._log_audit_event(
            "otp_send",
            outcome,
            request_id=request_id,
            phone_last4=phone_last4,
            ip=ip,
            error=reason,
            challenge_id=challenge_id,
        )

    @staticmethod
    def log_otp_verify(outcome: str, phone_last4=None, ip=None, request_id=None, reason=None, profile_id=None, is_new_profile=None):
        """outcome: success or fail"""
        AuditService._log_audit_event(
            "otp_verify",
            outcome,
            request_id=request_id,
            phone_last4=phone_last4,
            ip=ip,
            error=reason,
            profile_id=profile_id,
            is_new_profile=is_new_profile,
        )

    @staticmethod
    def log_session(event: str, profile_id: str, session_id: Optional[str] = None, reason: Optional[str] = None):
        """event: issued, revoked, rejected"""
        AuditService._log_audit_event(
            f"session_{event}",
            "fail" if event == "rejected" else "success",
            error=reason,
            profile_id=profile_id,
            session_id=session_id,
        )

    @staticmethod
    def log_access_denied(path: str, required: str, actual: str, profile_id: Optional[str] = None):
        AuditService._log_audit_event(
            "access_denied",
            "blocked",
            path=path,
            required=required,
            actual=actual,
            profile_id=profile_id,
        )
