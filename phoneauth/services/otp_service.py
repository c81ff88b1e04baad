"""
OTP challenge lifecycle: issue, silent resend, supersede, verify.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..errors import InvalidRequest, RateLimited, InvalidOtp, ExpiredOtp, IpMismatch
from ..models import OTPChallenge, OTPContext, ConsumedReason, SendKind, Profile
from ..utils.phone import normalize_phone, get_phone_last4
from .auth import (
    AuditService,
    RateLimitService,
    SMSProvider,
    get_rate_limit_service,
    get_sms_provider,
    render_otp_message,
    generate_otp_code,
    sign_otp_code,
    codes_match,
    recover_otp_code,
    ensure_signing_key,
)

logger = logging.getLogger(__name__)

_OTP_FORMAT = re.compile(r"^\d{4}$")


@dataclass
class OTPSendResult:
    """What happened on the send path. Never shown to the caller except `code` in dev."""
    challenge_id: str
    kind: str  # SendKind
    delivered: bool
    code: Optional[str] = None


class OTPService:
    """
    Issues and verifies phone OTP challenges.

    At most one unconsumed challenge exists per phone. A request while one
    is live resends the same code; otherwise all older unconsumed rows are
    consumed and the new challenge is inserted in the same transaction.
    """

    @staticmethod
    def _latest_unconsumed(db: Session, phone: str, lock: bool = False):
        query = (
            db.query(OTPChallenge)
            .filter(OTPChallenge.phone == phone, OTPChallenge.consumed == False)  # noqa: E712
            .order_by(OTPChallenge.created_at.desc())
        )
        if lock:
            # Serializes concurrent sends for one phone on PostgreSQL; no-op on SQLite
            query = query.with_for_update()
        return query

    @staticmethod
    async def send_otp(
        db: Session,
        phone: str,
        ip: str,
        user_agent: Optional[str] = None,
        profile_id: Optional[str] = None,
        context: str = OTPContext.LOGIN,
        request_id: Optional[str] = None,
        now: Optional[datetime] = None,
        rate_limiter: Optional[RateLimitService] = None,
        provider: Optional[SMSProvider] = None,
    ) -> OTPSendResult:
        """
        Issue (or silently resend) an OTP for a phone.

        Raises:
            InvalidRequest: phone does not normalize
            ServerMisconfigured: OTP_SIGNING_KEY missing
            RateLimited: a send window is full

        The HTTP layer converts every one of these into the same success
        response; they exist so the reason reaches logs and tests.
        """
        now = now or datetime.utcnow()
        if context not in OTPContext.ALL:
            context = OTPContext.LOGIN

        try:
            normalized_phone = normalize_phone(phone)
        except ValueError as e:
            AuditService.log_otp_send("invalid_phone", ip=ip, request_id=request_id, reason=str(e))
            raise InvalidRequest(f"Invalid phone number: {e}")

        phone_last4 = get_phone_last4(normalized_phone)
        ensure_signing_key()

        rate_limiter = rate_limiter or get_rate_limit_service()
        allowed, window = rate_limiter.check_send_allowed(db, normalized_phone, ip, now=now)
        if not allowed:
            AuditService.log_otp_send(
                "rate_limited", phone_last4=phone_last4, ip=ip, request_id=request_id, reason=window
            )
            raise RateLimited(f"OTP send limit reached: {window}")

        if profile_id and db.query(Profile.id).filter(Profile.id == profile_id).first() is None:
            logger.info(f"[OTP] Ignoring unknown profileId for ***{phone_last4}")
            profile_id = None

        try:
            challenges = OTPService._latest_unconsumed(db, normalized_phone, lock=True).all()
            current = challenges[0] if challenges else None

            code = None
            if current is not None and not current.is_expired(now):
                code = await asyncio.to_thread(recover_otp_code, current.otp_hash)
                if code is None:
                    logger.warning(f"[OTP] Live challenge for ***{phone_last4} no longer matches the signing key")

            if code is not None:
                # Silent resend: same code, expiry and attempt counter untouched
                current.resend_count = (current.resend_count or 0) + 1
                challenge = current
                kind = SendKind.RESENT
            else:
                for stale in challenges:
                    stale.consume(ConsumedReason.EXPIRED if stale.is_expired(now) else ConsumedReason.SUPERSEDED)
                code = generate_otp_code()
                challenge = OTPChallenge(
                    phone=normalized_phone,
                    otp_hash=sign_otp_code(code),
                    context=context,
                    created_at=now,
                    expires_at=now + settings.otp_ttl,
                    consumed=False,
                    verify_attempts=0,
                    resend_count=0,
                    ip=ip,
                    user_agent=user_agent,
                    profile_id=profile_id,
                )
                db.add(challenge)
                db.flush()
                kind = SendKind.ISSUED

            rate_limiter.record_send(db, normalized_phone, ip, challenge.id, kind, now=now)
            db.commit()
        except Exception:
            db.rollback()
            raise

        delivered = False
        try:
            provider = provider or get_sms_provider()
            delivered = await provider.send_message(normalized_phone, render_otp_message(context, code))
        except Exception as e:
            # The challenge stands; the user can ask for a resend
            logger.error(f"[OTP] Delivery failed for ***{phone_last4}: {e}", exc_info=True)

        AuditService.log_otp_send(
            kind if delivered else "delivery_failed",
            phone_last4=phone_last4,
            ip=ip,
            request_id=request_id,
            challenge_id=challenge.id,
        )
        return OTPSendResult(challenge_id=challenge.id, kind=kind, delivered=delivered, code=code)

    @staticmethod
    def verify_otp(
        db: Session,
        phone: str,
        code: str,
        ip: Optional[str] = None,
        request_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OTPChallenge:
        """
        Check a submitted code against the phone's live challenge.

        Returns:
            The challenge, consumed with reason "verified"

        Raises:
            InvalidRequest: missing/malformed phone or code
            IpMismatch: IP binding enabled and the IP differs from issuance
            ExpiredOtp: challenge past its expiry (it is consumed)
            InvalidOtp: no live challenge, wrong code, or attempts exhausted
        """
        now = now or datetime.utcnow()
        code = (code or "").strip()
        if not phone or not _OTP_FORMAT.match(code):
            raise InvalidRequest("phone and a 4-digit otp are required")

        try:
            normalized_phone = normalize_phone(phone)
        except ValueError as e:
            raise InvalidRequest(f"Invalid phone number: {e}")
        phone_last4 = get_phone_last4(normalized_phone)

        def _fail(exc):
            AuditService.log_otp_verify(
                "fail", phone_last4=phone_last4, ip=ip, request_id=request_id, reason=exc.code
            )
            return exc

        challenge = OTPService._latest_unconsumed(db, normalized_phone, lock=True).first()
        if challenge is None:
            raise _fail(InvalidOtp("no active challenge"))

        if settings.OTP_ENFORCE_IP_BINDING and challenge.ip and challenge.ip != ip:
            raise _fail(IpMismatch("challenge was issued to a different IP"))

        if challenge.is_expired(now):
            challenge.consume(ConsumedReason.EXPIRED)
            db.commit()
            raise _fail(ExpiredOtp("challenge expired"))

        limit = settings.OTP_VERIFY_LIMIT_PER_CHALLENGE
        if challenge.verify_attempts >= limit:
            challenge.consume(ConsumedReason.EXHAUSTED)
            db.commit()
            raise _fail(InvalidOtp("attempts exhausted"))

        if not codes_match(code, challenge.otp_hash):
            challenge.verify_attempts += 1
            if challenge.verify_attempts >= limit:
                challenge.consume(ConsumedReason.EXHAUSTED)
            logger.warning(
                f"[OTP] Verification failed for ***{phone_last4} "
                f"(attempt {challenge.verify_attempts}/{limit})"
            )
            db.commit()
            raise _fail(InvalidOtp("code mismatch"))

        challenge.consume(ConsumedReason.VERIFIED)
        db.commit()
        logger.info(f"[OTP] Verification successful for ***{phone_last4}")
        return challenge
