"""
Rate limiting for OTP sends.

Windows (defaults):
- issued per phone: 5 / hour
- issued per IP: 20 / hour
- any delivery (issued or resent) per phone: 3 / 10 min

State lives in shared stores only. Every send writes an OTPSendEvent row;
the database backend counts those rows. With RATE_LIMIT_BACKEND=redis the
counts come from Redis sorted sets instead, and a Redis failure falls back
to the database counts.
"""
import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

import redis
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...core.config import settings
from ...models import OTPSendEvent, SendKind

logger = logging.getLogger(__name__)

HOUR_SECONDS = 3600


class RateLimitService:
    """
    Admits or denies OTP sends.

    A denial is never shown to the caller; the send path turns it into a
    normal-looking success.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._redis = redis_client

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "database"

    @staticmethod
    def _short_window_seconds() -> int:
        return settings.OTP_SHORT_WINDOW_MINUTES * 60

    def _windows(self, phone: str, ip: str):
        """(label, redis key, db filter, limit, window seconds) per window."""
        return [
            (
                "phone_hourly",
                f"rate_limit:otp:issued:phone:{phone}",
                (OTPSendEvent.phone == phone, OTPSendEvent.kind == SendKind.ISSUED),
                settings.OTP_SEND_LIMIT_PER_HOUR,
                HOUR_SECONDS,
            ),
            (
                "ip_hourly",
                f"rate_limit:otp:issued:ip:{ip}",
                (OTPSendEvent.ip == ip, OTPSendEvent.kind == SendKind.ISSUED),
                settings.OTP_SEND_LIMIT_PER_IP_HOUR,
                HOUR_SECONDS,
            ),
            (
                "phone_short",
                f"rate_limit:otp:sent:phone:{phone}",
                (OTPSendEvent.phone == phone,),
                settings.OTP_SHORT_WINDOW_LIMIT,
                self._short_window_seconds(),
            ),
        ]

    def _count_redis(self, key: str, window_seconds: int) -> Optional[int]:
        """Count entries in a sliding window. Returns None if Redis is unavailable."""
        if self._redis is None:
            return None
        try:
            now = time.time()
            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - window_seconds)
            pipe.zcard(key)
            pipe.expire(key, window_seconds)
            _, count, _ = pipe.execute()
            return int(count)
        except redis.RedisError as e:
            logger.warning(f"Redis rate limit check failed, counting send events in the database: {e}")
            return None

    @staticmethod
    def _count_db(db: Session, filters, window_seconds: int, now: datetime) -> int:
        since = now - timedelta(seconds=window_seconds)
        return (
            db.query(func.count(OTPSendEvent.id))
            .filter(*filters, OTPSendEvent.created_at > since)
            .scalar()
        ) or 0

    def check_send_allowed(
        self,
        db: Session,
        phone: str,
        ip: str,
        now: Optional[datetime] = None,
    ) -> Tuple[bool, Optional[str]]:
        """
        Check whether another OTP may be sent.

        Args:
            db: Database session
            phone: Normalized phone number (E.164)
            ip: Client IP address
            now: Reference time (naive UTC)

        Returns:
            Tuple of (allowed, name of the window that denied)
        """
        now = now or datetime.utcnow()
        for label, key, filters, limit, window_seconds in self._windows(phone, ip):
            count = self._count_redis(key, window_seconds)
            if count is None:
                count = self._count_db(db, filters, window_seconds, now)
            if count >= limit:
                logger.info(f"[OTP][RateLimit] {label} limit reached ({count}/{limit})")
                return False, label
        return True, None

    def record_send(
        self,
        db: Session,
        phone: str,
        ip: str,
        challenge_id: str,
        kind: str,
        now: Optional[datetime] = None,
    ) -> OTPSendEvent:
        """
        Record a delivery. The event row joins the caller's transaction;
        Redis counters (if enabled) are updated immediately.
        """
        now = now or datetime.utcnow()
        event = OTPSendEvent(
            phone=phone,
            ip=ip,
            challenge_id=challenge_id,
            kind=kind,
            created_at=now,
        )
        db.add(event)

        if self._redis is not None:
            keys = [(f"rate_limit:otp:sent:phone:{phone}", self._short_window_seconds())]
            if kind == SendKind.ISSUED:
                keys.append((f"rate_limit:otp:issued:phone:{phone}", HOUR_SECONDS))
                keys.append((f"rate_limit:otp:issued:ip:{ip}", HOUR_SECONDS))
            try:
                ts = time.time()
                pipe = self._redis.pipeline()
                for key, window_seconds in keys:
                    pipe.zadd(key, {f"{ts}:{uuid.uuid4().hex}": ts})
                    pipe.expire(key, window_seconds)
                pipe.execute()
            except redis.RedisError as e:
                logger.warning(f"Redis send record failed (database event still written): {e}")
        return event


# Global singleton instance
_rate_limit_service: Optional[RateLimitService] = None


def get_rate_limit_service() -> RateLimitService:
    """Get or create rate limit service singleton"""
    global _rate_limit_service
    if _rate_limit_service is None:
        redis_client = None
        if settings.redis_enabled:
            try:
                redis_client = redis.from_url(
                    settings.REDIS_URL,
                    decode_responses=True,
                    socket_connect_timeout=3,
                    socket_timeout=3,
                )
                redis_client.ping()
                logger.info("Redis rate limiting enabled")
            except redis.RedisError as e:
                logger.warning(f"Failed to initialize Redis for rate limiting, counting in the database: {e}")
                redis_client = None
        _rate_limit_service = RateLimitService(redis_client=redis_client)
    return _rate_limit_service


def reset_rate_limit_service():
    global _rate_limit_service
    _rate_limit_service = None
