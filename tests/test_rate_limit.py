"""
Tests for OTP send rate limiting (database and Redis backends)
"""
from datetime import datetime, timedelta

import redis

from phoneauth.core.config import settings
from phoneauth.models import OTPChallenge, OTPSendEvent, SendKind
from phoneauth.services.auth.rate_limit import RateLimitService
from tests.conftest import PHONE_E164

OTHER_E164 = "+919845012345"
IP = "203.0.113.7"


def _challenge(db, phone=PHONE_E164, created_at=None):
    created_at = created_at or datetime.utcnow()
    challenge = OTPChallenge(
        phone=phone,
        otp_hash="0" * 64,
        created_at=created_at,
        expires_at=created_at + timedelta(minutes=5),
        consumed=True,
    )
    db.add(challenge)
    db.flush()
    return challenge


def _events(db, count, minutes_ago, phone=PHONE_E164, ip=IP, kind=SendKind.ISSUED):
    now = datetime.utcnow()
    for i in range(count):
        at = now - timedelta(minutes=minutes_ago, seconds=i)
        challenge = _challenge(db, phone=phone, created_at=at)
        db.add(OTPSendEvent(phone=phone, ip=ip, challenge_id=challenge.id, kind=kind, created_at=at))
    db.flush()


def test_allows_first_send(db, rate_limiter):
    assert rate_limiter.check_send_allowed(db, PHONE_E164, IP) == (True, None)


def test_short_window_counts_resends(db, rate_limiter):
    _events(db, 1, minutes_ago=1)
    _events(db, 2, minutes_ago=2, kind=SendKind.RESENT)
    allowed, window = rate_limiter.check_send_allowed(db, PHONE_E164, IP)
    assert allowed is False
    assert window == "phone_short"


def test_short_window_slides(db, rate_limiter):
    _events(db, 3, minutes_ago=settings.OTP_SHORT_WINDOW_MINUTES + 1)
    assert rate_limiter.check_send_allowed(db, PHONE_E164, IP) == (True, None)


def test_hourly_phone_limit(db, rate_limiter):
    # Spread outside the short window so only the hourly limit applies
    _events(db, 5, minutes_ago=30)
    allowed, window = rate_limiter.check_send_allowed(db, PHONE_E164, IP)
    assert allowed is False
    assert window == "phone_hourly"


def test_hourly_phone_limit_ignores_resends(db, rate_limiter):
    _events(db, 4, minutes_ago=30)
    _events(db, 2, minutes_ago=40, kind=SendKind.RESENT)
    assert rate_limiter.check_send_allowed(db, PHONE_E164, IP) == (True, None)


def test_hourly_phone_limit_expires(db, rate_limiter):
    _events(db, 5, minutes_ago=61)
    assert rate_limiter.check_send_allowed(db, PHONE_E164, IP) == (True, None)


def test_ip_limit_spans_phones(db, rate_limiter):
    base = 9820010000
    for i in range(settings.OTP_SEND_LIMIT_PER_IP_HOUR):
        _events(db, 1, minutes_ago=20, phone=f"+91{base + i}")
    allowed, window = rate_limiter.check_send_allowed(db, OTHER_E164, IP)
    assert allowed is False
    assert window == "ip_hourly"
    # Same phone from another IP is still fine
    assert rate_limiter.check_send_allowed(db, OTHER_E164, "198.51.100.1") == (True, None)


def test_record_send_writes_event(db, rate_limiter):
    challenge = _challenge(db)
    event = rate_limiter.record_send(db, PHONE_E164, IP, challenge.id, SendKind.ISSUED)
    db.flush()
    assert event.id is not None
    stored = db.query(OTPSendEvent).filter(OTPSendEvent.challenge_id == challenge.id).one()
    assert stored.kind == SendKind.ISSUED
    assert stored.ip == IP


class FakePipeline:
    def __init__(self, store):
        self.store = store
        self.ops = []

    def zremrangebyscore(self, key, low, high):
        self.ops.append(("zrem", key, low, high))
        return self

    def zcard(self, key):
        self.ops.append(("zcard", key))
        return self

    def expire(self, key, seconds):
        self.ops.append(("expire", key))
        return self

    def zadd(self, key, mapping):
        self.ops.append(("zadd", key, mapping))
        return self

    def execute(self):
        results = []
        for op in self.ops:
            if op[0] == "zrem":
                _, key, low, high = op
                entries = self.store.setdefault(key, {})
                for member in [m for m, score in entries.items() if low <= score <= high]:
                    del entries[member]
                results.append(0)
            elif op[0] == "zcard":
                results.append(len(self.store.get(op[1], {})))
            elif op[0] == "zadd":
                self.store.setdefault(op[1], {}).update(op[2])
                results.append(1)
            else:
                results.append(True)
        self.ops = []
        return results


class FakeRedis:
    def __init__(self):
        self.store = {}

    def pipeline(self):
        return FakePipeline(self.store)


class BrokenRedis:
    def pipeline(self):
        raise redis.ConnectionError("connection refused")


def test_redis_backend_counts_shared_sorted_sets(db):
    fake = FakeRedis()
    limiter = RateLimitService(redis_client=fake)
    assert limiter.backend == "redis"
    for _ in range(3):
        challenge = _challenge(db)
        limiter.record_send(db, PHONE_E164, IP, challenge.id, SendKind.ISSUED)

    # A second instance sharing the store sees the same counts
    other_instance = RateLimitService(redis_client=fake)
    allowed, window = other_instance.check_send_allowed(db, PHONE_E164, IP)
    assert allowed is False
    assert window == "phone_short"


def test_redis_failure_falls_back_to_database(db):
    limiter = RateLimitService(redis_client=BrokenRedis())
    assert limiter.check_send_allowed(db, PHONE_E164, IP) == (True, None)

    _events(db, 3, minutes_ago=1)
    allowed, window = limiter.check_send_allowed(db, PHONE_E164, IP)
    assert allowed is False
    assert window == "phone_short"

    # Recording still writes the database event
    challenge = _challenge(db)
    limiter.record_send(db, PHONE_E164, IP, challenge.id, SendKind.RESENT)
    db.flush()
    assert db.query(OTPSendEvent).filter(OTPSendEvent.challenge_id == challenge.id).count() == 1
