"""
Session issuance, cookie codec and DB-backed validation
"""
from datetime import datetime, timedelta

import pytest

from phoneauth.core.config import settings
from phoneauth.errors import SessionInvalid, ServerMisconfigured
from phoneauth.models import AuthSession, Profile
from phoneauth.security.cookies import encode_session_cookie, decode_session_cookie
from phoneauth.services.session_service import (
    issue_session,
    peek_session,
    validate_session,
    revoke_latest_session,
    revoke_session_by_id,
)
from tests.conftest import PHONE


@pytest.fixture
def profile(db):
    profile = Profile(phone=PHONE, role="user", phone_verified=True)
    db.add(profile)
    db.commit()
    return profile


def test_issue_writes_row_and_signed_cookie(db, profile):
    auth_session, cookie = issue_session(db, profile, ip="203.0.113.7", user_agent="pytest")

    assert auth_session.profile_id == profile.id
    assert auth_session.revoked is False
    assert auth_session.expires_at - auth_session.created_at == timedelta(days=settings.SESSION_TTL_DAYS)

    payload = decode_session_cookie(cookie)
    assert payload["profileId"] == profile.id
    assert payload["role"] == "user"
    assert payload["createdAt"].endswith("Z")
    assert peek_session(cookie) == payload


def test_validate_returns_latest_session(db, profile):
    issue_session(db, profile, now=datetime.utcnow() - timedelta(hours=1))
    latest, cookie = issue_session(db, profile)
    info = validate_session(db, cookie)
    assert info.session.id == latest.id
    assert info.profile_id == profile.id


@pytest.mark.parametrize("cookie", [None, ""])
def test_missing_cookie(db, cookie):
    with pytest.raises(SessionInvalid) as exc:
        validate_session(db, cookie)
    assert exc.value.reason == SessionInvalid.MISSING


@pytest.mark.parametrize("mutate", [
    lambda c: c + "x",
    lambda c: c.split(".")[0],
    lambda c: "e30." + c.split(".")[1],
    lambda c: "garbage",
])
def test_tampered_cookie(db, profile, mutate):
    _, cookie = issue_session(db, profile)
    with pytest.raises(SessionInvalid) as exc:
        validate_session(db, mutate(cookie))
    assert exc.value.reason == SessionInvalid.INVALID_COOKIE


def test_forged_role_needs_the_secret(db, profile):
    forged = encode_session_cookie(profile.id, "admin", "2026-01-01T00:00:00Z")
    payload_b64, _ = forged.split(".")
    _, genuine = issue_session(db, profile)
    spliced = f"{payload_b64}.{genuine.split('.')[1]}"
    assert decode_session_cookie(spliced) is None


def test_cookie_without_session_row(db, profile):
    cookie = encode_session_cookie(profile.id, "user", datetime.utcnow().isoformat() + "Z")
    with pytest.raises(SessionInvalid) as exc:
        validate_session(db, cookie)
    assert exc.value.reason == SessionInvalid.MISSING


def test_expired_session(db, profile):
    _, cookie = issue_session(db, profile)
    later = datetime.utcnow() + timedelta(days=settings.SESSION_TTL_DAYS, seconds=1)
    with pytest.raises(SessionInvalid) as exc:
        validate_session(db, cookie, now=later)
    assert exc.value.reason == SessionInvalid.EXPIRED


def test_revoked_session(db, profile):
    auth_session, cookie = issue_session(db, profile)
    revoked = revoke_latest_session(db, profile.id)
    assert revoked.id == auth_session.id
    assert revoked.revoked_at is not None
    with pytest.raises(SessionInvalid) as exc:
        validate_session(db, cookie)
    assert exc.value.reason == SessionInvalid.REVOKED
    # Revoking twice is a no-op
    assert revoke_latest_session(db, profile.id) is None


def test_revoke_by_id(db, profile):
    auth_session, _ = issue_session(db, profile)
    assert revoke_session_by_id(db, auth_session.id).revoked is True
    assert revoke_session_by_id(db, "missing") is None
    assert db.query(AuthSession).filter(AuthSession.id == auth_session.id).one().revoked is True


def test_missing_session_secret_fails_closed(db, profile, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_SECRET", "")
    with pytest.raises(ServerMisconfigured):
        encode_session_cookie(profile.id, "user", "2026-01-01T00:00:00Z")


def test_cookie_secure_only_in_production():
    from unittest.mock import patch
    from starlette.responses import Response
    from phoneauth.security.cookies import set_session_cookie, clear_session_cookie

    response = Response()
    set_session_cookie(response, "value.sig")
    header = response.headers["set-cookie"]
    assert "secure" not in header.lower()
    assert f"Max-Age={settings.SESSION_TTL_DAYS * 86400}" in header

    with patch("phoneauth.security.cookies.is_production_env", return_value=True):
        response = Response()
        set_session_cookie(response, "value.sig")
        assert "secure" in response.headers["set-cookie"].lower()

        response = Response()
        clear_session_cookie(response)
        header = response.headers["set-cookie"]
        assert header.startswith(f"{settings.SESSION_COOKIE_NAME}=")
        assert "Max-Age=0" in header
        assert "secure" in header.lower()
