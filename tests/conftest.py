"""
Pytest configuration and fixtures for phoneauth tests.

Provides test database isolation and common test utilities.
"""
import os
import sys
import pathlib

# Settings read the environment at import time, so configure it first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OTP_SIGNING_KEY"] = "test-otp-signing-key-0123456789abcdef"
os.environ["SESSION_SECRET"] = "test-session-secret-0123456789abcdef"
os.environ["INTERNAL_ADMIN_SECRET"] = "test-internal-secret"
os.environ["SMS_PROVIDER"] = "stub"
os.environ["RATE_LIMIT_BACKEND"] = "database"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SENTRY_DSN", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DATABASE_URL = "sqlite:///:memory:"

# StaticPool keeps one connection so the in-memory schema survives
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Valid Indian mobile numbers (national form / E.164)
PHONE = "9820012345"
PHONE_E164 = "+919820012345"
OTHER_PHONE = "9845012345"


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create the schema once per test session."""
    from phoneauth.db import Base
    from phoneauth import models  # noqa: F401

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """
    Provide a clean database session for each test.

    Everything runs inside an outer transaction that is rolled back after
    the test, so service-level commits never leak between tests.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def stub_provider():
    """Fresh stub SMS provider; sent messages are collected on `.sent`."""
    from phoneauth.services.auth import provider_factory
    from phoneauth.services.auth.stub_provider import StubSMSProvider

    provider = StubSMSProvider()
    provider_factory._provider_instance = provider
    yield provider
    provider_factory.reset_sms_provider()


@pytest.fixture
def rate_limiter():
    from phoneauth.services.auth.rate_limit import RateLimitService
    return RateLimitService(redis_client=None)


@pytest.fixture(autouse=True)
def reset_singletons():
    from phoneauth.services.auth.rate_limit import reset_rate_limit_service
    from phoneauth.services.auth.provider_factory import reset_sms_provider
    reset_rate_limit_service()
    reset_sms_provider()
    yield
    reset_rate_limit_service()
    reset_sms_provider()


def override_get_db(db_session):
    """Dependency override that hands routes the test session."""
    def _override():
        yield db_session
    return _override


@pytest.fixture(scope="function")
def client(setup_test_db, db, stub_provider):
    """
    FastAPI TestClient with the test database dependency override.
    """
    from fastapi.testclient import TestClient
    from phoneauth.main import app
    from phoneauth.db import get_db

    app.dependency_overrides[get_db] = override_get_db(db)
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def last_code(provider):
    """Pull the 4-digit code out of the last SMS the stub captured."""
    import re
    _, message = provider.sent[-1]
    return re.search(r"\b(\d{4})\b", message).group(1)
