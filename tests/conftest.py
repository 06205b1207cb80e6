"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.account import Account  # noqa: F401
from app.models.audit_event import AuditEvent  # noqa: F401
from app.models.rate_limit import RateLimitAttempt, RateLimitBucket  # noqa: F401
from app.models.reset_ticket import ResetTicket  # noqa: F401
from app.models.session_record import SessionRecord  # noqa: F401
from app.services.auth import AuthService

TEST_PASSWORD = "Password123"


class FakeClock:
    """Manually advanced clock for time-dependent tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled per-IP rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test account and return its details with a token."""
    from app.services.jwt import get_jwt_service

    auth_service = AuthService()
    account = auth_service.register(db_session, "test@example.com", TEST_PASSWORD, "Test User", role="student")
    token = get_jwt_service().issue(account)

    return {
        "account_id": account.id,
        "email": account.email,
        "name": account.name,
        "password": TEST_PASSWORD,
        "token": token,
    }


@pytest.fixture(name="account")
def account_fixture(db_session: Session) -> Account:
    """Insert an account directly, skipping password hashing."""
    account = Account(
        email="a@x.com",
        password_hash="not-a-real-hash",
        name="Ada",
        role="student",
        is_active=True,
        vr_enabled=False,
        profile={},
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account
