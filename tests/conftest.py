"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("MOCK_EMAIL", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.bill import Bill  # noqa: E402, F401
from app.models.user import User  # noqa: E402, F401
from app.services.credentials import CredentialStore  # noqa: E402
from app.services.jwt import get_jwt_service  # noqa: E402
from app.services.notification import BillNotifier, get_notifier  # noqa: E402


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


@pytest.fixture(name="notifier")
def notifier_fixture():
    """Mock-mode notifier shared by the app and the test."""
    notifier = BillNotifier(mock_mode=True)
    yield notifier
    notifier.close()


@pytest.fixture(name="client")
def client_fixture(db_session: Session, notifier: BillNotifier):
    """Create a test client with overridden DB and notifier dependencies and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def _make_user(db: Session, email: str, password: str, name: str) -> dict:
    user = CredentialStore().create_user(db, email, password, name)
    token = get_jwt_service().create_token(user_id=user.id, email=user.email)
    return {
        "user_id": user.id,
        "email": user.email,
        "name": user.name,
        "password": password,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user and return its credentials and token."""
    return _make_user(db_session, "test@example.com", "password123", "Test User")


@pytest.fixture(name="other_user")
def other_user_fixture(db_session: Session):
    """A second account, for isolation tests."""
    return _make_user(db_session, "other@example.com", "otherpass456", "Other User")
