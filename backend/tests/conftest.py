"""Shared test fixtures."""

import os

from cryptography.fernet import Fernet

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MFA_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from certauth.database import Base, get_db  # noqa: E402
from certauth.dependencies.services import (  # noqa: E402
    get_challenge_store,
    get_lockout_tracker,
    get_reset_token_store,
)
from certauth.main import app  # noqa: E402
from certauth.rate_limiter import limiter  # noqa: E402
from certauth.services.challenge_store import ChallengeStore  # noqa: E402
from certauth.services.ephemeral_store import InMemoryKeyValueStore  # noqa: E402
from certauth.services.lockout_service import LockoutTracker  # noqa: E402
from certauth.services.reset_token_store import ResetTokenStore  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Create database session for testing."""
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def stores():
    """Fresh lockout, challenge and reset stores for one test."""
    return {
        "lockout": LockoutTracker(InMemoryKeyValueStore("lockout")),
        "challenge": ChallengeStore(InMemoryKeyValueStore("challenge")),
        "reset": ResetTokenStore(InMemoryKeyValueStore("reset")),
    }


@pytest.fixture
def auth_client(engine, stores):
    """Create test client with in-memory database for auth tests.

    Yields a tuple of (TestClient, SessionMaker) for use in tests.
    """
    limiter.reset()

    testing_session_local = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lockout_tracker] = lambda: stores["lockout"]
    app.dependency_overrides[get_challenge_store] = lambda: stores["challenge"]
    app.dependency_overrides[get_reset_token_store] = lambda: stores["reset"]

    with TestClient(app) as test_client:
        yield test_client, testing_session_local

    app.dependency_overrides.clear()
