"""
Shared test fixtures for ProdTrack tests

Provides database setup, client creation, users and the step chain
"""
import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SEED_DEFAULT_STEPS", "false")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from prodtrack.main import app
from prodtrack.db.base import Base
from prodtrack.db.session import get_db
from prodtrack.core.security import create_access_token
from prodtrack.core.limiter import limiter
from prodtrack.services.step_catalog import load_step_catalog

from tests.factories import create_test_steps, create_test_user, reset_sequences

# Disable rate limiting for tests
limiter.enabled = False


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import prodtrack.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)
    reset_sequences()

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def db(db_session):
    """Alias used by most tests"""
    return db_session


@pytest.fixture
def steps(db_session):
    """Three-step chain OP10 → OP20 → OP30"""
    create_test_steps(db_session, codes=("OP10", "OP20", "OP30"))
    db_session.commit()


@pytest.fixture
def catalog(db_session, steps):
    return load_step_catalog(db_session)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db_session):
    user = create_test_user(db_session, username="admin", name="Admin User", role="admin")
    db_session.commit()
    return user


@pytest.fixture
def encoder_user(db_session):
    user = create_test_user(db_session, username="alice", name="Alice Encoder", role="encoder")
    db_session.commit()
    return user


@pytest.fixture
def other_encoder(db_session):
    user = create_test_user(db_session, username="bob", name="Bob Encoder", role="encoder")
    db_session.commit()
    return user


@pytest.fixture
def viewer_user(db_session):
    user = create_test_user(db_session, username="vera", name="Vera Viewer", role="viewer")
    db_session.commit()
    return user


def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def encoder_headers(encoder_user):
    return _headers(encoder_user)


@pytest.fixture
def other_encoder_headers(other_encoder):
    return _headers(other_encoder)


@pytest.fixture
def viewer_headers(viewer_user):
    return _headers(viewer_user)
