"""
Global pytest configuration and fixtures for all tests.

Unit tests run every service against an in-memory SQLite database through an
injected session factory. Integration tests (tests/integration) use PostgreSQL
from DATABASE_URL and are skipped without it.
"""

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.config import AppConfig, RateLimitConfig, reset_config
from src.core.database.models import Base
from tests.fixtures import EventPayloadFactory, RecordingWorkQueue, RegistrationFactory


@pytest.fixture(autouse=True, scope="function")
def test_environment(monkeypatch, request):
    """Configure test environment variables without global pollution."""
    monkeypatch.setenv("BEACON_TESTING", "true")
    monkeypatch.delenv("PRODUCTION", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")

    # Unit tests should NEVER use real database connections
    is_integration_test = "integration" in str(request.fspath)
    if not is_integration_test:
        monkeypatch.delenv("DATABASE_URL", raising=False)

    reset_config()

    yield

    reset_config()
    # Reset engine to ensure clean state for next test
    from src.core.database.database_session import reset_engine

    reset_engine()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with the full schema.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """A session for arranging and asserting database state directly."""
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def work_queue():
    return RecordingWorkQueue()


@pytest.fixture
def test_config():
    return AppConfig(rate_limits=RateLimitConfig(enabled=False))


@pytest.fixture
def services(test_config, session_factory, work_queue):
    from src.services.container import ServiceContainer

    return ServiceContainer(test_config, session_factory, work_queue)


@pytest.fixture
def registration(services):
    """A registered tenant with its first API key."""
    payload = RegistrationFactory.create(app_name="Test App", app_url="https://x.com", user_id="owner_1")
    return services.tenants.register(payload["app_name"], payload["app_url"], payload["user_id"])


@pytest.fixture
def tenant_id(registration):
    return registration.tenant.tenant_id


@pytest.fixture
def api_key(registration):
    return registration.credential.api_key


# ============================================================================
# Flask Fixtures
# ============================================================================


@pytest.fixture
def app(test_config, session_factory, work_queue):
    from src.api.app import create_app

    flask_app = create_app(test_config, session_factory=session_factory, work_queue=work_queue)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest.fixture
def event_factory():
    return EventPayloadFactory


@pytest.fixture
def registration_factory():
    return RegistrationFactory
