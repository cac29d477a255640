"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite store, injected into a freshly
built app through create_app().
"""

import os

import pytest
from fastapi.testclient import TestClient

# Settings must see the test store before any app import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from vendecasas.config import Settings, get_settings  # noqa: E402
get_settings.cache_clear()

from vendecasas.main import create_app  # noqa: E402
from vendecasas.storage import Database  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(DATABASE_URL="sqlite://", LOG_LEVEL="WARNING")


@pytest.fixture
def database(settings):
    """In-memory store with the schema applied."""
    db = Database(settings.DATABASE_URL)
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def client(settings, database):
    """Test client bound to the per-test store."""
    app = create_app(settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def listing_payload():
    """Factory for a valid listing payload; keyword args override fields."""
    def _make(**overrides):
        payload = {
            "titulo": "Casa 1",
            "tipo": "Venta",
            "zona": "Centro",
            "precio": "100000",
            "descripcion": "Casa amplia con patio",
        }
        payload.update(overrides)
        return payload
    return _make
