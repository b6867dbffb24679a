"""
Pytest configuration and shared fixtures.

Test settings are put into the environment before anything from social_api
is imported, then the settings cache is cleared so they take effect.
"""

import os

os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite:///./test_social_media.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from social_api.config import get_settings
get_settings.cache_clear()

from social_api.main import app
from social_api.storage import SessionLocal, Base, engine
from social_api import models  # noqa: F401  registers tables on Base.metadata


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db():
    """Session on a fresh database, for service and store level tests."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
