"""
Pytest configuration and shared fixtures.

Environment variables are loaded from .env.test via Makefile. The defaults
below mirror .env.test so a bare `pytest` run behaves the same way.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_messages.db")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from app.config import get_settings
get_settings.cache_clear()

from app.main import app
from app.storage import Base, SessionLocal, MessageStore, engine


@pytest.fixture(scope="function")
def tables():
    """Create a fresh schema for a test and drop it afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    # Pooled connections would keep the dropped schema cached
    engine.dispose()


@pytest.fixture(scope="function")
def client(tables):
    """Create test client with fresh database for each test."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db(tables):
    """Database session bound to the test schema."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db) -> MessageStore:
    return MessageStore(db)
