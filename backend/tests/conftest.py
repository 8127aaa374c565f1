"""Shared test fixtures for the ArticleFlow backend test suite.

Tests run against a throwaway SQLite database. Tables are created by the
app on import and emptied before each test.
"""

import os
import tempfile

# Force auth off and use the test database before any app imports.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="articleflow-test-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}",
)
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LLM_MODEL"] = ""
os.environ["R2_ACCOUNT_ID"] = ""

import pytest
from fastapi.testclient import TestClient

from articleflow.database import Base, get_db, SessionLocal
from articleflow.main import app
from articleflow.core.token_factory import create_token
from articleflow.core.config import settings
from articleflow.middleware.request_context import rate_limiter


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test (children first)."""
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    rate_limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_enabled(monkeypatch):
    """Turn on token verification for the duration of a test."""
    monkeypatch.setattr(settings, "auth_enabled", True)


def token_headers(user_id: str) -> dict:
    token = create_token(subject=user_id, secret=settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers() -> dict:
    """Valid bearer headers for ``test-user``."""
    return token_headers("test-user")


def make_article(
    title: str = "Test Article",
    content: str = "# Test\n\nHello world.",
    **overrides,
) -> dict:
    """Factory for article creation payloads."""
    payload = {
        "title": title,
        "content": content,
        "tags": ["python", "testing"],
        "platform": "devto",
    }
    payload.update(overrides)
    return payload
