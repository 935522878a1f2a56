"""Shared fixtures: in-memory SQLite database and a FastAPI test client.

Environment variables must be set before any app module is imported.
"""

import os
from unittest.mock import MagicMock

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["USAGE_TIMEZONE"] = "UTC"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("DEBUG", "false")


@pytest.fixture
def db():
    """Fresh schema per test."""
    from app import models  # noqa: F401
    from app.database import Base, SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def student(db):
    from app.models import Student

    row = Student(
        student_id="S1",
        student_name="Lina",
        daily_usage_seconds_by_date={},
        daily_usage_seconds_limit=1800,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def rate_limiter():
    limiter = MagicMock()
    limiter.is_allowed.return_value = (
        True,
        {"limit": 60, "remaining": 59, "reset_in": 60, "current": 1},
    )
    return limiter


@pytest.fixture
def client(db, rate_limiter):
    from fastapi.testclient import TestClient

    from app.api.deps import get_llm_rate_limiter
    from app.main import app

    app.dependency_overrides[get_llm_rate_limiter] = lambda: rate_limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
