"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; pin them before the app is imported.
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-exam-tests"
os.environ["REDIS_ENABLED"] = "false"
os.environ["DASHBOARD_WEBHOOK_URL"] = ""
os.environ["PARENT_NOTIFICATION_URL"] = ""
os.environ["APP_TIMEZONE"] = "UTC"

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from practice_exam import models  # noqa: E402,F401
from practice_exam.core.dependencies import get_db  # noqa: E402
from practice_exam.db.base import Base  # noqa: E402
from practice_exam.db.engine import create_db_engine  # noqa: E402
from practice_exam.main import app  # noqa: E402
from tests.helpers.factories import auth_headers, make_user  # noqa: E402

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db(engine: Engine) -> Generator[Session, None, None]:
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI test client with the database dependency overridden."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def free_user():
    return make_user("student-free", is_paid=False)


@pytest.fixture
def paid_user():
    return make_user("student-pro", is_paid=True)


@pytest.fixture
def free_headers(free_user) -> dict[str, str]:
    return auth_headers(free_user)


@pytest.fixture
def paid_headers(paid_user) -> dict[str, str]:
    return auth_headers(paid_user)
