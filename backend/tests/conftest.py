"""
Central pytest configuration for the marketplace booking core tests.

Environment variables are set before any ``marketplace`` import so the
lazy engine binds to an in-memory SQLite database, the app timezone is
UTC, and rate limiting and file logging stay off.
"""

import os
from decimal import Decimal

import pytest

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["LOG_TO_FILE"] = "0"
os.environ["TZ"] = "UTC"

from marketplace.db.session import (  # noqa: E402
    SessionLocal,
    create_tables,
    drop_tables,
)
from marketplace.domain.entities import User  # noqa: E402
from marketplace.repositories import UserRepository  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "services: mark test as service layer test")
    config.addinivalue_line("markers", "repositories: mark test as repository test")
    config.addinivalue_line(
        "markers", "availability: mark test as availability-related"
    )
    config.addinivalue_line(
        "markers", "consultation: mark test as consultation-related"
    )
    config.addinivalue_line("markers", "rating: mark test as rating-related")
    config.addinivalue_line("markers", "api: mark test as API endpoint test")


def pytest_collection_modifyitems(config, items):
    """Add location-based markers."""
    for item in items:
        path = str(item.fspath)
        if f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)
        if f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def db_session():
    """Fresh schema on the shared in-memory database for each test."""
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def app():
    from marketplace.main import create_app

    flask_app = create_app()
    flask_app.config.update(TESTING=True)
    yield flask_app
    drop_tables()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed_users(app):
    """Persist a seeker, a verified provider offering chat/video and an admin."""
    session = SessionLocal()
    try:
        repo = UserRepository(session)
        seeker = repo.create(
            User(email="seeker@example.com", name="Sara Seeker", user_type="seeker")
        )
        provider = repo.create(
            User(
                email="provider@example.com",
                name="Paul Provider",
                user_type="provider",
                is_verified=True,
                chat=True,
                video=True,
                base_price=Decimal("50.00"),
            )
        )
        admin = repo.create(
            User(email="admin@example.com", name="Ada Admin", user_type="admin")
        )
        return {"seeker": seeker, "provider": provider, "admin": admin}
    finally:
        session.close()
