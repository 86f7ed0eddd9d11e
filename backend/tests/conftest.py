import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["DUPR_CLUB_ID"] = "4242"
os.environ.pop("MASTER_ADMIN_EMAIL", None)

from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from pickleball_api import database
from pickleball_api.database import get_session
from pickleball_api.main import app
from pickleball_api.models.user import User
from pickleball_api.services.rating_provider import clear_token_cache, get_rating_provider
from tests.helpers import FakeRatingProvider, auth, create_user

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test database: sqlite :memory: with StaticPool so every session (request
# handlers, background tasks, fixtures) shares one connection.
# ============================================================================
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Background verification opens its own session on database.engine
database.engine = test_engine


def override_get_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Fresh schema for every test."""
    import pickleball_api.models  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    clear_token_cache()

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="provider")
def provider_fixture():
    return FakeRatingProvider()


@pytest.fixture(name="client")
def client_fixture(session: Session, provider: FakeRatingProvider):
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_rating_provider] = lambda: provider

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="admin")
def admin_fixture(session: Session) -> User:
    return create_user(session, "admin-1", is_admin=True, dupr_id="DADMIN")


@pytest.fixture(name="admin_headers")
def admin_headers_fixture(admin: User) -> Dict[str, str]:
    return auth(admin.id)
