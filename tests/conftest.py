"""Pytest configuration and fixtures."""

import os

# Must be set before donvie_api.main is imported (module-level app and engine)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["DONVIE_SEED"] = "false"
os.environ["DONVIE_JSON_LOGS"] = "false"
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
for _name in ("SUPABASE_URL", "SB_PUBLISHABLE_KEY", "SUPABASE_ANON_KEY", "SESSION_BACKEND"):
    os.environ.pop(_name, None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from donvie_api.auth.identity import IdentityResolver, UserCandidate
from donvie_api.db.engine import build_engine, build_sessionmaker
from donvie_api.db.models import Association, Base, User
from donvie_api.db.seed import seed_associations
from donvie_api.db.session import get_db
from donvie_api.ledger.directory import AssociationDirectory
from donvie_api.main import app
from tests.helpers import association_payload, register


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh in-memory SQLite database for each test."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)

    SessionLocal = build_sessionmaker(engine)
    session = SessionLocal()

    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def client(db_session: Session) -> TestClient:
    """TestClient with get_db overridden to the test session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session: Session) -> list[Association]:
    """The six demo associations."""
    seed_associations(db_session)
    return AssociationDirectory(db_session).list()


@pytest.fixture
def association(db_session: Session) -> Association:
    """A single unverified association named "Foo"."""
    return AssociationDirectory(db_session).create(association_payload())


@pytest.fixture
def donor_client(client: TestClient) -> TestClient:
    """Client logged in as a local donor account (donor@example.fr)."""
    response = register(client)
    assert response.status_code == 201, response.text
    return client


@pytest.fixture
def owner_client(client: TestClient) -> TestClient:
    """Client logged in as a local association account owning "Foo"."""
    response = register(
        client,
        email="owner@foo.org",
        user_type="association",
        association=association_payload(),
    )
    assert response.status_code == 201, response.text
    return client


@pytest.fixture
def external_user(db_session: Session) -> User:
    """A user created from external claims (no local password)."""
    return IdentityResolver(db_session).upsert_user(
        UserCandidate(
            id="ext-user-1",
            email="ext@example.fr",
            first_name="Ext",
            last_name="User",
            auth_provider="google",
        )
    )
