"""Shared fixtures: in-memory database, temporary storage, API client."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wabnet.database import Base, get_db
from wabnet.main import app
from wabnet.models.opportunity import Opportunity
from wabnet.services.change_feed import ChangeFeed, get_change_feed
from wabnet.services.storage import LocalObjectStorage, get_storage

BUCKET = "opportunity-images"
STORAGE_BASE = "https://project.supabase.co"

# ---------------------------------------------------------------------------
# In-memory SQLite test database (shared via StaticPool)
# ---------------------------------------------------------------------------
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Dependency override that uses the test in-memory database."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db():
    """Create and tear down tables around each test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """SQLAlchemy session for pre-populating test data."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    """Local object storage rooted in a temporary directory."""
    return LocalObjectStorage(str(tmp_path / "storage"), BUCKET)


@pytest.fixture
def feed():
    """A fresh change feed per test."""
    return ChangeFeed()


@pytest.fixture
def api_overrides(storage, feed):
    """Point the app's dependencies at the test database, storage and feed."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_change_feed] = lambda: feed
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_overrides):
    """TestClient with the DB, storage and feed dependencies overridden."""
    with TestClient(api_overrides) as c:
        yield c


@pytest.fixture
def make_opportunity(db):
    """Factory inserting an Opportunity row with a controllable age."""
    base = datetime(2025, 1, 1, 12, 0, 0)

    def _make(position="Volunteer", description="Help at events", image=None, link=None, minutes=0):
        opportunity = Opportunity(
            position=position,
            description=description,
            image=image,
            link=link,
            created_at=base + timedelta(minutes=minutes),
        )
        db.add(opportunity)
        db.commit()
        db.refresh(opportunity)
        return opportunity

    return _make


@pytest.fixture
def session_factory():
    """Session factory bound to the test database."""
    return TestingSessionLocal
