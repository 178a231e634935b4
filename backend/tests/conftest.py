"""Pytest fixtures: file-backed SQLite database per test, so threads can share it."""
from datetime import datetime, timezone, timedelta
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from soulpass.database import Base, get_db, make_engine
from soulpass.main import app
from soulpass.services.notifications import hub

# Import all models so they register with Base.metadata
from soulpass.models.profile import Profile  # noqa: F401
from soulpass.models.event import Event      # noqa: F401
from soulpass.models.rsvp import RSVP        # noqa: F401

ORGANIZER = "0xA11ce00000000000000000000000000000000001"
ALICE = "0xa11ce00000000000000000000000000000000002"
BOB = "0xb0b0000000000000000000000000000000000003"
CAROL = "0xca401000000000000000000000000000000000004"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine (WAL + BEGIN IMMEDIATE) for each test."""
    engine = make_engine(f"sqlite:///{tmp_path / 'soulpass-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def published():
    """Collect every domain event published during the test."""
    received = []
    hub.subscribe(received.append)
    yield received
    hub.unsubscribe(received.append)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def wallet(address: str) -> dict:
    """Headers the wallet-auth gateway would forward for ``address``."""
    return {"X-Wallet-Address": address}


def event_fields(title: str = "Test Event", start_offset_hours: int = 24,
                 capacity: Optional[int] = None, **overrides) -> dict:
    """Field dict for event_service.create_event."""
    start = overrides.pop("start_time", None) or datetime.now(timezone.utc) + timedelta(hours=start_offset_hours)
    fields = {
        "title": title,
        "description": f"{title} description",
        "start_time": start,
        "end_time": start + timedelta(hours=2),
        "capacity": capacity,
    }
    fields.update(overrides)
    return fields


def create_test_event(client: TestClient, organizer: str = ORGANIZER, title: str = "Test Event",
                      capacity: Optional[int] = None, **overrides) -> dict:
    """POST /api/events as ``organizer`` and return response JSON."""
    start = datetime.now(timezone.utc) + timedelta(hours=24)
    payload = {
        "title": title,
        "description": f"{title} description",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=2)).isoformat(),
        "capacity": capacity,
    }
    payload.update(overrides)
    resp = client.post("/api/events/", json=payload, headers=wallet(organizer))
    assert resp.status_code == 201, resp.text
    return resp.json()


def request_to_join(client: TestClient, event_id: str, participant: str) -> dict:
    """POST /api/events/{id}/rsvps as ``participant`` and return response JSON."""
    resp = client.post(f"/api/events/{event_id}/rsvps", headers=wallet(participant))
    assert resp.status_code == 201, resp.text
    return resp.json()
