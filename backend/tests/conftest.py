import os

# Keep the app's own engine off disk; every request goes through the overrides below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date  # noqa: E402
from typing import Any, Dict, List, Optional, Sequence, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from bracket_engine.database import get_engine, get_session, make_engine  # noqa: E402
from bracket_engine.main import app  # noqa: E402
from bracket_engine.models.event import Event  # noqa: E402
from bracket_engine.models.registration import APPROVED, Registration  # noqa: E402
from bracket_engine.routes.common import get_broadcaster  # noqa: E402
from bracket_engine.services.broadcaster import Broadcaster  # noqa: E402

# One in-memory database for the whole run. StaticPool hands every session the same
# connection, so the test body, request handlers, the SSE generator and the spectator
# socket all see one schema. Each test creates the tables and drops them afterwards.
test_engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)


def override_get_session():
    with Session(test_engine) as session:
        yield session


def override_get_engine():
    return test_engine


class RecordingBroadcaster(Broadcaster):
    """Keeps every published message for assertions."""

    def __init__(self):
        self.messages: List[Tuple[int, str, Dict[str, Any]]] = []

    def publish(self, tournament_id: int, event: str, payload: Dict[str, Any]) -> None:
        self.messages.append((tournament_id, event, payload))

    def events(self) -> List[str]:
        return [event for _, event, _ in self.messages]

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [payload for _, e, payload in self.messages if e == event]


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Session on a freshly created schema"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="broadcaster")
def broadcaster_fixture() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture(name="client")
def client_fixture(session: Session, broadcaster: RecordingBroadcaster):
    """TestClient wired to the test engine and a recording broadcaster."""
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_engine] = override_get_engine
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_event(session: Session):
    """
    Factory: an event with approved registrations.

    make_event([("Ann", "Black"), ("Bob", "Green", "Tiger Dojo")]) -> Event
    Entrant ids are assigned 101, 102, ... in list order. Entries may carry a
    fourth element, the (age, weight, belt) category bands.
    """
    counter = {"event": 0}

    def _make(
        entrants: Sequence[tuple],
        name: Optional[str] = None,
        pending: Sequence[tuple] = (),
    ) -> Event:
        counter["event"] += 1
        event = Event(
            name=name or f"Open Championship {counter['event']}",
            location="City Sports Hall",
            start_date=date(2026, 3, 14),
        )
        session.add(event)
        session.commit()
        session.refresh(event)

        rows = [(e, APPROVED) for e in entrants] + [(e, "PENDING") for e in pending]
        for offset, (entry, approval) in enumerate(rows, start=1):
            bands = entry[3] if len(entry) > 3 else (None, None, None)
            session.add(
                Registration(
                    event_id=event.id,
                    entrant_id=100 + offset,
                    entrant_name=entry[0],
                    belt_rank=entry[1],
                    dojo_name=entry[2] if len(entry) > 2 else None,
                    category_age=bands[0],
                    category_weight=bands[1],
                    category_belt=bands[2],
                    approval_status=approval,
                )
            )
        session.commit()
        return event

    return _make
