"""Bracket endpoints: generate, preview, fetch, stream, status and delete."""
import json

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from bracket_engine.models.event import Event, EventStatus
from bracket_engine.models.match import Match
from bracket_engine.models.result import Result
from tests.helpers import FIVE_ENTRANTS, matches_by_number, play


def _stream_events(client: TestClient, event_id: int):
    response = client.get(f"/api/events/{event_id}/brackets/generate/stream")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    return [json.loads(line[len("data: "):]) for line in response.text.splitlines() if line.startswith("data: ")]


def test_generate_brackets(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    response = client.post(f"/api/events/{event.id}/brackets/generate")
    assert response.status_code == 201
    (bracket,) = response.json()
    assert bracket["event_id"] == event.id
    assert bracket["category_name"] == "Open, Open, Open"
    assert bracket["total_participants"] == 5
    assert bracket["status"] == "DRAFT"


def test_generate_twice_conflicts(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    assert client.post(f"/api/events/{event.id}/brackets/generate").status_code == 201
    response = client.post(f"/api/events/{event.id}/brackets/generate")
    assert response.status_code == 409
    assert len(client.get(f"/api/events/{event.id}/brackets").json()) == 1


def test_generate_unknown_event(client: TestClient):
    assert client.post("/api/events/999/brackets/generate").status_code == 404


def test_generate_without_approved_participants(client: TestClient, make_event):
    event = make_event([], pending=[("Ann", "Green")])
    response = client.post(f"/api/events/{event.id}/brackets/generate")
    assert response.status_code == 400
    assert response.json()["detail"] == "No approved participants found"


def test_category_preview_shows_seeding(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    response = client.get(f"/api/events/{event.id}/categories")
    assert response.status_code == 200
    (category,) = response.json()
    assert category["participant_count"] == 5
    assert [e["entrant_name"] for e in category["entrants"]] == ["Kenji", "Maria", "Sam", "Lena", "Omar"]
    assert [e["seed"] for e in category["entrants"]] == [1, 2, 3, 4, 5]
    assert category["entrants"][0]["belt_value"] == 8
    # Preview builds nothing
    assert client.get(f"/api/events/{event.id}/brackets").json() == []


def test_fetch_brackets_nests_matches_in_order(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    client.post(f"/api/events/{event.id}/brackets/generate")
    (bracket,) = client.get(f"/api/events/{event.id}/brackets").json()
    numbers = [m["match_number"] for m in bracket["matches"]]
    assert numbers == list(range(1, 8))
    final = bracket["matches"][-1]
    assert final["round_name"] == "Final"
    assert final["next_match_id"] is None


def test_fetch_brackets_unknown_event(client: TestClient):
    assert client.get("/api/events/999/brackets").status_code == 404


def test_stream_reports_progress_then_brackets(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    events = _stream_events(client, event.id)
    assert [e["phase"] for e in events] == ["loading", "grouping", "building", "complete"]
    progress = [e["progress"] for e in events]
    assert progress == sorted(progress) and progress[-1] == 100
    (bracket,) = events[-1]["brackets"]
    assert bracket["total_participants"] == 5
    assert len(client.get(f"/api/events/{event.id}/brackets").json()) == 1


def test_stream_reports_conflict_as_error_event(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    client.post(f"/api/events/{event.id}/brackets/generate")
    events = _stream_events(client, event.id)
    assert events[-1]["phase"] == "error"
    assert "already exist" in events[-1]["message"]


def test_stream_unknown_event(client: TestClient):
    assert client.get("/api/events/999/brackets/generate/stream").status_code == 404


def test_bracket_status_update(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    (bracket,) = client.post(f"/api/events/{event.id}/brackets/generate").json()
    response = client.patch(f"/api/brackets/{bracket['id']}/status", json={"status": "LOCKED"})
    assert response.status_code == 200
    assert response.json()["status"] == "LOCKED"
    assert response.json()["locked_at"] is not None


def test_bracket_status_rejects_unknown_value(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    (bracket,) = client.post(f"/api/events/{event.id}/brackets/generate").json()
    response = client.patch(f"/api/brackets/{bracket['id']}/status", json={"status": "PAUSED"})
    assert response.status_code == 400
    assert client.patch("/api/brackets/999/status", json={"status": "LOCKED"}).status_code == 404


def test_delete_bracket_removes_matches_and_results(client: TestClient, session: Session, make_event):
    event = make_event([("Ann", "Brown"), ("Bob", "Black")])
    (bracket,) = client.post(f"/api/events/{event.id}/brackets/generate").json()
    play(client, matches_by_number(client, event.id)[1])
    assert client.post(f"/api/brackets/{bracket['id']}/results").status_code == 201
    assert session.get(Event, event.id).status == EventStatus.COMPLETED

    assert client.delete(f"/api/brackets/{bracket['id']}").status_code == 204
    assert client.get(f"/api/events/{event.id}/brackets").json() == []
    assert session.exec(select(Match).where(Match.bracket_id == bracket["id"])).all() == []
    assert session.exec(select(Result).where(Result.bracket_id == bracket["id"])).all() == []

    # Results had completed the event; losing its only bracket reopens it
    session.expire_all()
    assert session.get(Event, event.id).status == EventStatus.UPCOMING

    # The event can be generated again
    assert client.post(f"/api/events/{event.id}/brackets/generate").status_code == 201


def test_delete_unknown_bracket(client: TestClient):
    assert client.delete("/api/brackets/999").status_code == 404


def test_health(client: TestClient, make_event):
    event = make_event(FIVE_ENTRANTS)
    client.post(f"/api/events/{event.id}/brackets/generate")
    client.post(f"/api/matches/{matches_by_number(client, event.id)[2]['id']}/start")

    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok", "live_matches": 1}


def test_bands_that_render_to_the_same_name_get_separate_brackets(client: TestClient, make_event):
    event = make_event(
        [
            ("Ann", "Green", None, ("U12, Boys", None, None)),
            ("Bob", "Green", None, ("U12, Boys", None, None)),
            ("Cal", "Brown", None, ("U12", "Boys, Open", None)),
            ("Dev", "Brown", None, ("U12", "Boys, Open", None)),
        ]
    )
    preview = client.get(f"/api/events/{event.id}/categories").json()
    assert len(preview) == 2

    response = client.post(f"/api/events/{event.id}/brackets/generate")
    assert response.status_code == 201
    brackets = response.json()
    assert [b["category_name"] for b in brackets] == ["U12, Boys, Open, Open"] * 2
    assert {(b["category_age"], b["category_weight"]) for b in brackets} == {
        ("U12, Boys", "Open"),
        ("U12", "Boys, Open"),
    }
