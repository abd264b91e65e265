"""Tournament statistics: category winners, dojo leaderboard, performance highlights."""
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from bracket_engine.models.match import Match
from bracket_engine.models.registration import Registration
from bracket_engine.services.results_service import Placement
from bracket_engine.services.statistics_service import (
    EntrantDirectory,
    dojo_leaderboard,
    performance_highlights,
)
from tests.helpers import FOUR_ENTRANTS, matches_by_number, play


def _registration(entrant_id: int, name: str, dojo: str) -> Registration:
    return Registration(event_id=1, entrant_id=entrant_id, entrant_name=name, dojo_name=dojo)


def _placement(entrant_id: int) -> Placement:
    return Placement(entrant_id, None, "Final", None)


def test_statistics_after_a_played_bracket(client: TestClient, make_event):
    event = make_event(FOUR_ENTRANTS)
    client.post(f"/api/events/{event.id}/brackets/generate")
    matches = matches_by_number(client, event.id)
    play(client, matches[1], winner="a")  # Kenji 5-2 Lena
    play(client, matches[2], winner="a")  # Maria 5-2 Sam
    final = client.get(f"/api/matches/{matches[3]['id']}").json()
    play(client, final, winner="a", score=(8, 0))  # Kenji 8-0 Maria

    response = client.get(f"/api/events/{event.id}/statistics")
    assert response.status_code == 200
    stats = response.json()

    assert stats["tournament"] == {
        "id": event.id,
        "name": event.name,
        "date": "2026-03-14",
        "location": "City Sports Hall",
        "total_participants": 4,
        "total_categories": 1,
        "completed_matches": 3,
        "total_matches": 3,
    }

    (category,) = stats["category_winners"]
    assert category["first_place"] == {"id": 101, "name": "Kenji", "dojo_name": "Tiger Dojo", "belt_rank": "Black 2nd Dan"}
    assert category["second_place"]["name"] == "Maria"
    assert [p["name"] for p in category["third_place"]] == ["Lena", "Sam"]

    assert [(d["dojo_name"], d["gold"], d["silver"], d["bronze"], d["total"]) for d in stats["dojo_leaderboard"]] == [
        ("Tiger Dojo", 1, 0, 0, 1),
        ("Crane Dojo", 0, 1, 1, 2),
        ("Lotus Dojo", 0, 0, 1, 1),
    ]

    performance = stats["performance_stats"]
    assert performance["highest_score"]["score"] == 8
    assert performance["highest_score"]["winner"]["name"] == "Kenji"
    assert performance["most_dominant"]["score_difference"] == 8
    assert performance["most_dominant"]["final_score"] == "8-0"
    assert performance["fastest_win"]["duration_minutes"] >= 0


def test_statistics_before_any_bout(client: TestClient, make_event):
    event = make_event(FOUR_ENTRANTS)
    client.post(f"/api/events/{event.id}/brackets/generate")
    stats = client.get(f"/api/events/{event.id}/statistics").json()

    (category,) = stats["category_winners"]
    assert category["first_place"] is None
    assert category["third_place"] == []
    assert stats["dojo_leaderboard"] == []
    assert stats["performance_stats"] == {"fastest_win": None, "highest_score": None, "most_dominant": None}
    assert stats["tournament"]["completed_matches"] == 0


def test_statistics_unknown_event(client: TestClient):
    assert client.get("/api/events/999/statistics").status_code == 404


def test_leaderboard_ranks_gold_before_medal_count():
    directory = EntrantDirectory(
        [
            _registration(1, "A", "Alpha"),
            _registration(2, "B", "Beta"),
            _registration(3, "C", "Beta"),
            _registration(4, "D", "Beta"),
            _registration(5, "E", None),
        ]
    )
    podiums = [
        [("gold", _placement(1)), ("silver", _placement(2)), ("bronze", _placement(3)), ("bronze", _placement(5))],
        [("silver", _placement(4))],
    ]
    board = dojo_leaderboard(podiums, directory)
    # Entrants without a dojo are left out
    assert [(d["dojo_name"], d["gold"], d["silver"], d["total"]) for d in board] == [
        ("Alpha", 1, 0, 1),
        ("Beta", 0, 2, 3),
    ]


def test_highlights_skip_unscored_and_unstarted_bouts():
    start = datetime(2026, 3, 14, 10, 0)
    quick = Match(
        id=1, bracket_id=1, round_number=1, round_name="Semi-Finals", match_number=1,
        fighter_a_id=1, fighter_a_name="A", fighter_b_id=2, fighter_b_name="B",
        status="COMPLETED", score_a=3, score_b=2, winner_id=1,
        started_at=start, completed_at=start + timedelta(minutes=2, seconds=30),
    )
    never_started = Match(
        id=2, bracket_id=1, round_number=1, round_name="Semi-Finals", match_number=2,
        fighter_a_id=3, fighter_a_name="C", fighter_b_id=4, fighter_b_name="D",
        status="COMPLETED", score_a=1, score_b=9, winner_id=4, completed_at=start,
    )
    unscored = Match(
        id=3, bracket_id=1, round_number=2, round_name="Final", match_number=3,
        fighter_a_id=1, fighter_a_name="A", fighter_b_id=4, fighter_b_name="D",
        status="COMPLETED", winner_id=1, started_at=start, completed_at=start + timedelta(seconds=30),
    )
    highlights = performance_highlights([quick, never_started, unscored], EntrantDirectory([]))

    assert highlights["fastest_win"]["match_id"] == 1
    assert highlights["fastest_win"]["duration_minutes"] == 2.5
    assert highlights["highest_score"] == {"score": 9, "match_id": 2, "winner": {"id": 4, "name": "D", "dojo_name": None, "belt_rank": None}}
    assert highlights["most_dominant"]["final_score"] == "9-1"


def test_fastest_win_mixes_naive_and_aware_timestamps():
    # SQLite hands back naive values for rows written with aware ones
    started = datetime(2026, 3, 14, 10, 0)
    bout = Match(
        id=1, bracket_id=1, round_number=1, round_name="Final", match_number=1,
        fighter_a_id=1, fighter_a_name="A", fighter_b_id=2, fighter_b_name="B",
        status="COMPLETED", score_a=4, score_b=1, winner_id=1,
        started_at=started, completed_at=datetime(2026, 3, 14, 10, 3, tzinfo=timezone.utc),
    )
    highlights = performance_highlights([bout], EntrantDirectory([]))
    assert highlights["fastest_win"]["duration_minutes"] == 3.0
