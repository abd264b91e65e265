"""Shared data and API helpers for the bracket engine tests."""
from typing import Dict, Tuple

from fastapi.testclient import TestClient

FIVE_ENTRANTS = [
    ("Kenji", "Black 2nd Dan", "Tiger Dojo"),
    ("Maria", "Black", "Crane Dojo"),
    ("Sam", "Brown", "Tiger Dojo"),
    ("Lena", "Green", "Crane Dojo"),
    ("Omar", "White", "Lotus Dojo"),
]

FOUR_ENTRANTS = [
    ("Kenji", "Black 2nd Dan", "Tiger Dojo"),
    ("Maria", "Black", "Crane Dojo"),
    ("Sam", "Brown", "Lotus Dojo"),
    ("Lena", "Green", "Crane Dojo"),
]


def matches_by_number(client: TestClient, event_id: int, bracket_index: int = 0) -> Dict[int, dict]:
    """match_number -> match dict for one bracket of an event, as the API returns it."""
    response = client.get(f"/api/events/{event_id}/brackets")
    assert response.status_code == 200
    bracket = response.json()[bracket_index]
    return {m["match_number"]: m for m in bracket["matches"]}


def play(client: TestClient, match: dict, winner: str = "a", score: Tuple[int, int] = (5, 2)) -> dict:
    """Start and finish a bout via the API; winner 'a' or 'b'."""
    match_id = match["id"]
    assert client.post(f"/api/matches/{match_id}/start").status_code == 200
    winner_id = match["fighter_a_id"] if winner == "a" else match["fighter_b_id"]
    score_a, score_b = score if winner == "a" else (score[1], score[0])
    response = client.post(
        f"/api/matches/{match_id}/end",
        json={"winner_id": winner_id, "score_a": score_a, "score_b": score_b},
    )
    assert response.status_code == 200, response.text
    return response.json()
