"""Event-wide tournament statistics. Read-only, recomputed on every call."""
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from bracket_engine.models.bracket import Bracket
from bracket_engine.models.event import Event
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.registration import Registration
from bracket_engine.services.errors import NotFoundError
from bracket_engine.services.results_service import Placement, find_podium
from bracket_engine.services.seeding import get_approved_registrations
from bracket_engine.utils.clock import as_utc


class EntrantDirectory:
    """Looks up dojo and belt for entrants of one event."""

    def __init__(self, registrations: List[Registration]):
        self._by_id = {r.entrant_id: r for r in registrations}

    def describe(self, entrant_id: Optional[int], name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if entrant_id is None:
            return None
        reg = self._by_id.get(entrant_id)
        return {
            "id": entrant_id,
            "name": name or (reg.entrant_name if reg else None),
            "dojo_name": reg.dojo_name if reg else None,
            "belt_rank": reg.belt_rank if reg else None,
        }

    def dojo_of(self, entrant_id: int) -> Optional[str]:
        reg = self._by_id.get(entrant_id)
        return reg.dojo_name if reg else None


def scored_matches(matches: List[Match]) -> List[Match]:
    return [
        m
        for m in matches
        if m.status == MatchStatus.COMPLETED and m.score_a is not None and m.score_b is not None
    ]


def performance_highlights(matches: List[Match], directory: EntrantDirectory) -> Dict[str, Any]:
    """Fastest win, highest single score and most dominant win over completed, scored bouts."""
    fastest = None
    highest = None
    dominant = None

    for match in scored_matches(matches):
        if match.started_at is not None and match.completed_at is not None:
            minutes = (as_utc(match.completed_at) - as_utc(match.started_at)).total_seconds() / 60
            if fastest is None or minutes < fastest[0]:
                fastest = (minutes, match)

        top_score = max(match.score_a, match.score_b)
        if highest is None or top_score > highest[0]:
            highest = (top_score, match)

        difference = abs(match.score_a - match.score_b)
        if dominant is None or difference > dominant[0]:
            dominant = (difference, match)

    def winner(match: Match) -> Optional[Dict[str, Any]]:
        return directory.describe(match.winner_id, match.winner_name())

    return {
        "fastest_win": {
            "duration_minutes": round(fastest[0], 1),
            "match_id": fastest[1].id,
            "winner": winner(fastest[1]),
        }
        if fastest
        else None,
        "highest_score": {
            "score": highest[0],
            "match_id": highest[1].id,
            "winner": winner(highest[1]),
        }
        if highest
        else None,
        "most_dominant": {
            "score_difference": dominant[0],
            "final_score": f"{max(dominant[1].score_a, dominant[1].score_b)}-{min(dominant[1].score_a, dominant[1].score_b)}",
            "match_id": dominant[1].id,
            "winner": winner(dominant[1]),
        }
        if dominant
        else None,
    }


def dojo_leaderboard(podiums: List[List[tuple]], directory: EntrantDirectory) -> List[Dict[str, Any]]:
    """
    Medal tally per dojo, ranked by gold, silver, bronze, then total (all descending).

    podiums: per category, a list of (medal_key, Placement) pairs.
    """
    tally: Dict[str, Dict[str, int]] = {}
    for medals in podiums:
        for medal_key, placement in medals:
            dojo = directory.dojo_of(placement.entrant_id)
            if not dojo:
                continue
            entry = tally.setdefault(dojo, {"gold": 0, "silver": 0, "bronze": 0, "total": 0})
            entry[medal_key] += 1
            entry["total"] += 1

    board = [{"dojo_name": dojo, **counts} for dojo, counts in tally.items()]
    board.sort(key=lambda d: (-d["gold"], -d["silver"], -d["bronze"], -d["total"], d["dojo_name"]))
    return board


def get_tournament_statistics(session: Session, event_id: int) -> Dict[str, Any]:
    event = session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")

    registrations = get_approved_registrations(session, event_id)
    directory = EntrantDirectory(registrations)

    brackets = session.exec(select(Bracket).where(Bracket.event_id == event_id).order_by(Bracket.id)).all()
    matches_by_bracket: Dict[int, List[Match]] = {b.id: [] for b in brackets}
    if brackets:
        all_matches = session.exec(
            select(Match).where(Match.bracket_id.in_(list(matches_by_bracket))).order_by(Match.match_number)
        ).all()
        for match in all_matches:
            matches_by_bracket[match.bracket_id].append(match)

    category_winners = []
    podiums = []
    for bracket in brackets:
        podium = find_podium(matches_by_bracket[bracket.id])
        medals: List[tuple[str, Placement]] = []
        if podium.gold:
            medals.append(("gold", podium.gold))
        if podium.silver:
            medals.append(("silver", podium.silver))
        medals.extend(("bronze", placement) for placement in podium.bronze)
        podiums.append(medals)

        category_winners.append(
            {
                "category_name": bracket.category_name,
                "bracket_id": bracket.id,
                "status": bracket.status,
                "first_place": directory.describe(podium.gold.entrant_id, podium.gold.entrant_name)
                if podium.gold
                else None,
                "second_place": directory.describe(podium.silver.entrant_id, podium.silver.entrant_name)
                if podium.silver
                else None,
                "third_place": [directory.describe(p.entrant_id, p.entrant_name) for p in podium.bronze],
            }
        )

    every_match = [m for matches in matches_by_bracket.values() for m in matches]
    return {
        "tournament": {
            "id": event.id,
            "name": event.name,
            "date": event.start_date.isoformat() if event.start_date else None,
            "location": event.location or "",
            "total_participants": len(registrations),
            "total_categories": len(brackets),
            "completed_matches": len(scored_matches(every_match)),
            "total_matches": len(every_match),
        },
        "category_winners": category_winners,
        "dojo_leaderboard": dojo_leaderboard(podiums, directory),
        "performance_stats": performance_highlights(every_match, directory),
    }
