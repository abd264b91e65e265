"""
Results & medal calculation for resolved brackets.

Gold is the final's winner, silver the final's other fighter, bronze the losers of
the matches one round before the final (two bronzes, shared rank 3).
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional

from sqlmodel import Session, select

from bracket_engine.models.bracket import Bracket, BracketStatus
from bracket_engine.models.event import Event, EventStatus
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.result import Medal, Result
from bracket_engine.services.errors import ConflictError, ConsistencyError, NotFoundError, PreconditionError
from bracket_engine.utils.clock import utcnow

logger = logging.getLogger(__name__)

CHAMPION = "Champion"


class Placement(NamedTuple):
    entrant_id: int
    entrant_name: Optional[str]
    eliminated_in_round: str
    eliminated_by_id: Optional[int]


class Podium(NamedTuple):
    gold: Optional[Placement]
    silver: Optional[Placement]
    bronze: List[Placement]


@dataclass
class ParticipantStats:
    total_matches: int = 0
    matches_won: int = 0
    matches_lost: int = 0


def find_final(matches: List[Match]) -> Optional[Match]:
    """The match with the highest round number (the one with no next match if several tie)."""
    if not matches:
        return None
    final_round = max(m.round_number for m in matches)
    finals = [m for m in matches if m.round_number == final_round]
    finals.sort(key=lambda m: (m.next_match_id is not None, m.match_number))
    return finals[0]


def find_podium(matches: List[Match]) -> Podium:
    """
    Read medallists off a bracket's match tree.

    Works on partially played brackets too: places whose deciding bout has no
    winner yet are left empty.
    """
    final = find_final(matches)
    if final is None or final.winner_id is None:
        return Podium(gold=None, silver=None, bronze=[])

    gold = Placement(final.winner_id, final.winner_name(), CHAMPION, None)
    silver = None
    loser_id, loser_name = final.loser()
    if loser_id is not None:
        silver = Placement(loser_id, loser_name, final.round_name, final.winner_id)

    bronze = []
    semis = sorted(
        (m for m in matches if m.round_number == final.round_number - 1),
        key=lambda m: m.match_number,
    )
    for semi in semis:
        loser_id, loser_name = semi.loser()
        if loser_id is not None:
            bronze.append(Placement(loser_id, loser_name, semi.round_name, semi.winner_id))
    return Podium(gold=gold, silver=silver, bronze=bronze)


def participant_stats(matches: List[Match]) -> Dict[int, ParticipantStats]:
    """Bouts fought, won and lost per entrant over completed non-bye matches."""
    stats: Dict[int, ParticipantStats] = {}
    for match in matches:
        if match.is_bye or match.status != MatchStatus.COMPLETED:
            continue
        for fighter_id in (match.fighter_a_id, match.fighter_b_id):
            if fighter_id is None:
                continue
            entry = stats.setdefault(fighter_id, ParticipantStats())
            entry.total_matches += 1
            if fighter_id == match.winner_id:
                entry.matches_won += 1
            else:
                entry.matches_lost += 1
    return stats


def bracket_is_resolved(session: Session, bracket_id: int) -> bool:
    """True when the bracket has matches, all completed, and no results yet."""
    matches = session.exec(select(Match).where(Match.bracket_id == bracket_id)).all()
    if not matches or any(m.status != MatchStatus.COMPLETED for m in matches):
        return False
    existing = session.exec(select(Result.id).where(Result.bracket_id == bracket_id)).first()
    return existing is None


def _mark_event_completed_if_done(session: Session, event_id: int) -> None:
    brackets = session.exec(select(Bracket).where(Bracket.event_id == event_id)).all()
    if brackets and all(b.status == BracketStatus.COMPLETED for b in brackets):
        event = session.get(Event, event_id)
        if event and event.status != EventStatus.COMPLETED:
            event.status = EventStatus.COMPLETED
            session.add(event)
            logger.info(f"Event {event_id} marked as COMPLETED")


def calculate_bracket_results(session: Session, bracket_id: int) -> List[Result]:
    """
    Write medal results for a fully completed bracket and mark it COMPLETED.

    Raises:
        NotFoundError: unknown bracket
        ConflictError: results already written for this bracket
        PreconditionError: no matches, or some match not completed (nothing is written)
        ConsistencyError: the final has no winner
    """
    bracket = session.get(Bracket, bracket_id)
    if not bracket:
        raise NotFoundError("Bracket not found")

    existing = session.exec(select(Result.id).where(Result.bracket_id == bracket_id)).first()
    if existing is not None:
        raise ConflictError("Results have already been calculated for this bracket")

    matches = list(
        session.exec(
            select(Match).where(Match.bracket_id == bracket_id).order_by(Match.match_number)
        ).all()
    )
    if not matches:
        raise PreconditionError("Bracket has no matches")

    remaining = [m for m in matches if m.status != MatchStatus.COMPLETED]
    if remaining:
        raise PreconditionError(
            f"Cannot calculate results until all matches are completed ({len(remaining)} remaining)"
        )

    podium = find_podium(matches)
    if podium.gold is None:
        logger.error(f"Bracket {bracket_id} ({bracket.category_name}) is fully completed but its final has no winner")
        raise ConsistencyError("Final match not found or has no winner")

    stats = participant_stats(matches)
    ranked = [(1, Medal.GOLD, podium.gold)]
    if podium.silver:
        ranked.append((2, Medal.SILVER, podium.silver))
    ranked.extend((3, Medal.BRONZE, placement) for placement in podium.bronze)

    results = []
    for rank, medal, placement in ranked:
        entrant_stats = stats.get(placement.entrant_id, ParticipantStats())
        results.append(
            Result(
                event_id=bracket.event_id,
                bracket_id=bracket.id,
                entrant_id=placement.entrant_id,
                entrant_name=placement.entrant_name,
                category_name=bracket.category_name,
                final_rank=rank,
                medal=medal,
                total_matches=entrant_stats.total_matches,
                matches_won=entrant_stats.matches_won,
                matches_lost=entrant_stats.matches_lost,
                eliminated_in_round=placement.eliminated_in_round,
                eliminated_by_id=placement.eliminated_by_id,
            )
        )
    session.add_all(results)

    bracket.status = BracketStatus.COMPLETED
    bracket.completed_at = utcnow()
    session.add(bracket)
    session.flush()
    _mark_event_completed_if_done(session, bracket.event_id)

    session.commit()
    for result in results:
        session.refresh(result)
    logger.info(f"Recorded {len(results)} results for bracket {bracket_id} ({bracket.category_name})")
    return results


def get_event_results(session: Session, event_id: int) -> List[Result]:
    if not session.get(Event, event_id):
        raise NotFoundError("Event not found")
    return list(
        session.exec(
            select(Result)
            .where(Result.event_id == event_id)
            .order_by(Result.final_rank, Result.category_name, Result.id)
        ).all()
    )
