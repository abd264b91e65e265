"""
Match progression: SCHEDULED -> LIVE -> COMPLETED, and winner advancement.

When a match completes, its winner is pushed into the first open slot of the match
it feeds. The match update and the advancement commit together, and the next match
is read with SELECT ... FOR UPDATE so two feeders completing at once cannot both
claim the same empty slot. COMPLETED is terminal: a repeated completion with the
same winner is absorbed, anything that would rewrite the outcome is rejected.
"""
import logging
from typing import Any, Dict, NamedTuple, Optional

from sqlmodel import Session, select

from bracket_engine.config import auto_calculate_results
from bracket_engine.models.bracket import Bracket, BracketStatus
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.services.broadcaster import (
    BRACKET_REFRESH,
    MATCH_STARTED,
    MATCH_UPDATE,
    Broadcaster,
    publish_safely,
)
from bracket_engine.services.errors import ConflictError, NotFoundError, PreconditionError, TournamentError
from bracket_engine.utils.clock import utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("score_a", "score_b", "winner_id", "status", "notes")


class MatchTransition(NamedTuple):
    match: Match
    advanced: bool = False  # winner was written into the next match
    completed: bool = False  # this call moved the match to COMPLETED


def fill_open_slot(match: Match, entrant_id: Optional[int], entrant_name: Optional[str]) -> bool:
    """
    Put an entrant into the first empty fighter slot of a match.

    No-op (returns False) when the entrant is already in the match or both slots
    are taken, so re-delivered completions never double-advance.
    """
    if entrant_id is None:
        return False
    if entrant_id in (match.fighter_a_id, match.fighter_b_id):
        return False
    if match.fighter_a_id is None:
        match.fighter_a_id = entrant_id
        match.fighter_a_name = entrant_name
        return True
    if match.fighter_b_id is None:
        match.fighter_b_id = entrant_id
        match.fighter_b_name = entrant_name
        return True
    logger.warning(f"Match {match.id} already has both fighters; not advancing entrant {entrant_id}")
    return False


def _lock_match(session: Session, match_id: int) -> Optional[Match]:
    return session.exec(
        select(Match).where(Match.id == match_id).with_for_update().execution_options(populate_existing=True)
    ).first()


def advance_winner(session: Session, match: Match) -> bool:
    """Write a completed match's winner into its next match. Does not commit."""
    if match.winner_id is None or match.next_match_id is None:
        return False
    next_match = _lock_match(session, match.next_match_id)
    if next_match is None:
        logger.error(f"Match {match.id} points at missing next match {match.next_match_id}")
        return False
    advanced = fill_open_slot(next_match, match.winner_id, match.winner_name())
    if advanced:
        session.add(next_match)
    return advanced


def match_snapshot(match: Match) -> Dict[str, Any]:
    """Full score/status view of a match, JSON-ready (used for live updates)."""
    return {
        "match_id": match.id,
        "bracket_id": match.bracket_id,
        "round_number": match.round_number,
        "round_name": match.round_name,
        "match_number": match.match_number,
        "fighter_a": {"id": match.fighter_a_id, "name": match.fighter_a_name},
        "fighter_b": {"id": match.fighter_b_id, "name": match.fighter_b_name},
        "status": match.status,
        "score_a": match.score_a,
        "score_b": match.score_b,
        "winner_id": match.winner_id,
        "started_at": match.started_at.isoformat() if match.started_at else None,
        "completed_at": match.completed_at.isoformat() if match.completed_at else None,
        "notes": match.notes,
    }


def _started_payload(match: Match) -> Dict[str, Any]:
    return {
        "match_id": match.id,
        "bracket_id": match.bracket_id,
        "round_name": match.round_name,
        "fighter_a": {"id": match.fighter_a_id, "name": match.fighter_a_name},
        "fighter_b": {"id": match.fighter_b_id, "name": match.fighter_b_name},
    }


def _parse_status(value: Any) -> MatchStatus:
    try:
        return MatchStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in MatchStatus)
        raise PreconditionError(f"Invalid match status '{value}'. Must be one of: {allowed}")


def _require_fighters(match: Match, action: str) -> None:
    if match.fighter_a_id is None or match.fighter_b_id is None:
        raise PreconditionError(f"Both fighters must be known before the match can {action}")


def _mark_bracket_in_progress(session: Session, bracket_id: int) -> None:
    bracket = session.get(Bracket, bracket_id)
    if bracket and bracket.status in (BracketStatus.DRAFT, BracketStatus.LOCKED):
        bracket.status = BracketStatus.IN_PROGRESS
        session.add(bracket)


def _tournament_id(session: Session, match: Match) -> Optional[int]:
    bracket = session.get(Bracket, match.bracket_id)
    return bracket.event_id if bracket else None


def start_match(session: Session, match_id: int, broadcaster: Optional[Broadcaster] = None) -> Match:
    """Move a match to LIVE and stamp started_at. Starting a live match again changes nothing."""
    match = _lock_match(session, match_id)
    if not match:
        raise NotFoundError("Match not found")
    if match.status == MatchStatus.COMPLETED:
        raise ConflictError("Match is already completed")
    _require_fighters(match, "start")

    if match.status == MatchStatus.LIVE:
        session.rollback()
        return match

    match.status = MatchStatus.LIVE
    if match.started_at is None:
        match.started_at = utcnow()
    session.add(match)
    _mark_bracket_in_progress(session, match.bracket_id)
    session.commit()
    session.refresh(match)

    tournament_id = _tournament_id(session, match)
    if tournament_id is not None:
        publish_safely(broadcaster, tournament_id, MATCH_STARTED, _started_payload(match))
    return match


def _apply_to_completed(session: Session, match: Match, changes: Dict[str, Any]) -> MatchTransition:
    """A completed match only accepts a repeat of its own completion (absorbed) or a notes edit."""
    status = changes.get("status")
    if status is not None and _parse_status(status) != MatchStatus.COMPLETED:
        raise ConflictError("Match is already completed; its status cannot change")
    winner_id = changes.get("winner_id")
    if winner_id is not None and winner_id != match.winner_id:
        raise ConflictError("Match is already completed with a different winner")
    for field in ("score_a", "score_b"):
        value = changes.get(field)
        if value is not None and value != getattr(match, field):
            raise ConflictError("Scores of a completed match cannot be changed")

    touched = False
    if "notes" in changes and changes["notes"] != match.notes:
        match.notes = changes["notes"]
        session.add(match)
        touched = True
    # Re-running advancement is safe and repairs a next match that missed its winner
    advanced = advance_winner(session, match)
    if touched or advanced:
        session.commit()
        session.refresh(match)
    else:
        session.rollback()
    if advanced:
        logger.info(f"Repeated completion of match {match.id} advanced winner {match.winner_id}")
    return MatchTransition(match=match, advanced=advanced, completed=False)


def update_match(
    session: Session,
    match_id: int,
    changes: Dict[str, Any],
    broadcaster: Optional[Broadcaster] = None,
) -> MatchTransition:
    """
    Apply a partial update to a match.

    changes may hold any of score_a, score_b, winner_id, status, notes; missing keys
    leave the field untouched. status LIVE stamps started_at (if unset), COMPLETED
    stamps completed_at, needs a winner and advances it.

    Raises:
        NotFoundError: unknown match
        PreconditionError: bad status, winner not in the match, fighters missing
        ConflictError: reverting LIVE to SCHEDULED, rewriting a completed match
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise PreconditionError(f"Unknown match fields: {', '.join(sorted(unknown))}")

    match = _lock_match(session, match_id)
    if not match:
        raise NotFoundError("Match not found")

    if match.status == MatchStatus.COMPLETED:
        return _apply_to_completed(session, match, changes)

    new_status = _parse_status(changes["status"]) if changes.get("status") is not None else None
    winner_id = changes.get("winner_id")

    if new_status == MatchStatus.SCHEDULED and match.status == MatchStatus.LIVE:
        raise ConflictError("Cannot revert a live match to SCHEDULED")
    if new_status in (MatchStatus.LIVE, MatchStatus.COMPLETED):
        _require_fighters(match, "start" if new_status == MatchStatus.LIVE else "complete")
    if winner_id is not None and winner_id not in (match.fighter_a_id, match.fighter_b_id):
        raise PreconditionError("Winner must be one of the match's fighters")
    if new_status == MatchStatus.COMPLETED and winner_id is None and match.winner_id is None:
        raise PreconditionError("winner_id required when completing a match")

    for field in ("score_a", "score_b"):
        if changes.get(field) is not None:
            setattr(match, field, changes[field])
    if "notes" in changes:
        match.notes = changes["notes"]
    if winner_id is not None:
        match.winner_id = winner_id

    now = utcnow()
    became_live = False
    completed = False
    if new_status == MatchStatus.LIVE and match.status == MatchStatus.SCHEDULED:
        match.status = MatchStatus.LIVE
        became_live = True
        if match.started_at is None:
            match.started_at = now
    elif new_status == MatchStatus.COMPLETED:
        # started_at stays null if the bout was never started; duration stats skip it
        match.status = MatchStatus.COMPLETED
        match.completed_at = now
        completed = True
    session.add(match)

    if became_live or completed:
        _mark_bracket_in_progress(session, match.bracket_id)

    advanced = advance_winner(session, match) if completed else False
    session.commit()
    session.refresh(match)

    if completed:
        logger.info(
            f"Match {match.id} (bracket {match.bracket_id}) completed, winner {match.winner_id}"
            + (", advanced to next match" if advanced else "")
        )
        if auto_calculate_results():
            _auto_calculate_results(session, match.bracket_id)

    tournament_id = _tournament_id(session, match)
    if tournament_id is not None:
        if became_live:
            publish_safely(broadcaster, tournament_id, MATCH_STARTED, _started_payload(match))
        publish_safely(broadcaster, tournament_id, MATCH_UPDATE, match_snapshot(match))
        if completed:
            publish_safely(broadcaster, tournament_id, BRACKET_REFRESH, {"bracket_id": match.bracket_id})

    return MatchTransition(match=match, advanced=advanced, completed=completed)


def end_match(
    session: Session,
    match_id: int,
    winner_id: int,
    notes: Optional[str] = None,
    score_a: Optional[int] = None,
    score_b: Optional[int] = None,
    broadcaster: Optional[Broadcaster] = None,
) -> MatchTransition:
    """Complete a match with a winner. Same rules as update_match with status COMPLETED."""
    changes: Dict[str, Any] = {"status": MatchStatus.COMPLETED.value, "winner_id": winner_id}
    if notes is not None:
        changes["notes"] = notes
    if score_a is not None:
        changes["score_a"] = score_a
    if score_b is not None:
        changes["score_b"] = score_b
    return update_match(session, match_id, changes, broadcaster=broadcaster)


def _auto_calculate_results(session: Session, bracket_id: int) -> None:
    from bracket_engine.services.results_service import bracket_is_resolved, calculate_bracket_results

    if not bracket_is_resolved(session, bracket_id):
        return
    try:
        calculate_bracket_results(session, bracket_id)
    except TournamentError as e:
        # Completion is already committed; results can still be calculated by hand
        logger.warning(f"Automatic results for bracket {bracket_id} skipped: {e}")
