"""Bracket administration and read helpers (fetch, status changes, deletion, live listing)."""
import logging
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from bracket_engine.models.bracket import Bracket, BracketStatus
from bracket_engine.models.event import Event, EventStatus
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.registration import Registration
from bracket_engine.services.errors import NotFoundError, PreconditionError
from bracket_engine.services.seeding import CategoryKey, seed_event
from bracket_engine.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _require_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


def get_event_brackets(session: Session, event_id: int) -> List[Tuple[Bracket, List[Match]]]:
    """Brackets of an event with their matches, matches ordered by match number."""
    _require_event(session, event_id)
    brackets = session.exec(select(Bracket).where(Bracket.event_id == event_id).order_by(Bracket.id)).all()
    out = []
    for bracket in brackets:
        matches = session.exec(
            select(Match).where(Match.bracket_id == bracket.id).order_by(Match.match_number)
        ).all()
        out.append((bracket, list(matches)))
    return out


def update_bracket_status(session: Session, bracket_id: int, status: str) -> Bracket:
    try:
        new_status = BracketStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in BracketStatus)
        raise PreconditionError(f"Invalid bracket status '{status}'. Must be one of: {allowed}")

    bracket = session.get(Bracket, bracket_id)
    if not bracket:
        raise NotFoundError("Bracket not found")

    bracket.status = new_status
    if new_status == BracketStatus.LOCKED:
        bracket.locked_at = utcnow()
    if new_status == BracketStatus.COMPLETED:
        bracket.completed_at = utcnow()
    session.add(bracket)
    session.commit()
    session.refresh(bracket)
    logger.info(f"Bracket {bracket_id} status set to {new_status.value}")
    return bracket


def delete_bracket(session: Session, bracket_id: int) -> None:
    """Delete a bracket; its matches and results go with it."""
    bracket = session.get(Bracket, bracket_id)
    if not bracket:
        raise NotFoundError("Bracket not found")
    # Unlink first so deleting the matches never trips the self-referencing FK
    for match in bracket.matches:
        match.next_match_id = None
        session.add(match)
    session.flush()
    event = session.get(Event, bracket.event_id)
    session.delete(bracket)
    # The event is no longer fully resolved once one of its brackets is gone
    if event and event.status == EventStatus.COMPLETED:
        event.status = EventStatus.UPCOMING
        session.add(event)
        logger.info(f"Event {event.id} reopened after deleting bracket {bracket_id}")
    session.commit()
    logger.info(f"Deleted bracket {bracket_id}")


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFoundError("Match not found")
    return match


def list_live_matches(session: Session, event_id: Optional[int] = None) -> List[Tuple[Match, Bracket]]:
    query = (
        select(Match, Bracket)
        .join(Bracket, Match.bracket_id == Bracket.id)
        .where(Match.status == MatchStatus.LIVE.value)
    )
    if event_id is not None:
        query = query.where(Bracket.event_id == event_id)
    query = query.order_by(Match.started_at, Match.id)
    return [(match, bracket) for match, bracket in session.exec(query).all()]


def preview_categories(session: Session, event_id: int) -> List[Tuple[CategoryKey, List[Registration]]]:
    """Categories and seeding an event would get, without building anything."""
    _require_event(session, event_id)
    return list(seed_event(session, event_id).items())
