"""
Live match control: start, score, end. Completing a match advances its winner
into the next match and notifies spectators of the event.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from bracket_engine.database import get_session
from bracket_engine.routes.common import get_broadcaster, http_error
from bracket_engine.services.bracket_service import get_match, list_live_matches
from bracket_engine.services.broadcaster import Broadcaster
from bracket_engine.services.errors import TournamentError
from bracket_engine.services.match_progression import end_match, start_match, update_match

router = APIRouter()


class MatchResponse(BaseModel):
    id: int
    bracket_id: int
    round_number: int
    round_name: str
    match_number: int
    fighter_a_id: Optional[int] = None
    fighter_a_name: Optional[str] = None
    fighter_b_id: Optional[int] = None
    fighter_b_name: Optional[str] = None
    is_bye: bool
    status: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    winner_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    next_match_id: Optional[int] = None

    class Config:
        from_attributes = True


class MatchUpdateResponse(BaseModel):
    match: MatchResponse
    advanced: bool = False


class LiveMatchResponse(MatchResponse):
    event_id: int
    category_name: str


class MatchScoreUpdate(BaseModel):
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    winner_id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class MatchEnd(BaseModel):
    winner_id: int
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    notes: Optional[str] = None


@router.get("/matches/live", response_model=List[LiveMatchResponse])
def get_live_matches(event_id: Optional[int] = None, session: Session = Depends(get_session)):
    """All LIVE matches, optionally for one event. Oldest start first."""
    return [
        LiveMatchResponse(
            **MatchResponse.model_validate(match).model_dump(),
            event_id=bracket.event_id,
            category_name=bracket.category_name,
        )
        for match, bracket in list_live_matches(session, event_id)
    ]


@router.get("/matches/{match_id}", response_model=MatchResponse)
def get_match_detail(match_id: int, session: Session = Depends(get_session)):
    try:
        return get_match(session, match_id)
    except TournamentError as e:
        raise http_error(e)


@router.post("/matches/{match_id}/start", response_model=MatchResponse)
def start_match_endpoint(
    match_id: int,
    session: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Put a match LIVE and stamp its start time."""
    try:
        return start_match(session, match_id, broadcaster=broadcaster)
    except TournamentError as e:
        raise http_error(e)


@router.patch("/matches/{match_id}", response_model=MatchUpdateResponse)
def update_match_score(
    match_id: int,
    payload: MatchScoreUpdate,
    session: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> MatchUpdateResponse:
    """Partial update of score/winner/status/notes. Only fields present in the body change."""
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        transition = update_match(session, match_id, changes, broadcaster=broadcaster)
    except TournamentError as e:
        raise http_error(e)
    return MatchUpdateResponse(
        match=MatchResponse.model_validate(transition.match),
        advanced=transition.advanced,
    )


@router.post("/matches/{match_id}/end", response_model=MatchUpdateResponse)
def end_match_endpoint(
    match_id: int,
    payload: MatchEnd,
    session: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> MatchUpdateResponse:
    """Complete a match with a winner and advance the winner to the next round."""
    try:
        transition = end_match(
            session,
            match_id,
            winner_id=payload.winner_id,
            notes=payload.notes,
            score_a=payload.score_a,
            score_b=payload.score_b,
            broadcaster=broadcaster,
        )
    except TournamentError as e:
        raise http_error(e)
    return MatchUpdateResponse(
        match=MatchResponse.model_validate(transition.match),
        advanced=transition.advanced,
    )
