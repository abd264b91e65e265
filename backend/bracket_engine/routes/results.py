"""Medal results and event statistics"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from bracket_engine.database import get_session
from bracket_engine.routes.common import http_error
from bracket_engine.services.errors import TournamentError
from bracket_engine.services.results_service import calculate_bracket_results, get_event_results
from bracket_engine.services.statistics_service import get_tournament_statistics

router = APIRouter()


class ResultResponse(BaseModel):
    id: int
    event_id: int
    bracket_id: int
    entrant_id: int
    entrant_name: Optional[str] = None
    category_name: str
    final_rank: int
    medal: str
    total_matches: int
    matches_won: int
    matches_lost: int
    eliminated_in_round: Optional[str] = None
    eliminated_by_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


@router.post("/brackets/{bracket_id}/results", response_model=List[ResultResponse], status_code=201)
def calculate_results(bracket_id: int, session: Session = Depends(get_session)):
    """
    Record gold, silver and bronze for a bracket whose matches are all completed.

    Marks the bracket COMPLETED, and the event too once every bracket is.
    Returns 409 if results already exist for the bracket.
    """
    try:
        return calculate_bracket_results(session, bracket_id)
    except TournamentError as e:
        raise http_error(e)


@router.get("/events/{event_id}/results", response_model=List[ResultResponse])
def list_event_results(event_id: int, session: Session = Depends(get_session)):
    try:
        return get_event_results(session, event_id)
    except TournamentError as e:
        raise http_error(e)


@router.get("/events/{event_id}/statistics")
def event_statistics(event_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Category winners, dojo medal leaderboard and performance highlights"""
    try:
        return get_tournament_statistics(session, event_id)
    except TournamentError as e:
        raise http_error(e)
