import json
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session

from bracket_engine.database import get_engine, get_session
from bracket_engine.models.event import Event
from bracket_engine.routes.common import http_error
from bracket_engine.routes.matches import MatchResponse
from bracket_engine.services.bracket_builder import generate_brackets, iter_generate_brackets
from bracket_engine.services.bracket_service import (
    delete_bracket,
    get_event_brackets,
    preview_categories,
    update_bracket_status,
)
from bracket_engine.services.errors import TournamentError
from bracket_engine.services.seeding import belt_value

logger = logging.getLogger(__name__)

router = APIRouter()


class BracketSummary(BaseModel):
    id: int
    event_id: int
    category_name: str
    category_age: str
    category_weight: str
    category_belt: str
    total_participants: int
    status: str
    created_at: datetime
    locked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BracketWithMatches(BracketSummary):
    matches: List[MatchResponse] = []


class BracketStatusUpdate(BaseModel):
    status: str


class SeededEntrant(BaseModel):
    seed: int
    registration_id: int
    entrant_id: int
    entrant_name: str
    dojo_name: Optional[str] = None
    belt_rank: Optional[str] = None
    belt_value: int


class CategoryPreview(BaseModel):
    category_name: str
    category_age: str
    category_weight: str
    category_belt: str
    participant_count: int
    entrants: List[SeededEntrant]


@router.get("/events/{event_id}/categories", response_model=List[CategoryPreview])
def get_event_categories(event_id: int, session: Session = Depends(get_session)):
    """Preview how approved participants would be grouped and seeded"""
    try:
        categories = preview_categories(session, event_id)
    except TournamentError as e:
        raise http_error(e)

    return [
        CategoryPreview(
            category_name=key.name,
            category_age=key.age,
            category_weight=key.weight,
            category_belt=key.belt,
            participant_count=len(entrants),
            entrants=[
                SeededEntrant(
                    seed=seed,
                    registration_id=reg.id,
                    entrant_id=reg.entrant_id,
                    entrant_name=reg.entrant_name,
                    dojo_name=reg.dojo_name,
                    belt_rank=reg.belt_rank,
                    belt_value=belt_value(reg.belt_rank),
                )
                for seed, reg in enumerate(entrants, start=1)
            ],
        )
        for key, entrants in categories
    ]


@router.post("/events/{event_id}/brackets/generate", response_model=List[BracketSummary], status_code=201)
def generate_event_brackets(event_id: int, session: Session = Depends(get_session)):
    """Build one single-elimination bracket per category. Rejected if the event already has brackets."""
    try:
        return generate_brackets(session, event_id)
    except TournamentError as e:
        raise http_error(e)


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("/events/{event_id}/brackets/generate/stream")
def generate_event_brackets_stream(event_id: int, bind: Engine = Depends(get_engine)):
    """
    Same as POST /brackets/generate, reported as Server-Sent Events.

    Each event is {"phase", "message", "progress"}; the last one is either
    phase "complete" (with the created brackets) or phase "error".
    """
    with Session(bind) as session:
        if not session.get(Event, event_id):
            raise HTTPException(status_code=404, detail="Event not found")

    def events():
        # Own session: the request-scoped one is closed before the body streams
        with Session(bind) as session:
            try:
                for step in iter_generate_brackets(session, event_id):
                    payload = {"phase": step.phase, "message": step.message, "progress": step.progress}
                    if step.brackets is not None:
                        payload["brackets"] = [
                            BracketSummary.model_validate(b).model_dump(mode="json") for b in step.brackets
                        ]
                    yield _sse(payload)
            except TournamentError as e:
                yield _sse({"phase": "error", "message": str(e), "progress": 100})
            except Exception:
                logger.exception(f"Bracket generation failed for event {event_id}")
                yield _sse({"phase": "error", "message": "Bracket generation failed", "progress": 100})

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/events/{event_id}/brackets", response_model=List[BracketWithMatches])
def get_brackets(event_id: int, session: Session = Depends(get_session)):
    """Brackets of an event with nested matches in match-number order"""
    try:
        brackets = get_event_brackets(session, event_id)
    except TournamentError as e:
        raise http_error(e)

    return [
        BracketWithMatches(
            **BracketSummary.model_validate(bracket).model_dump(),
            matches=[MatchResponse.model_validate(m) for m in matches],
        )
        for bracket, matches in brackets
    ]


@router.patch("/brackets/{bracket_id}/status", response_model=BracketSummary)
def set_bracket_status(bracket_id: int, payload: BracketStatusUpdate, session: Session = Depends(get_session)):
    try:
        return update_bracket_status(session, bracket_id, payload.status)
    except TournamentError as e:
        raise http_error(e)


@router.delete("/brackets/{bracket_id}", status_code=204)
def remove_bracket(bracket_id: int, session: Session = Depends(get_session)):
    """Delete a bracket with its matches and results (allows regenerating an event)"""
    try:
        delete_bracket(session, bracket_id)
    except TournamentError as e:
        raise http_error(e)
    return Response(status_code=204)
