from bracket_engine.models.bracket import Bracket, BracketStatus
from bracket_engine.models.event import Event, EventStatus
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.registration import Registration
from bracket_engine.models.result import Medal, Result

__all__ = [
    "Event",
    "EventStatus",
    "Registration",
    "Bracket",
    "BracketStatus",
    "Match",
    "MatchStatus",
    "Result",
    "Medal",
]
