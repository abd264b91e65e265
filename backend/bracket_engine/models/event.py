from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

from bracket_engine.utils.clock import utcnow

if TYPE_CHECKING:
    from bracket_engine.models.bracket import Bracket
    from bracket_engine.models.registration import Registration


class EventStatus(str, Enum):
    UPCOMING = "UPCOMING"
    COMPLETED = "COMPLETED"


class Event(SQLModel, table=True):
    """Mirror of the federation event record. Owned by the events service; we only read it
    (and flip status to COMPLETED once every bracket is resolved)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: Optional[str] = None
    start_date: Optional[date] = None
    status: EventStatus = Field(default=EventStatus.UPCOMING, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    registrations: List["Registration"] = Relationship(back_populates="event")
    brackets: List["Bracket"] = Relationship(back_populates="event")
