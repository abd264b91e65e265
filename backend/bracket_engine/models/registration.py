from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from bracket_engine.utils.clock import utcnow

if TYPE_CHECKING:
    from bracket_engine.models.event import Event

APPROVED = "APPROVED"


class Registration(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "entrant_id", name="uq_event_entrant"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    entrant_id: int  # user id in the membership service
    entrant_name: str
    dojo_name: Optional[str] = None
    belt_rank: Optional[str] = None  # e.g. "Green", "Black 2nd Dan"

    # Category bands are opaque labels ("U12", "-45kg", "Kyu"); null means Open
    category_age: Optional[str] = None
    category_weight: Optional[str] = None
    category_belt: Optional[str] = None

    approval_status: str = Field(default="PENDING")  # PENDING | APPROVED | REJECTED
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    event: "Event" = Relationship(back_populates="registrations")
