from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from bracket_engine.utils.clock import utcnow

if TYPE_CHECKING:
    from bracket_engine.models.event import Event
    from bracket_engine.models.match import Match
    from bracket_engine.models.result import Result


class BracketStatus(str, Enum):
    DRAFT = "DRAFT"
    LOCKED = "LOCKED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Bracket(SQLModel, table=True):
    # One bracket per band triple; category_name is display only and may collide
    __table_args__ = (
        SAUniqueConstraint("event_id", "category_age", "category_weight", "category_belt", name="uq_event_category"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    category_name: str  # "<age>, <weight>, <belt>"
    category_age: str
    category_weight: str
    category_belt: str
    total_participants: int
    status: BracketStatus = Field(default=BracketStatus.DRAFT, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)
    locked_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships (bracket owns its matches and results)
    event: "Event" = Relationship(back_populates="brackets")
    matches: List["Match"] = Relationship(
        back_populates="bracket",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Match.match_number"},
    )
    results: List["Result"] = Relationship(
        back_populates="bracket", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
