from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

from bracket_engine.utils.clock import utcnow

if TYPE_CHECKING:
    from bracket_engine.models.bracket import Bracket


class Medal(str, Enum):
    GOLD = "GOLD"
    SILVER = "SILVER"
    BRONZE = "BRONZE"


class Result(SQLModel, table=True):
    """Medal record for one entrant of a resolved bracket. Written once by the results calculator."""

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    bracket_id: int = Field(foreign_key="bracket.id", index=True)
    entrant_id: int
    entrant_name: Optional[str] = None
    category_name: str
    final_rank: int  # 1 gold, 2 silver, 3 bronze (bronze may tie)
    medal: Medal = Field(sa_column=Column(String, nullable=False))

    # Per-entrant bracket stats (byes excluded)
    total_matches: int = Field(default=0)
    matches_won: int = Field(default=0)
    matches_lost: int = Field(default=0)
    eliminated_in_round: Optional[str] = None  # "Champion" for gold
    eliminated_by_id: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    bracket: "Bracket" = Relationship(back_populates="results")
