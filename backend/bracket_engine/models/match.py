from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.bracket import Bracket


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("bracket_id", "match_number", name="uq_bracket_match_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="bracket.id", index=True)
    round_number: int  # 1-based, final has the highest
    round_name: str  # "Final" | "Semi-Finals" | "Quarter-Finals" | "Round N"
    match_number: int  # unique within bracket, creation order across all rounds

    # Fighter slots (nullable until seeded or advanced into)
    fighter_a_id: Optional[int] = Field(default=None)
    fighter_a_name: Optional[str] = Field(default=None)
    fighter_b_id: Optional[int] = Field(default=None)
    fighter_b_name: Optional[str] = Field(default=None)

    is_bye: bool = Field(default=False)
    status: MatchStatus = Field(default=MatchStatus.SCHEDULED, sa_column=Column(String, nullable=False))
    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)
    winner_id: Optional[int] = Field(default=None)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    # The match this one's winner feeds into; null only for the final
    next_match_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("match.id", ondelete="SET NULL"), nullable=True, index=True),
    )

    # Relationships
    bracket: "Bracket" = Relationship(back_populates="matches")

    def winner_name(self) -> Optional[str]:
        if self.winner_id is None:
            return None
        if self.winner_id == self.fighter_a_id:
            return self.fighter_a_name
        if self.winner_id == self.fighter_b_id:
            return self.fighter_b_name
        return None

    def loser(self) -> tuple[Optional[int], Optional[str]]:
        """(id, name) of the fighter who did not win; (None, None) for byes or undecided bouts."""
        if self.winner_id is None:
            return None, None
        if self.winner_id == self.fighter_a_id:
            return self.fighter_b_id, self.fighter_b_name
        return self.fighter_a_id, self.fighter_a_name
