from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import JSON, String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from app.models.tournament import Phase

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class MatchStatus(str, Enum):
    pending = "pending"  # bracket slot waiting for upstream winners
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_number", name="uq_tournament_match_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="tournamentgroup.id", index=True)
    phase: Phase = Field(sa_column=Column(String, nullable=False))
    round_number: int
    round_name: str
    match_number: int  # sequential within the tournament
    bracket_position: Optional[int] = Field(default=None)  # 1-based position within the round (knockout only)

    # Nullable: unresolved bracket slot or bye
    participant_a_id: Optional[int] = Field(default=None, foreign_key="participant.id")
    participant_b_id: Optional[int] = Field(default=None, foreign_key="participant.id")

    status: MatchStatus = Field(default=MatchStatus.scheduled, sa_column=Column(String, nullable=False))
    winner_id: Optional[int] = Field(default=None, foreign_key="participant.id")
    score_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
