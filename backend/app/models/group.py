from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.participant import Participant
    from app.models.tournament import Tournament


class TournamentGroup(SQLModel, table=True):
    __tablename__ = "tournamentgroup"
    __table_args__ = (SAUniqueConstraint("tournament_id", "ordinal", name="uq_tournament_group_ordinal"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str  # "A", "B", ...
    ordinal: int  # 1-based position
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="groups")
    participants: List["Participant"] = Relationship(back_populates="group")
