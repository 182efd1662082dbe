from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.group import TournamentGroup
    from app.models.tournament import Tournament


class Participant(SQLModel, table=True):
    __table_args__ = (
        # Enforce unique seeds within a tournament (where seed is not null)
        SAUniqueConstraint("tournament_id", "seed", name="uq_tournament_seed"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    user_id: Optional[str] = Field(default=None)  # identity reference, opaque to the engine
    seed: Optional[int] = Field(default=None)  # 1-based seed (1=strongest)
    group_id: Optional[int] = Field(default=None, foreign_key="tournamentgroup.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="participants")
    group: Optional["TournamentGroup"] = Relationship(back_populates="participants")
