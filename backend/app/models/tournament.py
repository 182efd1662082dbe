from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.group import TournamentGroup
    from app.models.match import Match
    from app.models.participant import Participant


class TournamentType(str, Enum):
    eliminazione_diretta = "eliminazione_diretta"
    girone_eliminazione = "girone_eliminazione"
    campionato = "campionato"


class Phase(str, Enum):
    registration = "registration"
    group_stage = "group_stage"
    knockout = "knockout"
    in_progress = "in_progress"
    completed = "completed"


class MatchFormat(str, Enum):
    best_of_3 = "best_of_3"
    best_of_5 = "best_of_5"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    tournament_type: TournamentType = Field(sa_column=Column(String, nullable=False))
    phase: Phase = Field(default=Phase.registration, sa_column=Column(String, nullable=False))

    # Group format only
    num_groups: int = Field(default=2)
    advancement_count: int = Field(default=2)

    # None -> format default (2 elimination/group, 3 championship)
    points_per_win: Optional[int] = Field(default=None)
    match_format: MatchFormat = Field(default=MatchFormat.best_of_3, sa_column=Column(String, nullable=False))

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={"onupdate": _utcnow})

    # Relationships
    participants: List["Participant"] = Relationship(back_populates="tournament")
    groups: List["TournamentGroup"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
