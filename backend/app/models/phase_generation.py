from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel


class PhaseGeneration(SQLModel, table=True):
    """One row per (tournament, phase) whose matches/groups were generated.

    The unique constraint is the atomic half of the check-then-insert guard:
    two concurrent transitions into the same phase cannot both commit.
    """

    __tablename__ = "phasegeneration"
    __table_args__ = (SAUniqueConstraint("tournament_id", "phase", name="uq_tournament_phase_generation"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: str = Field(sa_column=Column(String, nullable=False))
    matches_created: int = Field(default=0)
    groups_created: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
