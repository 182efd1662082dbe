from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, func, select, text

from app.database import get_session
from app.models.tournament import MatchFormat, Phase, Tournament, TournamentType
from app.services.tournament_rules import DEFAULT_ADVANCEMENT_COUNT, DEFAULT_NUM_GROUPS
from app.utils.tournament_guards import get_tournament_or_404, require_registration_phase

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    tournament_type: TournamentType
    num_groups: int = Field(default=DEFAULT_NUM_GROUPS, ge=1)
    advancement_count: int = Field(default=DEFAULT_ADVANCEMENT_COUNT, ge=1)
    points_per_win: Optional[int] = Field(default=None, ge=0)
    match_format: MatchFormat = MatchFormat.best_of_3
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    tournament_type: Optional[TournamentType] = None
    num_groups: Optional[int] = Field(default=None, ge=1)
    advancement_count: Optional[int] = Field(default=None, ge=1)
    points_per_win: Optional[int] = Field(default=None, ge=0)
    match_format: Optional[MatchFormat] = None
    notes: Optional[str] = None


class TournamentResponse(BaseModel):
    id: int
    name: str
    tournament_type: TournamentType
    phase: Phase
    num_groups: int
    advancement_count: int
    points_per_win: Optional[int]
    match_format: MatchFormat
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a tournament in registration phase"""
    data = tournament_data.model_dump()
    data["tournament_type"] = tournament_data.tournament_type.value
    data["match_format"] = tournament_data.match_format.value
    tournament = Tournament(**data, phase=Phase.registration.value)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return get_tournament_or_404(session, tournament_id)


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """Edit configuration. Only allowed while the tournament is in registration."""
    tournament = require_registration_phase(get_tournament_or_404(session, tournament_id))

    update_data = tournament_data.model_dump(exclude_unset=True)
    if "name" in update_data and (not update_data["name"] or not update_data["name"].strip()):
        raise HTTPException(status_code=422, detail="name cannot be empty")
    for field, value in update_data.items():
        if isinstance(value, (TournamentType, MatchFormat)):
            value = value.value
        setattr(tournament, field, value)

    tournament.updated_at = datetime.now(timezone.utc)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Delete a tournament and all its related data (matches, groups, participants)"""
    exists = session.exec(select(func.count(Tournament.id)).where(Tournament.id == tournament_id)).one()
    if exists == 0:
        raise HTTPException(status_code=404, detail="Tournament not found")

    # Children before parents
    params = {"tournament_id": tournament_id}
    session.execute(text("DELETE FROM match WHERE tournament_id = :tournament_id"), params)
    session.execute(text("DELETE FROM phasegeneration WHERE tournament_id = :tournament_id"), params)
    session.execute(text("DELETE FROM participant WHERE tournament_id = :tournament_id"), params)
    session.execute(text("DELETE FROM tournamentgroup WHERE tournament_id = :tournament_id"), params)
    session.execute(text("DELETE FROM tournament WHERE id = :tournament_id"), params)
    session.commit()
    return None
