from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.participant import Participant
from app.services.errors import InvalidSeeding
from app.services.seeding import order_by_seed
from app.utils.tournament_guards import (
    engine_http_error,
    get_participant_or_404,
    get_tournament_or_404,
    require_registration_phase,
)

router = APIRouter()


class ParticipantCreate(BaseModel):
    name: str
    user_id: Optional[str] = None
    seed: Optional[int] = Field(default=None)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class ParticipantResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    user_id: Optional[str]
    seed: Optional[int]
    group_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/tournaments/{tournament_id}/participants", response_model=ParticipantResponse, status_code=201)
def register_participant(tournament_id: int, data: ParticipantCreate, session: Session = Depends(get_session)):
    """Register a participant. Seeds are optional but must be positive and unique."""
    require_registration_phase(get_tournament_or_404(session, tournament_id))

    if data.seed is not None:
        if data.seed < 1:
            raise engine_http_error(InvalidSeeding(f"Seed must be a positive integer, got {data.seed}"))
        taken = session.exec(
            select(Participant).where(Participant.tournament_id == tournament_id, Participant.seed == data.seed)
        ).first()
        if taken:
            raise engine_http_error(InvalidSeeding(f"Seed {data.seed} is already held by {taken.name}"))

    participant = Participant(tournament_id=tournament_id, **data.model_dump())
    session.add(participant)
    session.commit()
    session.refresh(participant)
    return participant


@router.get("/tournaments/{tournament_id}/participants", response_model=List[ParticipantResponse])
def list_participants(tournament_id: int, session: Session = Depends(get_session)):
    """Participants in seed order (unseeded last, then registration time, then id)."""
    get_tournament_or_404(session, tournament_id)
    participants = session.exec(select(Participant).where(Participant.tournament_id == tournament_id)).all()
    return order_by_seed(participants)


@router.delete("/tournaments/{tournament_id}/participants/{participant_id}", status_code=204)
def withdraw_participant(tournament_id: int, participant_id: int, session: Session = Depends(get_session)):
    require_registration_phase(get_tournament_or_404(session, tournament_id))
    participant = get_participant_or_404(session, tournament_id, participant_id)
    session.delete(participant)
    session.commit()
    return None
