"""
Stage operations: thin HTTP surface over the StageController.

Every mutating endpoint is gated by the caller role and returns the
StageOutcome; a failed outcome is rendered through the engine error map.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from app.database import get_session
from app.models.tournament import Phase
from app.services.stage_controller import StageController, StageOutcome
from app.services.tournament_store import SqlTournamentStore
from app.utils.roles import require_organizer
from app.utils.tournament_guards import engine_http_error, get_tournament_or_404

router = APIRouter()


class StageOutcomeResponse(BaseModel):
    tournament_id: int
    phase: Phase
    matches_created: int
    groups_created: int
    details: Dict[str, Any] = {}


class GroupMember(BaseModel):
    id: int
    name: str
    seed: Optional[int]


class GroupResponse(BaseModel):
    id: int
    name: str
    ordinal: int
    participants: List[GroupMember]


class ResolveBracketResponse(BaseModel):
    advanced_count: int


def _controller(session: Session) -> StageController:
    return StageController(SqlTournamentStore(session))


def _render(outcome: StageOutcome) -> StageOutcomeResponse:
    if not outcome.ok:
        raise engine_http_error(outcome.error)
    return StageOutcomeResponse(
        tournament_id=outcome.tournament_id,
        phase=outcome.phase,
        matches_created=outcome.matches_created,
        groups_created=outcome.groups_created,
        details=outcome.details,
    )


@router.post("/tournaments/{tournament_id}/start", response_model=StageOutcomeResponse)
def start_tournament(
    tournament_id: int,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
):
    """First transition out of registration: bracket, groups or full round robin."""
    return _render(_controller(session).start_tournament(tournament_id))


@router.post("/tournaments/{tournament_id}/generate-bracket", response_model=StageOutcomeResponse)
def generate_bracket(
    tournament_id: int,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
):
    return _render(_controller(session).generate_bracket(tournament_id))


@router.post("/tournaments/{tournament_id}/advance-stage", response_model=StageOutcomeResponse)
def advance_stage(
    tournament_id: int,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
):
    return _render(_controller(session).advance_stage(tournament_id))


@router.post("/tournaments/{tournament_id}/complete", response_model=StageOutcomeResponse)
def complete_tournament(
    tournament_id: int,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
):
    return _render(_controller(session).complete_tournament(tournament_id))


@router.post("/tournaments/{tournament_id}/resolve-bracket", response_model=ResolveBracketResponse)
def resolve_bracket(
    tournament_id: int,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
):
    """Rerun knockout advancement (repair/testing). Idempotent."""
    get_tournament_or_404(session, tournament_id)
    return ResolveBracketResponse(advanced_count=_controller(session).resolve_bracket(tournament_id))


@router.get("/tournaments/{tournament_id}/groups", response_model=List[GroupResponse])
def list_groups(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    store = SqlTournamentStore(session)
    groups = store.list_groups(tournament_id)
    participants = store.list_participants(tournament_id)

    result = []
    for group in groups:
        members = [
            GroupMember(id=p.id, name=p.name, seed=p.seed) for p in participants if p.group_id == group.id
        ]
        result.append(GroupResponse(id=group.id, name=group.name, ordinal=group.ordinal, participants=members))
    return result
