"""
Match listing and score entry.

Score entry validates set scores against the tournament's match format,
derives the winner from the sets, and (knockout only) moves winners into
their parent bracket slots. completed and cancelled are terminal.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.models.match import Match, MatchStatus
from app.models.tournament import Phase
from app.services.score_parser import parse_score, played_sets, score_payload, validate_sets
from app.services.stage_controller import StageController
from app.services.tournament_store import SqlTournamentStore
from app.utils.roles import require_organizer
from app.utils.tournament_guards import get_match_or_404, get_tournament_or_404

router = APIRouter()

TERMINAL_STATUSES = (MatchStatus.completed, MatchStatus.cancelled)


class SetIn(BaseModel):
    a: int = Field(ge=0)
    b: int = Field(ge=0)


class MatchScoreUpdate(BaseModel):
    sets: Optional[List[SetIn]] = None
    status: Optional[MatchStatus] = None
    winner_id: Optional[int] = None


class MatchState(BaseModel):
    id: int
    tournament_id: int
    group_id: Optional[int] = None
    phase: Phase
    round_number: int
    round_name: str
    match_number: int
    bracket_position: Optional[int] = None
    participant_a_id: Optional[int] = None
    participant_b_id: Optional[int] = None
    status: MatchStatus
    winner_id: Optional[int] = None
    score_json: Optional[Dict[str, Any]] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MatchScoreUpdateResponse(BaseModel):
    match: MatchState
    advanced_count: int = 0


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchState])
def list_matches(
    tournament_id: int,
    phase: Optional[Phase] = None,
    group_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    """Matches in match_number order, optionally filtered by phase and group."""
    get_tournament_or_404(session, tournament_id)
    return SqlTournamentStore(session).list_matches(tournament_id, phase=phase, group_id=group_id)


def _winner_from_sets(match: Match, payload: MatchScoreUpdate, match_format) -> int:
    sets = played_sets([(s.a, s.b) for s in payload.sets])
    error = validate_sets(sets, match_format)
    if error:
        raise HTTPException(status_code=422, detail=error)

    parsed = parse_score(score_payload(sets))
    winner_id = match.participant_a_id if parsed.leader == "a" else match.participant_b_id
    if payload.winner_id is not None and payload.winner_id != winner_id:
        raise HTTPException(status_code=422, detail="winner_id does not match the set scores")
    match.score_json = score_payload(sets)
    return winner_id


@router.patch(
    "/tournaments/{tournament_id}/matches/{match_id}",
    response_model=MatchScoreUpdateResponse,
)
def update_match_score(
    tournament_id: int,
    match_id: int,
    payload: MatchScoreUpdate,
    session: Session = Depends(get_session),
    _role: str = Depends(require_organizer),
) -> MatchScoreUpdateResponse:
    """Record a result (sets, or winner_id alone for a walkover) or cancel a match."""
    tournament = get_tournament_or_404(session, tournament_id)
    match = get_match_or_404(session, tournament_id, match_id)

    current = MatchStatus(match.status)
    if current in TERMINAL_STATUSES:
        raise HTTPException(status_code=409, detail=f"Match is {current.value}; results are final")
    if Phase(match.phase) != Phase(tournament.phase):
        raise HTTPException(
            status_code=409,
            detail=f"Match belongs to phase {Phase(match.phase).value}; tournament is {Phase(tournament.phase).value}",
        )

    target = payload.status
    if target is None:
        target = MatchStatus.completed if (payload.sets or payload.winner_id is not None) else None
    if target not in TERMINAL_STATUSES:
        raise HTTPException(status_code=422, detail="status must be completed or cancelled")

    if target == MatchStatus.cancelled:
        if payload.sets or payload.winner_id is not None:
            raise HTTPException(status_code=422, detail="A cancelled match has no score or winner")
        match.status = MatchStatus.cancelled.value
    else:
        if match.participant_a_id is None or match.participant_b_id is None:
            raise HTTPException(status_code=422, detail="Both participant slots must be filled to record a result")
        if payload.sets:
            winner_id = _winner_from_sets(match, payload, tournament.match_format)
        elif payload.winner_id is not None:
            # Walkover
            if payload.winner_id not in (match.participant_a_id, match.participant_b_id):
                raise HTTPException(status_code=422, detail="winner_id must be one of the match participants")
            winner_id = payload.winner_id
        else:
            raise HTTPException(status_code=422, detail="sets or winner_id required to complete a match")
        match.status = MatchStatus.completed.value
        match.winner_id = winner_id
        match.completed_at = datetime.now(timezone.utc)

    session.add(match)
    session.commit()
    session.refresh(match)

    advanced_count = 0
    if Phase(match.phase) == Phase.knockout:
        advanced_count = StageController(SqlTournamentStore(session)).resolve_bracket(tournament_id)
        session.refresh(match)

    return MatchScoreUpdateResponse(match=MatchState.model_validate(match), advanced_count=advanced_count)
