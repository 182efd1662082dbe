from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.database import get_session
from app.models.group import TournamentGroup
from app.services.stage_controller import StageController, StandingsReport
from app.services.tournament_store import SqlTournamentStore
from app.utils.tournament_guards import get_tournament_or_404

router = APIRouter()


class StandingRowResponse(BaseModel):
    position: int
    participant_id: int
    participant_name: Optional[str] = None
    played: int
    won: int
    lost: int
    sets_won: int
    sets_lost: int
    set_diff: int
    games_won: int
    games_lost: int
    game_diff: int
    points: int


class IntegrityWarningResponse(BaseModel):
    match_id: Optional[int]
    set_index: int
    games: int
    message: str


class StandingsResponse(BaseModel):
    tournament_id: int
    group_id: Optional[int] = None
    rows: List[StandingRowResponse]
    warnings: List[IntegrityWarningResponse]


def _render(session: Session, tournament_id: int, group_id: Optional[int], report: StandingsReport):
    names = {p.id: p.name for p in SqlTournamentStore(session).list_participants(tournament_id)}
    rows = [
        StandingRowResponse(
            position=row.position,
            participant_id=row.participant_id,
            participant_name=names.get(row.participant_id),
            played=row.played,
            won=row.won,
            lost=row.lost,
            sets_won=row.sets_won,
            sets_lost=row.sets_lost,
            set_diff=row.set_diff,
            games_won=row.games_won,
            games_lost=row.games_lost,
            game_diff=row.game_diff,
            points=row.points,
        )
        for row in report.rows
    ]
    warnings = [
        IntegrityWarningResponse(match_id=w.match_id, set_index=w.set_index, games=w.games, message=w.message)
        for w in report.warnings
    ]
    return StandingsResponse(tournament_id=tournament_id, group_id=group_id, rows=rows, warnings=warnings)


@router.get("/tournaments/{tournament_id}/standings", response_model=StandingsResponse)
def tournament_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Ranked table over every completed match of the tournament."""
    get_tournament_or_404(session, tournament_id)
    report = StageController(SqlTournamentStore(session)).standings(tournament_id)
    return _render(session, tournament_id, None, report)


@router.get("/tournaments/{tournament_id}/groups/{group_id}/standings", response_model=StandingsResponse)
def group_standings(tournament_id: int, group_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    group = session.get(TournamentGroup, group_id)
    if not group or group.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Group not found")
    report = StageController(SqlTournamentStore(session)).standings(tournament_id, group_id=group_id)
    return _render(session, tournament_id, group_id, report)
