"""
Tournament Guards and Utilities

Reusable guards for route handlers:
- Tournament / match / participant ownership lookups (404)
- Registration-only mutations (409)
- Engine error -> HTTPException mapping
"""

from fastapi import HTTPException
from sqlmodel import Session

from app.models.match import Match
from app.models.participant import Participant
from app.models.tournament import Phase, Tournament
from app.services.errors import ErrorCode, TournamentEngineError

ERROR_STATUS = {
    ErrorCode.INSUFFICIENT_PARTICIPANTS: 400,
    ErrorCode.INVALID_SEEDING: 400,
    ErrorCode.TOO_MANY_GROUPS: 400,
    ErrorCode.INVALID_CONFIGURATION: 400,
    ErrorCode.NOT_ENOUGH_QUALIFIERS: 400,
    ErrorCode.WRONG_PHASE: 409,
    ErrorCode.MATCHES_ALREADY_EXIST: 409,
    ErrorCode.TOURNAMENT_NOT_FOUND: 404,
}


def engine_http_error(error: TournamentEngineError) -> HTTPException:
    """Render a typed engine error as {"detail": {"code", "message"}}."""
    return HTTPException(status_code=ERROR_STATUS.get(error.code, 400), detail=error.to_dict())


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def get_match_or_404(session: Session, tournament_id: int, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def get_participant_or_404(session: Session, tournament_id: int, participant_id: int) -> Participant:
    participant = session.get(Participant, participant_id)
    if not participant or participant.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant


def require_registration_phase(tournament: Tournament) -> Tournament:
    """
    Configuration and roster edits are only allowed before the first transition.

    Raises:
        HTTPException 409: tournament has left registration
    """
    if Phase(tournament.phase) != Phase.registration:
        raise HTTPException(
            status_code=409,
            detail={
                "code": ErrorCode.WRONG_PHASE.value,
                "message": f"Tournament is in phase '{Phase(tournament.phase).value}'; "
                "only registration allows changes",
            },
        )
    return tournament
