from app.models.group import TournamentGroup
from app.models.match import Match, MatchStatus
from app.models.participant import Participant
from app.models.phase_generation import PhaseGeneration
from app.models.tournament import MatchFormat, Phase, Tournament, TournamentType

__all__ = [
    "Tournament",
    "TournamentType",
    "Phase",
    "MatchFormat",
    "Participant",
    "TournamentGroup",
    "Match",
    "MatchStatus",
    "PhaseGeneration",
]
