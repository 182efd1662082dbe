"""
Tournament Rules: Format Matrix (Single Source of Truth)

Minimum participant counts, group labels, scoring defaults and the phase
transition table for every tournament format. Other modules import from here;
do NOT duplicate these rules elsewhere.
"""

from typing import Dict, Optional, Tuple

from app.models.tournament import MatchFormat, Phase, TournamentType

# =============================================================================
# Participants
# =============================================================================

MIN_PARTICIPANTS: Dict[TournamentType, int] = {
    TournamentType.eliminazione_diretta: 2,
    TournamentType.girone_eliminazione: 4,
    TournamentType.campionato: 2,
}

MIN_GROUP_SIZE = 2


# =============================================================================
# Groups
# =============================================================================

GROUP_LABELS: Tuple[str, ...] = ("A", "B", "C", "D", "E", "F", "G", "H")

DEFAULT_NUM_GROUPS = 2
DEFAULT_ADVANCEMENT_COUNT = 2


# =============================================================================
# Scoring
# =============================================================================

DEFAULT_POINTS_PER_WIN: Dict[TournamentType, int] = {
    TournamentType.eliminazione_diretta: 2,
    TournamentType.girone_eliminazione: 2,
    TournamentType.campionato: 3,
}

BEST_OF: Dict[MatchFormat, int] = {
    MatchFormat.best_of_3: 3,
    MatchFormat.best_of_5: 5,
}


def points_per_win(tournament_type: TournamentType, configured: Optional[int] = None) -> int:
    """Configured value wins; otherwise the format default."""
    if configured is not None:
        return configured
    return DEFAULT_POINTS_PER_WIN[TournamentType(tournament_type)]


def sets_to_win(match_format: MatchFormat) -> int:
    """best_of_3 -> 2, best_of_5 -> 3."""
    best_of = BEST_OF[MatchFormat(match_format)]
    return (best_of + 1) // 2


# =============================================================================
# Phase Transition Table
# =============================================================================

TRANSITIONS: Dict[TournamentType, Dict[Phase, Phase]] = {
    TournamentType.eliminazione_diretta: {
        Phase.registration: Phase.knockout,
        Phase.knockout: Phase.completed,
    },
    TournamentType.girone_eliminazione: {
        Phase.registration: Phase.group_stage,
        Phase.group_stage: Phase.knockout,
        Phase.knockout: Phase.completed,
    },
    TournamentType.campionato: {
        Phase.registration: Phase.in_progress,
        Phase.in_progress: Phase.completed,
    },
}

# Phases whose entry generates matches (guarded by the idempotency check)
GENERATING_PHASES = frozenset({Phase.group_stage, Phase.knockout, Phase.in_progress})


def next_phase(tournament_type: TournamentType, current: Phase) -> Optional[Phase]:
    """Return the phase that follows *current*, or None if the lifecycle is over."""
    return TRANSITIONS[TournamentType(tournament_type)].get(Phase(current))


def preceding_phase(tournament_type: TournamentType, target: Phase) -> Optional[Phase]:
    """Return the phase a tournament must be in to enter *target*, or None if unreachable."""
    for source, dest in TRANSITIONS[TournamentType(tournament_type)].items():
        if dest == Phase(target):
            return source
    return None
