"""
Standings Calculator.

Ranks a roster from its completed matches. Sort key (lower = better):
-points, -set_diff, -game_diff, roster index. The roster index is the stable
fallback, so the order is total.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from app.models.match import Match, MatchStatus
from app.services.score_parser import parse_score

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Completed-match input for the calculator."""

    match_id: Optional[int]
    participant_a_id: Optional[int]
    participant_b_id: Optional[int]
    winner_id: Optional[int]
    status: MatchStatus
    sets: List[Tuple[int, int]] = field(default_factory=list)  # (side_a_games, side_b_games)


@dataclass
class StandingRow:
    participant_id: int
    position: int = 0
    played: int = 0
    won: int = 0
    lost: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: int = 0

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_diff(self) -> int:
        return self.games_won - self.games_lost


@dataclass(frozen=True)
class DataIntegrityWarning:
    """A recorded set with equal game counts. Logged, never raised."""

    match_id: Optional[int]
    set_index: int
    games: int

    @property
    def message(self) -> str:
        return f"Match {self.match_id}: set {self.set_index} is level at {self.games}-{self.games}"


def result_from_match(match: Match) -> MatchResult:
    """Adapt a persisted match to calculator input."""
    parsed = parse_score(match.score_json)
    return MatchResult(
        match_id=match.id,
        participant_a_id=match.participant_a_id,
        participant_b_id=match.participant_b_id,
        winner_id=match.winner_id,
        status=MatchStatus(match.status),
        sets=list(parsed.sets) if parsed else [],
    )


def is_countable(result: MatchResult, roster: Iterable[int]) -> bool:
    """Completed, both sides on the roster, a valid winner and set-level scores."""
    if MatchStatus(result.status) != MatchStatus.completed:
        return False
    members = set(roster)
    if result.participant_a_id not in members or result.participant_b_id not in members:
        return False
    if result.winner_id not in (result.participant_a_id, result.participant_b_id):
        return False
    return bool(result.sets)


def integrity_warnings(results: Iterable[MatchResult]) -> List[DataIntegrityWarning]:
    warnings: List[DataIntegrityWarning] = []
    for result in results:
        for index, (a, b) in enumerate(result.sets, start=1):
            if a == b:
                warnings.append(DataIntegrityWarning(match_id=result.match_id, set_index=index, games=a))
    return warnings


def standing_sort_key(row: StandingRow, roster_index: int) -> tuple:
    return (-row.points, -row.set_diff, -row.game_diff, roster_index)


def compute_standings(
    roster: Sequence[int],
    results: Iterable[MatchResult],
    points_per_win: int,
) -> List[StandingRow]:
    """
    Build the ranked table for *roster* (participant ids in seed order).

    Only countable matches contribute. A level set adds its games to both
    sides but is won by nobody; it is reported as a DataIntegrityWarning.
    """
    rows = {pid: StandingRow(participant_id=pid) for pid in roster}
    countable = [r for r in results if is_countable(r, rows.keys())]

    for warning in integrity_warnings(countable):
        logger.warning("DataIntegrityWarning: %s", warning.message)

    for result in countable:
        row_a = rows[result.participant_a_id]
        row_b = rows[result.participant_b_id]

        for a, b in result.sets:
            row_a.games_won += a
            row_a.games_lost += b
            row_b.games_won += b
            row_b.games_lost += a
            if a > b:
                row_a.sets_won += 1
                row_b.sets_lost += 1
            elif b > a:
                row_b.sets_won += 1
                row_a.sets_lost += 1

        winner, loser = (row_a, row_b) if result.winner_id == result.participant_a_id else (row_b, row_a)
        winner.played += 1
        loser.played += 1
        winner.won += 1
        loser.lost += 1
        winner.points += points_per_win

    index = {pid: i for i, pid in enumerate(roster)}
    ordered = sorted(rows.values(), key=lambda row: standing_sort_key(row, index[row.participant_id]))
    for position, row in enumerate(ordered, start=1):
        row.position = position
    return ordered
