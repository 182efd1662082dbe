"""
Knockout advancement: move winners of completed matches into their parent
bracket slot. Only touches participant slots, status and winner of pending
matches; completed results are never rewritten.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from app.models.match import Match, MatchStatus
from app.services.bracket import SIDE_A, feeder_positions, parent_slot

_DEAD = (MatchStatus.cancelled,)


def _status(match: Match) -> MatchStatus:
    return MatchStatus(match.status)


def _is_dead(feeder: Optional[Match]) -> bool:
    """A feeder that will never produce a winner."""
    return feeder is None or _status(feeder) in _DEAD


def _winner(feeder: Optional[Match]) -> Optional[int]:
    if feeder is None or _status(feeder) != MatchStatus.completed:
        return None
    return feeder.winner_id


def _fill(match: Match, side: str, participant_id: int) -> bool:
    attr = "participant_a_id" if side == SIDE_A else "participant_b_id"
    current = getattr(match, attr)
    if current is None:
        setattr(match, attr, participant_id)
        return True
    return False


def propagate_winners(matches: Sequence[Match]) -> List[Match]:
    """
    Resolve the bracket as far as current results allow.

    For every match in round r >= 2 (ascending, so cascades settle in one pass):
    - fill each empty side with the winner of its completed feeder
    - pending + both sides filled -> scheduled
    - pending + one side filled + other feeder dead -> completed bye
    - pending + both feeders dead -> cancelled

    Returns the matches that changed. Idempotent: a second call returns [].
    """
    by_slot: Dict[Tuple[int, int], Match] = {
        (m.round_number, m.bracket_position): m for m in matches if m.bracket_position is not None
    }
    if not by_slot:
        return []

    changed: Dict[int, Match] = {}
    last_round = max(r for r, _ in by_slot)

    for round_number in range(2, last_round + 1):
        positions = sorted(p for r, p in by_slot if r == round_number)
        for position in positions:
            match = by_slot[(round_number, position)]
            if _status(match) != MatchStatus.pending:
                continue

            pos_a, pos_b = feeder_positions(position)
            feeder_a = by_slot.get((round_number - 1, pos_a))
            feeder_b = by_slot.get((round_number - 1, pos_b))

            touched = False
            for feeder, feeder_position in ((feeder_a, pos_a), (feeder_b, pos_b)):
                winner = _winner(feeder)
                if winner is not None:
                    _, _, side = parent_slot(round_number - 1, feeder_position)
                    touched |= _fill(match, side, winner)

            a, b = match.participant_a_id, match.participant_b_id
            if a is not None and b is not None:
                match.status = MatchStatus.scheduled.value
                touched = True
            elif a is not None and _is_dead(feeder_b):
                match.status = MatchStatus.completed.value
                match.winner_id = a
                touched = True
            elif b is not None and _is_dead(feeder_a):
                match.status = MatchStatus.completed.value
                match.winner_id = b
                touched = True
            elif a is None and b is None and _is_dead(feeder_a) and _is_dead(feeder_b):
                match.status = MatchStatus.cancelled.value
                touched = True

            if touched:
                changed[id(match)] = match

    return list(changed.values())
