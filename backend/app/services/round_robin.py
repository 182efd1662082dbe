"""
Round-Robin Scheduler (circle method).

Used for a whole championship and for each group's internal matches.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from app.models.match import MatchStatus
from app.services.errors import InsufficientParticipants
from app.services.match_plan import PlannedMatch

Pairing = Tuple[int, int]


def rr_round_count(n: int) -> int:
    """
    Return number of RR rounds for n participants.
    Even n: n-1 rounds. Odd n: n rounds (with BYE).
    """
    if n % 2 == 0:
        return n - 1
    return n


def rr_match_count(n: int) -> int:
    """Return number of RR matches: C(n, 2) = n*(n-1)/2."""
    return (n * (n - 1)) // 2


def schedule_round_robin(participant_ids: Sequence[int]) -> List[List[Pairing]]:
    """
    Circle-method round robin. Returns one list of (home, away) pairs per round.

    Odd n gets a synthetic BYE seat; pairings against it are dropped, so every
    participant sits out exactly one round. Seat 0 is fixed, the others rotate
    one position per round. Every unordered pair meets exactly once.
    """
    n = len(participant_ids)
    if n < 2:
        raise InsufficientParticipants(2, n, context="round robin")

    seats: List[Optional[int]] = list(participant_ids)
    if n % 2 == 1:
        seats.append(None)  # BYE

    n2 = len(seats)
    half = n2 // 2
    rounds: List[List[Pairing]] = []

    for _ in range(n2 - 1):
        pairs: List[Pairing] = []
        for i in range(half):
            home, away = seats[i], seats[n2 - 1 - i]
            if home is None or away is None:
                continue
            pairs.append((home, away))
        rounds.append(pairs)
        # Rotate: keep seat 0, move last to second, shift others
        seats = [seats[0]] + [seats[-1]] + seats[1:-1]

    return rounds


def championship_round_name(round_number: int) -> str:
    return f"Giornata {round_number}"


def round_robin_matches(
    participant_ids: Sequence[int],
    start_match_number: int = 1,
    round_name: Callable[[int], str] = championship_round_name,
    group_ordinal: Optional[int] = None,
) -> List[PlannedMatch]:
    """
    Expand a circle-method schedule into planned matches.

    Match numbers continue from start_match_number in round order, then
    pairing order within the round.
    """
    matches: List[PlannedMatch] = []
    match_number = start_match_number
    for round_number, pairs in enumerate(schedule_round_robin(participant_ids), start=1):
        for home, away in pairs:
            matches.append(
                PlannedMatch(
                    round_number=round_number,
                    round_name=round_name(round_number),
                    match_number=match_number,
                    participant_a_id=home,
                    participant_b_id=away,
                    status=MatchStatus.scheduled,
                    group_ordinal=group_ordinal,
                )
            )
            match_number += 1
    return matches
