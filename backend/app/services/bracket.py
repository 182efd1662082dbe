"""
Bracket Generator: single-elimination tree with byes pre-resolved.

Round 1 matchups: seed s vs seed (bracket_size + 1 - s).
Ordering: bracket fold positions decide which matchup goes in which
bracket slot, so that if chalk holds seed 1 meets seed 2 in the final.

Tree shape: the winner of round r, position p plays in round r+1,
position ceil(p / 2), side A when p is odd, side B when p is even.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from app.models.match import MatchStatus
from app.services.errors import InsufficientParticipants
from app.services.match_plan import PlannedMatch
from app.services.seeding import SeededEntry, validate_seeds

SIDE_A = "a"
SIDE_B = "b"

ROUND_NAMES_FROM_FINAL = {
    1: "Finale",
    2: "Semifinali",
    3: "Quarti di Finale",
    4: "Ottavi di Finale",
    5: "Sedicesimi di Finale",
}


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def total_rounds(bracket_size: int) -> int:
    return bracket_size.bit_length() - 1


def knockout_round_name(round_number: int, rounds: int) -> str:
    """Name a round by how far it is from the final."""
    from_final = rounds - round_number + 1
    return ROUND_NAMES_FROM_FINAL.get(from_final, f"Round {round_number}")


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries.

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate which seeds meet in round 1:
      4-entry  -> [1, 4, 2, 3]       -> (1v4), (2v3)
      8-entry  -> [1, 8, 4, 5, ...]   -> (1v8), (4v5), ...
      16-entry -> [1, 16, 8, 9, ...]   -> (1v16), (8v9), ...
    """
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot


def first_round_seed_pairs(bracket_size: int) -> List[Tuple[int, int]]:
    """Seed matchups of round 1 in bracket position order."""
    positions = bracket_fold_positions(bracket_size)
    return [(positions[i], positions[i + 1]) for i in range(0, len(positions), 2)]


def parent_slot(round_number: int, bracket_position: int) -> Tuple[int, int, str]:
    """Return (round_number, bracket_position, side) fed by the winner of a match."""
    side = SIDE_A if bracket_position % 2 == 1 else SIDE_B
    return round_number + 1, (bracket_position + 1) // 2, side


def feeder_positions(bracket_position: int) -> Tuple[int, int]:
    """Positions in the previous round that feed side A and side B."""
    return 2 * bracket_position - 1, 2 * bracket_position


def empty_later_rounds(
    bracket_size: int,
    start_match_number: int,
    round_name=None,
) -> List[PlannedMatch]:
    """Rounds 2..log2(bracket_size), both slots empty, status pending."""
    rounds = total_rounds(bracket_size)
    name_for = round_name or (lambda r: knockout_round_name(r, rounds))
    matches: List[PlannedMatch] = []
    match_number = start_match_number
    for round_number in range(2, rounds + 1):
        for position in range(1, bracket_size // (2 ** round_number) + 1):
            matches.append(
                PlannedMatch(
                    round_number=round_number,
                    round_name=name_for(round_number),
                    match_number=match_number,
                    participant_a_id=None,
                    participant_b_id=None,
                    status=MatchStatus.pending,
                    bracket_position=position,
                )
            )
            match_number += 1
    return matches


def first_round_match(
    participant_a_id: Optional[int],
    participant_b_id: Optional[int],
    position: int,
    match_number: int,
    round_name: str,
) -> PlannedMatch:
    """Round-1 match; a single present participant is an auto-completed bye."""
    match = PlannedMatch(
        round_number=1,
        round_name=round_name,
        match_number=match_number,
        participant_a_id=participant_a_id,
        participant_b_id=participant_b_id,
        status=MatchStatus.scheduled,
        bracket_position=position,
    )
    if participant_a_id is None or participant_b_id is None:
        # Bye: no games played
        match.status = MatchStatus.completed
        match.winner_id = participant_a_id if participant_a_id is not None else participant_b_id
    return match


def generate_bracket(entries: Sequence[SeededEntry], start_match_number: int = 1) -> List[PlannedMatch]:
    """
    Generate the complete single-elimination bracket.

    Round 1 holds every seed pair with at least one real participant; a pair
    with one participant is a completed bye, a pair with none is not created.
    Later rounds are created empty with status pending.

    Raises:
        InsufficientParticipants: fewer than 2 entries
        InvalidSeeding: duplicate, non-positive or out-of-range seeds
    """
    if len(entries) < 2:
        raise InsufficientParticipants(2, len(entries), context="single elimination")

    bracket_size = next_power_of_two(len(entries))
    validate_seeds(entries, capacity=bracket_size)

    rounds = total_rounds(bracket_size)
    by_seed = {e.seed: e.participant_id for e in entries}
    first_round_name = knockout_round_name(1, rounds)

    matches: List[PlannedMatch] = []
    match_number = start_match_number
    for position, (seed_a, seed_b) in enumerate(first_round_seed_pairs(bracket_size), start=1):
        a = by_seed.get(seed_a)
        b = by_seed.get(seed_b)
        if a is None and b is None:
            continue
        matches.append(first_round_match(a, b, position, match_number, first_round_name))
        match_number += 1

    matches.extend(empty_later_rounds(bracket_size, match_number))
    return matches
