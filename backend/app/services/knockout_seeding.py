"""
Group-to-knockout seeding.

Qualifiers are pooled by finishing position (all group winners, all
runners-up, ...). Pools are paired outermost-first: 1st-place pool against
the last pool, 2nd against second-to-last, and so on. The lower pool is
rotated by one so that a group winner meets a qualifier from the next group
rather than its own.

Known limitation: the fixed rotation does not guarantee avoiding
same-group rematches when pools are short (one entry) or uneven. It is
kept as-is; conflicts are reported, not avoided.

Round-1 pairs are spread over the bracket in fold order, so when the pair
count is not a power of two the missing pairs become byes for the strongest
pairs rather than leaving a whole subtree empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from app.services.bracket import (
    bracket_fold_positions,
    empty_later_rounds,
    first_round_match,
    next_power_of_two,
)
from app.services.errors import NotEnoughQualifiers
from app.services.match_plan import PlannedMatch
from app.services.standings import StandingRow

QualifierPair = Tuple["Qualifier", Optional["Qualifier"]]


@dataclass(frozen=True)
class Qualifier:
    participant_id: int
    group_ordinal: int
    group_position: int  # 1 = group winner


@dataclass
class KnockoutDraw:
    pairs: List[QualifierPair]
    conflicts: List[QualifierPair]  # same-group pairings the rotation could not avoid
    matches: List[PlannedMatch]
    qualified_count: int


def collect_qualifiers(
    group_tables: Dict[int, Sequence[StandingRow]],
    advancement_count: int,
) -> List[Qualifier]:
    """Top *advancement_count* rows of every group, keyed by group ordinal."""
    qualifiers: List[Qualifier] = []
    for ordinal in sorted(group_tables):
        for row in list(group_tables[ordinal])[:advancement_count]:
            qualifiers.append(Qualifier(row.participant_id, ordinal, row.position))
    return qualifiers


def position_pools(qualifiers: Sequence[Qualifier]) -> List[List[Qualifier]]:
    """Pool index p holds every qualifier that finished p+1 in its group, in group order."""
    by_position: Dict[int, List[Qualifier]] = {}
    for q in qualifiers:
        by_position.setdefault(q.group_position, []).append(q)
    return [sorted(by_position[p], key=lambda q: q.group_ordinal) for p in sorted(by_position)]


def _rotate(entries: List[Qualifier]) -> List[Qualifier]:
    if len(entries) < 2:
        return list(entries)
    return entries[1:] + entries[:1]


def pair_qualifiers(pools: Sequence[Sequence[Qualifier]]) -> List[QualifierPair]:
    """
    Pair position pools into round-1 matchups. An odd qualifier out is
    returned paired with None (bye).
    """
    pairs: List[QualifierPair] = []
    leftovers: List[Qualifier] = []

    lo, hi = 0, len(pools) - 1
    while lo < hi:
        top, bottom = list(pools[lo]), list(pools[hi])
        m = min(len(top), len(bottom))
        rotated = _rotate(bottom[:m])
        pairs.extend(zip(top[:m], rotated))
        leftovers.extend(top[m:])
        leftovers.extend(bottom[m:])
        lo += 1
        hi -= 1

    if lo == hi:
        # Middle pool pairs first vs last internally
        middle = list(pools[lo])
        while len(middle) >= 2:
            pairs.append((middle.pop(0), middle.pop()))
        leftovers.extend(middle)

    while len(leftovers) >= 2:
        pairs.append((leftovers.pop(0), leftovers.pop()))
    if leftovers:
        pairs.append((leftovers[0], None))

    return pairs


def spread_positions(pair_count: int, slot_count: int) -> List[int]:
    """
    Round-1 position for each pair, strongest pair first.

    Pairs take the positions bracket-fold order gives seeds 1..pair_count in a
    field of slot_count, so empty positions are spread like byes instead of
    emptying whole subtrees at the bottom of the bracket.
    """
    if slot_count < 2:
        return list(range(1, pair_count + 1))
    fold = bracket_fold_positions(slot_count)
    return [fold.index(rank) + 1 for rank in range(1, pair_count + 1)]


def knockout_round_label(qualified_count: int) -> str:
    return f"round_of_{qualified_count}"


def build_knockout_from_groups(
    group_tables: Dict[int, Sequence[StandingRow]],
    advancement_count: int,
    start_match_number: int = 1,
) -> KnockoutDraw:
    """
    Seed the knockout bracket from group standings.

    Round 1 is labelled round_of_{qualified} and its pairs are spread over the
    bracket (see spread_positions); later rounds are created empty (pending)
    for bracket_size = next_power_of_two(qualified).

    Raises:
        NotEnoughQualifiers: fewer than 2 qualifiers overall
    """
    qualifiers = collect_qualifiers(group_tables, advancement_count)
    if len(qualifiers) < 2:
        raise NotEnoughQualifiers(len(qualifiers))

    pairs = pair_qualifiers(position_pools(qualifiers))
    conflicts = [(a, b) for a, b in pairs if b is not None and a.group_ordinal == b.group_ordinal]

    bracket_size = next_power_of_two(len(qualifiers))
    label = knockout_round_label(len(qualifiers))

    matches: List[PlannedMatch] = []
    match_number = start_match_number
    placed = sorted(zip(spread_positions(len(pairs), bracket_size // 2), pairs), key=lambda item: item[0])
    for position, (a, b) in placed:
        matches.append(
            first_round_match(
                a.participant_id,
                b.participant_id if b is not None else None,
                position,
                match_number,
                label,
            )
        )
        match_number += 1

    matches.extend(empty_later_rounds(bracket_size, match_number))
    return KnockoutDraw(pairs=pairs, conflicts=conflicts, matches=matches, qualified_count=len(qualifiers))
