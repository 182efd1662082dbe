"""
Group Assignment: snake draft into labelled groups.

Participants are walked in seed order and dealt to groups
0, 1, ..., g-1, g-1, ..., 1, 0, 0, 1, ... so that aggregate strength is
balanced. Each group is then scheduled with the round-robin scheduler;
match numbers continue across groups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from app.models.tournament import TournamentType
from app.services.errors import InsufficientParticipants, InvalidConfiguration, TooManyGroups
from app.services.match_plan import PlannedMatch
from app.services.round_robin import round_robin_matches
from app.services.tournament_rules import GROUP_LABELS, MIN_GROUP_SIZE, MIN_PARTICIPANTS


@dataclass
class GroupDraw:
    name: str  # "A", "B", ...
    ordinal: int  # 1-based
    participant_ids: List[int] = field(default_factory=list)


def snake_order(count: int, num_groups: int) -> List[int]:
    """Group index for each of *count* participants in seed order."""
    order: List[int] = []
    index = 0
    direction = 1
    for _ in range(count):
        order.append(index)
        index += direction
        if index >= num_groups:
            index = num_groups - 1
            direction = -1
        elif index < 0:
            index = 0
            direction = 1
    return order


def assign_groups(participant_ids: Sequence[int], num_groups: int) -> List[GroupDraw]:
    """
    Snake-draft participants (already in seed order) into num_groups groups.

    Raises:
        InvalidConfiguration: num_groups < 2
        TooManyGroups: more groups than supported labels
        InsufficientParticipants: fewer than 4 participants, or a group
            would end up with fewer than 2
    """
    if num_groups < 2:
        raise InvalidConfiguration(f"Group stage needs at least 2 groups, got {num_groups}")
    if num_groups > len(GROUP_LABELS):
        raise TooManyGroups(num_groups, len(GROUP_LABELS))

    minimum = MIN_PARTICIPANTS[TournamentType.girone_eliminazione]
    if len(participant_ids) < minimum:
        raise InsufficientParticipants(minimum, len(participant_ids), context="group stage")
    if len(participant_ids) < num_groups * MIN_GROUP_SIZE:
        raise InsufficientParticipants(
            num_groups * MIN_GROUP_SIZE,
            len(participant_ids),
            context=f"{num_groups} groups of at least {MIN_GROUP_SIZE}",
        )

    groups = [GroupDraw(name=GROUP_LABELS[i], ordinal=i + 1) for i in range(num_groups)]
    for participant_id, group_index in zip(participant_ids, snake_order(len(participant_ids), num_groups)):
        groups[group_index].participant_ids.append(participant_id)
    return groups


def group_round_name(group_name: str):
    def _name(round_number: int) -> str:
        return f"Girone {group_name} - Giornata {round_number}"

    return _name


def plan_group_stage(
    participant_ids: Sequence[int],
    num_groups: int,
    start_match_number: int = 1,
) -> Tuple[List[GroupDraw], List[PlannedMatch]]:
    """Draw the groups and schedule each one's internal round robin."""
    groups = assign_groups(participant_ids, num_groups)

    matches: List[PlannedMatch] = []
    next_number = start_match_number
    for group in groups:
        group_matches = round_robin_matches(
            group.participant_ids,
            start_match_number=next_number,
            round_name=group_round_name(group.name),
            group_ordinal=group.ordinal,
        )
        matches.extend(group_matches)
        next_number += len(group_matches)
    return groups, matches
