"""In-memory match records produced by the generators, before persistence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.models.match import MatchStatus


@dataclass
class PlannedMatch:
    round_number: int
    round_name: str
    match_number: int
    participant_a_id: Optional[int]
    participant_b_id: Optional[int]
    status: MatchStatus = MatchStatus.scheduled
    winner_id: Optional[int] = None
    bracket_position: Optional[int] = None  # knockout only
    group_ordinal: Optional[int] = None  # group stage only; resolved to group_id on persist

    @property
    def is_bye(self) -> bool:
        return self.status == MatchStatus.completed and (self.participant_a_id is None) != (
            self.participant_b_id is None
        )
