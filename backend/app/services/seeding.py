"""
Seed ordering and seed assignment.

Deterministic participant order used by every generator:
1. seed ascending (nulls last)
2. registration time ascending
3. id ascending
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from app.models.participant import Participant
from app.services.errors import InvalidSeeding

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SeededEntry:
    """Lightweight struct for bracket input."""

    participant_id: int
    seed: int


def _as_aware(ts: Optional[datetime]) -> datetime:
    if ts is None:
        return _FAR_FUTURE
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def seed_sort_key(participant: Participant):
    return (
        # seed: nulls last, ascending
        (participant.seed is None, participant.seed if participant.seed is not None else 0),
        # registration time: nulls last, ascending
        _as_aware(participant.created_at),
        # id: ascending
        participant.id if participant.id is not None else 0,
    )


def order_by_seed(participants: Iterable[Participant]) -> List[Participant]:
    """Return participants in deterministic seed order."""
    return sorted(participants, key=seed_sort_key)


def assign_missing_seeds(participants: Sequence[Participant]) -> Dict[int, int]:
    """
    Give every unseeded participant the lowest unused positive seed,
    walking unseeded participants in registration order (stable).

    Existing seeds are kept. Returns {participant_id: new_seed} for the
    participants that need an update only.
    """
    used = {p.seed for p in participants if p.seed is not None}
    unseeded = sorted(
        (p for p in participants if p.seed is None),
        key=lambda p: (_as_aware(p.created_at), p.id if p.id is not None else 0),
    )

    assigned: Dict[int, int] = {}
    candidate = 1
    for participant in unseeded:
        while candidate in used:
            candidate += 1
        assigned[participant.id] = candidate
        used.add(candidate)
        candidate += 1
    return assigned


def validate_seeds(entries: Sequence[SeededEntry], capacity: Optional[int] = None) -> None:
    """
    Seeds must be distinct positive integers, and fit in the bracket when a
    capacity is given.

    Raises:
        InvalidSeeding: duplicate, non-positive or out-of-range seed
    """
    seen: Dict[int, int] = {}
    for entry in entries:
        if entry.seed is None or entry.seed < 1:
            raise InvalidSeeding(f"Participant {entry.participant_id} has non-positive seed {entry.seed}")
        if entry.seed in seen:
            raise InvalidSeeding(
                f"Seed {entry.seed} is held by participants {seen[entry.seed]} and {entry.participant_id}"
            )
        if capacity is not None and entry.seed > capacity:
            raise InvalidSeeding(
                f"Seed {entry.seed} of participant {entry.participant_id} exceeds bracket size {capacity}"
            )
        seen[entry.seed] = entry.participant_id
