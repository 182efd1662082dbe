"""
Set-level score parsing and validation for tennis/padel-style results.

Stored form (Match.score_json):
  {"sets": [{"a": 6, "b": 3}, {"a": 4, "b": 6}, {"a": 7, "b": 6}]}

Also accepted for parsing:
  "6-3 4-6 7-6"      → 3 sets
  "6-3, 4-6, 7-6"    → comma-separated variant
  {"display": "6-3"} → extracts display string first

parse_score returns None on parse failure (non-fatal).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.models.tournament import MatchFormat
from app.services.tournament_rules import BEST_OF, sets_to_win

SetScore = Tuple[int, int]  # (side_a_games, side_b_games)


@dataclass
class ParsedScore:
    sets: List[SetScore]
    side_a_sets_won: int
    side_b_sets_won: int
    side_a_games: int
    side_b_games: int

    @property
    def leader(self) -> Optional[str]:
        """'a', 'b' or None when sets are level."""
        if self.side_a_sets_won > self.side_b_sets_won:
            return "a"
        if self.side_b_sets_won > self.side_a_sets_won:
            return "b"
        return None


def score_payload(sets: Sequence[SetScore]) -> Dict[str, Any]:
    """Build the score_json blob stored on a match."""
    return {"sets": [{"a": a, "b": b} for a, b in sets]}


def parse_score(score_json: Optional[Any]) -> Optional[ParsedScore]:
    """Parse a score_json blob into structured set/game counts.

    Returns None if the score cannot be parsed.
    """
    if not score_json:
        return None

    raw: Optional[str] = None
    if isinstance(score_json, str):
        raw = score_json
    elif isinstance(score_json, dict):
        if "sets" in score_json and isinstance(score_json["sets"], list):
            return _parse_structured_sets(score_json["sets"])
        raw = str(score_json.get("display") or score_json.get("score") or "")
    if not raw or not raw.strip():
        return None

    return _parse_score_string(raw.strip())


def _summarise(sets: List[SetScore]) -> ParsedScore:
    return ParsedScore(
        sets=sets,
        side_a_sets_won=sum(1 for a, b in sets if a > b),
        side_b_sets_won=sum(1 for a, b in sets if b > a),
        side_a_games=sum(a for a, _ in sets),
        side_b_games=sum(b for _, b in sets),
    )


def _parse_structured_sets(sets_list: list) -> Optional[ParsedScore]:
    sets: List[SetScore] = []
    for s in sets_list:
        try:
            a = int(s.get("a", 0))
            b = int(s.get("b", 0))
        except (AttributeError, TypeError, ValueError):
            return None
        sets.append((a, b))
    return _summarise(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    """Parse strings like '6-4', '6-3 4-6 7-6', '6-3, 4-6, 7-6'."""
    # Normalize: replace commas with spaces, collapse whitespace
    normalized = raw.replace(",", " ").strip()
    parts = normalized.split()

    sets: List[SetScore] = []
    for part in parts:
        pair = part.split("-")
        if len(pair) != 2:
            return None
        try:
            a = int(pair[0])
            b = int(pair[1])
        except ValueError:
            return None
        sets.append((a, b))

    if not sets:
        return None

    return _summarise(sets)


def played_sets(sets: Sequence[SetScore]) -> List[SetScore]:
    """Drop empty 0-0 sets."""
    return [(a, b) for a, b in sets if a > 0 or b > 0]


def validate_sets(sets: Sequence[SetScore], match_format: MatchFormat) -> Optional[str]:
    """
    Validate a completed match's set scores.

    Returns None if valid, or an error message string if invalid.

    Rules:
    - 0-0 sets are ignored
    - 7-6 is a valid tie-break set
    - a set reaching 6+ games must be won by 2
    - a set won with fewer than 6 games is invalid
    - someone must reach sets_to_win, nothing is played after that,
      and no more than best_of sets are recorded
    """
    sets = played_sets(sets)
    if not sets:
        return "At least one set score is required"

    best_of = BEST_OF[MatchFormat(match_format)]
    needed = sets_to_win(match_format)

    if len(sets) > best_of:
        return f"Too many sets: {len(sets)} recorded for best of {best_of}"

    for i, (a, b) in enumerate(sets, start=1):
        if a < 0 or b < 0:
            return f"Set {i}: negative game count ({a}-{b})"
        high, low = max(a, b), min(a, b)
        if high == 7 and low == 6:
            continue
        if high >= 6:
            if high - low < 2:
                return f"Set {i}: must be won by 2 games ({a}-{b})"
        else:
            return f"Set {i}: at least 6 games are needed to win a set ({a}-{b})"

    a_sets = 0
    b_sets = 0
    for i, (a, b) in enumerate(sets, start=1):
        if a_sets == needed or b_sets == needed:
            return f"Set {i}: match was already decided"
        if a > b:
            a_sets += 1
        else:
            b_sets += 1

    if a_sets < needed and b_sets < needed:
        return f"Match incomplete: {needed} sets are needed to win (best of {best_of})"

    return None
