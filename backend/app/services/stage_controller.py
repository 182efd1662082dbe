"""
Stage Advancement Controller.

One transition primitive drives every tournament format through the table in
tournament_rules.TRANSITIONS:

    guard (already generated?) -> phase check -> plan (pure generators)
    -> persist groups/matches/seeds + generation marker + phase -> commit

Failures come back as a StageOutcome carrying a typed error; nothing is
persisted for a failed transition. The generation marker's unique
constraint makes the guard atomic: of two concurrent transitions into the
same phase exactly one commits, the other gets MatchesAlreadyExist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.models.group import TournamentGroup
from app.models.match import Match, MatchStatus
from app.models.tournament import Phase, Tournament, TournamentType
from app.services.advancement_service import propagate_winners
from app.services.bracket import generate_bracket
from app.services.errors import (
    InsufficientParticipants,
    InvalidConfiguration,
    MatchesAlreadyExist,
    TournamentEngineError,
    TournamentNotFound,
    WrongPhase,
)
from app.services.group_assignment import plan_group_stage
from app.services.knockout_seeding import build_knockout_from_groups
from app.services.match_plan import PlannedMatch
from app.services.round_robin import round_robin_matches, rr_match_count, rr_round_count
from app.services.seeding import SeededEntry, assign_missing_seeds
from app.services.standings import (
    DataIntegrityWarning,
    StandingRow,
    compute_standings,
    integrity_warnings,
    result_from_match,
)
from app.services.tournament_rules import (
    GENERATING_PHASES,
    MIN_PARTICIPANTS,
    next_phase,
    points_per_win,
    preceding_phase,
)
from app.services.tournament_store import SqlTournamentStore

logger = logging.getLogger(__name__)


@dataclass
class StageOutcome:
    ok: bool
    tournament_id: int
    phase: Optional[Phase] = None
    matches_created: int = 0
    groups_created: int = 0
    error: Optional[TournamentEngineError] = None
    details: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def success(cls, tournament_id: int, phase: Phase, **kwargs) -> "StageOutcome":
        return cls(ok=True, tournament_id=tournament_id, phase=phase, **kwargs)

    @classmethod
    def failure(cls, tournament_id: int, error: TournamentEngineError) -> "StageOutcome":
        return cls(ok=False, tournament_id=tournament_id, error=error)


@dataclass
class PhasePlan:
    """Everything a transition persists besides the phase itself."""

    matches: List[PlannedMatch] = field(default_factory=list)
    groups: List[TournamentGroup] = field(default_factory=list)
    group_members: Dict[int, List[int]] = field(default_factory=dict)  # ordinal -> participant ids
    seeds: Dict[int, int] = field(default_factory=dict)  # participant id -> new seed
    details: Dict[str, object] = field(default_factory=dict)


@dataclass
class StandingsReport:
    rows: List[StandingRow]
    warnings: List[DataIntegrityWarning]


class StageController:
    def __init__(self, store: SqlTournamentStore):
        self.store = store
        self._planners: Dict[Phase, Callable[[Tournament], PhasePlan]] = {
            Phase.group_stage: self._plan_group_stage,
            Phase.knockout: self._plan_knockout,
            Phase.in_progress: self._plan_championship,
            Phase.completed: self._plan_completion,
        }

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start_tournament(self, tournament_id: int) -> StageOutcome:
        """First transition out of registration, whatever the format."""
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            return StageOutcome.failure(tournament_id, TournamentNotFound(tournament_id))
        target = next_phase(tournament.tournament_type, Phase.registration)
        return self._transition(tournament, target)

    def generate_bracket(self, tournament_id: int) -> StageOutcome:
        """Transition into knockout (elimination from registration, group format from group_stage)."""
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            return StageOutcome.failure(tournament_id, TournamentNotFound(tournament_id))
        if preceding_phase(tournament.tournament_type, Phase.knockout) is None:
            return StageOutcome.failure(
                tournament_id,
                WrongPhase(f"{TournamentType(tournament.tournament_type).value} tournaments have no knockout phase"),
            )
        return self._transition(tournament, Phase.knockout)

    def advance_stage(self, tournament_id: int) -> StageOutcome:
        """Move to whatever phase follows the current one."""
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            return StageOutcome.failure(tournament_id, TournamentNotFound(tournament_id))
        target = next_phase(tournament.tournament_type, tournament.phase)
        if target is None:
            return StageOutcome.failure(
                tournament_id, WrongPhase(f"Tournament is already {Phase(tournament.phase).value}")
            )
        return self._transition(tournament, target)

    def complete_tournament(self, tournament_id: int) -> StageOutcome:
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            return StageOutcome.failure(tournament_id, TournamentNotFound(tournament_id))
        return self._transition(tournament, Phase.completed)

    def standings(self, tournament_id: int, group_id: Optional[int] = None) -> StandingsReport:
        """Read-only ranked table for a tournament or one of its groups."""
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            raise TournamentNotFound(tournament_id)

        participants = self.store.list_participants(tournament_id)
        if group_id is not None:
            roster = [p.id for p in participants if p.group_id == group_id]
            matches = self.store.list_matches(tournament_id, group_id=group_id)
        else:
            roster = [p.id for p in participants]
            matches = self.store.list_matches(tournament_id)

        results = [result_from_match(m) for m in matches]
        rows = compute_standings(
            roster, results, points_per_win(tournament.tournament_type, tournament.points_per_win)
        )
        warnings = integrity_warnings(r for r in results if MatchStatus(r.status) == MatchStatus.completed)
        return StandingsReport(rows=rows, warnings=warnings)

    def resolve_bracket(self, tournament_id: int) -> int:
        """Push knockout winners into their parent slots. Returns number of matches changed."""
        matches = self.store.list_matches(tournament_id, phase=Phase.knockout)
        changed = propagate_winners(matches)
        if changed:
            self.store.save_matches(changed)
            self.store.commit()
            logger.info("Tournament %d: bracket advancement updated %d matches", tournament_id, len(changed))
        return len(changed)

    # ------------------------------------------------------------------
    # Transition primitive
    # ------------------------------------------------------------------

    def _transition(self, tournament: Tournament, target: Optional[Phase]) -> StageOutcome:
        tournament_id = tournament.id
        current = Phase(tournament.phase)
        try:
            if target is None:
                raise WrongPhase(f"No transition out of {current.value}")
            target = Phase(target)
            self._guard_not_generated(tournament_id, target)
            self._ensure_phase(tournament, target)

            plan = self._planners[target](tournament)
            self._persist(tournament, target, plan)
            self.store.update_tournament_phase(tournament_id, target)
            self.store.commit()
        except TournamentEngineError as exc:
            self.store.rollback()
            logger.info(
                "Tournament %d: transition %s -> %s rejected (%s): %s",
                tournament_id,
                current.value,
                target.value if target else None,
                exc.code.value,
                exc.message,
            )
            return StageOutcome.failure(tournament_id, exc)
        except IntegrityError:
            self.store.rollback()
            logger.info("Tournament %d: lost the race to generate %s", tournament_id, target.value)
            return StageOutcome.failure(
                tournament_id, MatchesAlreadyExist(f"{target.value} has already been generated")
            )

        logger.info(
            "Tournament %d: %s -> %s (%d groups, %d matches)",
            tournament_id,
            current.value,
            target.value,
            len(plan.groups),
            len(plan.matches),
        )
        return StageOutcome.success(
            tournament_id,
            target,
            matches_created=len(plan.matches),
            groups_created=len(plan.groups),
            details=plan.details,
        )

    def _guard_not_generated(self, tournament_id: int, target: Phase) -> None:
        if target in GENERATING_PHASES and self.store.phase_already_generated(tournament_id, target):
            raise MatchesAlreadyExist(f"{target.value} matches already exist for tournament {tournament_id}")

    def _ensure_phase(self, tournament: Tournament, target: Phase) -> None:
        required = preceding_phase(tournament.tournament_type, target)
        current = Phase(tournament.phase)
        if required is None:
            raise WrongPhase(
                f"{TournamentType(tournament.tournament_type).value} tournaments never enter {target.value}"
            )
        if current != required:
            raise WrongPhase(f"Entering {target.value} requires phase {required.value}, tournament is {current.value}")

    def _persist(self, tournament: Tournament, target: Phase, plan: PhasePlan) -> None:
        tournament_id = tournament.id
        if target in GENERATING_PHASES:
            # Marker first: a concurrent winner surfaces here before the bulk insert
            self.store.record_generation(
                tournament_id, target, matches_created=len(plan.matches), groups_created=len(plan.groups)
            )

        for participant_id, seed in plan.seeds.items():
            self.store.update_participant_seed(participant_id, seed)

        group_ids: Dict[int, int] = {}
        if plan.groups:
            for group in self.store.insert_groups(plan.groups):
                group_ids[group.ordinal] = group.id
            for ordinal, members in plan.group_members.items():
                for participant_id in members:
                    self.store.update_participant_group(participant_id, group_ids[ordinal])

        records = [
            Match(
                tournament_id=tournament_id,
                group_id=group_ids.get(pm.group_ordinal) if pm.group_ordinal is not None else None,
                phase=target.value,
                round_number=pm.round_number,
                round_name=pm.round_name,
                match_number=pm.match_number,
                bracket_position=pm.bracket_position,
                participant_a_id=pm.participant_a_id,
                participant_b_id=pm.participant_b_id,
                status=MatchStatus(pm.status).value,
                winner_id=pm.winner_id,
            )
            for pm in plan.matches
        ]
        if records:
            self.store.insert_matches(records)

    # ------------------------------------------------------------------
    # Planners (read state, call pure generators, no writes)
    # ------------------------------------------------------------------

    def _require_participants(self, tournament: Tournament):
        participants = self.store.list_participants(tournament.id)
        minimum = MIN_PARTICIPANTS[TournamentType(tournament.tournament_type)]
        if len(participants) < minimum:
            raise InsufficientParticipants(minimum, len(participants))
        return participants

    def _seeded(self, tournament: Tournament):
        """Participants in seed order, with missing seeds assigned (not yet persisted)."""
        participants = self._require_participants(tournament)
        new_seeds = assign_missing_seeds(participants)
        entries = [SeededEntry(p.id, new_seeds.get(p.id, p.seed)) for p in participants]
        entries.sort(key=lambda e: e.seed)
        return entries, new_seeds

    def _plan_knockout(self, tournament: Tournament) -> PhasePlan:
        if TournamentType(tournament.tournament_type) == TournamentType.girone_eliminazione:
            return self._plan_knockout_from_groups(tournament)

        entries, new_seeds = self._seeded(tournament)
        start = self.store.next_match_number(tournament.id)
        matches = generate_bracket(entries, start_match_number=start)
        byes = sum(1 for m in matches if m.is_bye)
        return PhasePlan(matches=matches, seeds=new_seeds, details={"byes": byes})

    def _plan_group_stage(self, tournament: Tournament) -> PhasePlan:
        if tournament.advancement_count < 1:
            raise InvalidConfiguration(f"advancement_count must be >= 1, got {tournament.advancement_count}")
        entries, new_seeds = self._seeded(tournament)
        start = self.store.next_match_number(tournament.id)
        draws, matches = plan_group_stage([e.participant_id for e in entries], tournament.num_groups, start)

        groups = [TournamentGroup(tournament_id=tournament.id, name=d.name, ordinal=d.ordinal) for d in draws]
        members = {d.ordinal: list(d.participant_ids) for d in draws}
        return PhasePlan(
            matches=matches,
            groups=groups,
            group_members=members,
            seeds=new_seeds,
            details={"group_sizes": {d.name: len(d.participant_ids) for d in draws}},
        )

    def _plan_championship(self, tournament: Tournament) -> PhasePlan:
        entries, new_seeds = self._seeded(tournament)
        start = self.store.next_match_number(tournament.id)
        matches = round_robin_matches([e.participant_id for e in entries], start_match_number=start)
        details = {"rounds": rr_round_count(len(entries)), "matches": rr_match_count(len(entries))}
        return PhasePlan(matches=matches, seeds=new_seeds, details=details)

    def _plan_knockout_from_groups(self, tournament: Tournament) -> PhasePlan:
        participants = self.store.list_participants(tournament.id)
        group_matches = self.store.list_matches(tournament.id, phase=Phase.group_stage)
        ppw = points_per_win(tournament.tournament_type, tournament.points_per_win)

        unfinished = sum(1 for m in group_matches if MatchStatus(m.status) == MatchStatus.scheduled)
        if unfinished:
            logger.warning(
                "Tournament %d: advancing with %d group matches still scheduled", tournament.id, unfinished
            )

        tables: Dict[int, List[StandingRow]] = {}
        for group in self.store.list_groups(tournament.id):
            roster = [p.id for p in participants if p.group_id == group.id]
            results = [result_from_match(m) for m in group_matches if m.group_id == group.id]
            tables[group.ordinal] = compute_standings(roster, results, ppw)

        draw = build_knockout_from_groups(
            tables,
            tournament.advancement_count,
            start_match_number=self.store.next_match_number(tournament.id),
        )
        if draw.conflicts:
            logger.warning(
                "Tournament %d: %d same-group pairings in round 1 of the knockout",
                tournament.id,
                len(draw.conflicts),
            )
        return PhasePlan(
            matches=draw.matches,
            details={"qualified": draw.qualified_count, "same_group_pairings": len(draw.conflicts)},
        )

    def _plan_completion(self, tournament: Tournament) -> PhasePlan:
        return PhasePlan()
