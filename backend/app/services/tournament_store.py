"""
Persistence collaborator for the stage controller.

SqlTournamentStore works inside one Session: every write is flushed, never
committed. The caller owns the transaction boundary (commit / rollback), so
groups, matches, seeds, the phase update and the generation marker land
together or not at all.
"""

from typing import List, Optional, Sequence

from sqlmodel import Session, func, select

from app.models.group import TournamentGroup
from app.models.match import Match
from app.models.participant import Participant
from app.models.phase_generation import PhaseGeneration
from app.models.tournament import Phase, Tournament
from app.services.seeding import order_by_seed
from app.utils.sql import scalar_int


class SqlTournamentStore:
    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        return self.session.get(Tournament, tournament_id)

    def list_participants(self, tournament_id: int) -> List[Participant]:
        """Participants in deterministic seed order."""
        participants = self.session.exec(
            select(Participant).where(Participant.tournament_id == tournament_id)
        ).all()
        return order_by_seed(participants)

    def list_matches(
        self,
        tournament_id: int,
        phase: Optional[Phase] = None,
        group_id: Optional[int] = None,
    ) -> List[Match]:
        query = select(Match).where(Match.tournament_id == tournament_id)
        if phase is not None:
            query = query.where(Match.phase == Phase(phase).value)
        if group_id is not None:
            query = query.where(Match.group_id == group_id)
        return list(self.session.exec(query.order_by(Match.match_number)).all())

    def list_groups(self, tournament_id: int) -> List[TournamentGroup]:
        return list(
            self.session.exec(
                select(TournamentGroup)
                .where(TournamentGroup.tournament_id == tournament_id)
                .order_by(TournamentGroup.ordinal)
            ).all()
        )

    def next_match_number(self, tournament_id: int) -> int:
        current = self.session.exec(
            select(func.max(Match.match_number)).where(Match.tournament_id == tournament_id)
        ).one()
        return (current or 0) + 1

    def count_matches(self, tournament_id: int, phase: Phase) -> int:
        return scalar_int(
            self.session.exec(
                select(func.count())
                .select_from(Match)
                .where(Match.tournament_id == tournament_id, Match.phase == Phase(phase).value)
            ).one()
        )

    def phase_already_generated(self, tournament_id: int, phase: Phase) -> bool:
        """Existence half of the check-then-insert guard."""
        marker = self.session.exec(
            select(PhaseGeneration).where(
                PhaseGeneration.tournament_id == tournament_id,
                PhaseGeneration.phase == Phase(phase).value,
            )
        ).first()
        return marker is not None or self.count_matches(tournament_id, phase) > 0

    # ------------------------------------------------------------------
    # Writes (flushed, not committed)
    # ------------------------------------------------------------------

    def record_generation(
        self,
        tournament_id: int,
        phase: Phase,
        matches_created: int = 0,
        groups_created: int = 0,
    ) -> PhaseGeneration:
        """Insert the (tournament, phase) marker. Raises IntegrityError if another
        transaction already generated this phase."""
        marker = PhaseGeneration(
            tournament_id=tournament_id,
            phase=Phase(phase).value,
            matches_created=matches_created,
            groups_created=groups_created,
        )
        self.session.add(marker)
        self.session.flush()
        return marker

    def insert_groups(self, groups: Sequence[TournamentGroup]) -> List[TournamentGroup]:
        self.session.add_all(groups)
        self.session.flush()
        return list(groups)

    def insert_matches(self, matches: Sequence[Match]) -> List[Match]:
        self.session.add_all(matches)
        self.session.flush()
        return list(matches)

    def save_matches(self, matches: Sequence[Match]) -> None:
        for match in matches:
            self.session.add(match)
        self.session.flush()

    def update_participant_group(self, participant_id: int, group_id: Optional[int]) -> None:
        participant = self.session.get(Participant, participant_id)
        participant.group_id = group_id
        self.session.add(participant)

    def update_participant_seed(self, participant_id: int, seed: int) -> None:
        participant = self.session.get(Participant, participant_id)
        participant.seed = seed
        self.session.add(participant)

    def update_tournament_phase(self, tournament_id: int, phase: Phase) -> None:
        tournament = self.session.get(Tournament, tournament_id)
        tournament.phase = Phase(phase).value
        self.session.add(tournament)
        self.session.flush()

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
