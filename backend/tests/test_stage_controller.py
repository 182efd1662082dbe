"""
Stage Advancement Controller against a real SQLModel session.

Verifies:
- Each format's lifecycle (elimination, group + knockout, championship)
- Phase generation runs exactly once (sequential and racing callers)
- Failed transitions persist nothing
- Seeds are assigned at start in registration order
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session, func, select

from app.models.group import TournamentGroup
from app.models.match import Match, MatchStatus
from app.models.participant import Participant
from app.models.phase_generation import PhaseGeneration
from app.models.tournament import Phase, Tournament, TournamentType
from app.services.errors import ErrorCode
from app.services.stage_controller import StageController
from app.services.tournament_store import SqlTournamentStore

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_tournament(session: Session, tournament_type: TournamentType, n: int, seeded: bool = True, **config):
    tournament = Tournament(name="Torneo Sociale", tournament_type=tournament_type.value, **config)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)

    for i in range(1, n + 1):
        session.add(
            Participant(
                tournament_id=tournament.id,
                name=f"Player {i}",
                seed=i if seeded else None,
                created_at=BASE_TIME + timedelta(minutes=i),
            )
        )
    session.commit()
    return tournament


def _controller(session: Session) -> StageController:
    return StageController(SqlTournamentStore(session))


def _matches(session: Session, tournament_id: int, phase: Phase = None):
    return SqlTournamentStore(session).list_matches(tournament_id, phase=phase)


def _match_count(session: Session, tournament_id: int) -> int:
    return session.exec(select(func.count()).select_from(Match).where(Match.tournament_id == tournament_id)).one()


def _seed_of(session: Session) -> dict:
    return {p.id: p.seed for p in session.exec(select(Participant)).all()}


def _play_chalk(session: Session, matches):
    """Complete every scheduled match with the better seed winning 6-2 6-3."""
    seeds = _seed_of(session)
    for m in matches:
        if MatchStatus(m.status) != MatchStatus.scheduled:
            continue
        a_wins = seeds[m.participant_a_id] < seeds[m.participant_b_id]
        sets = [{"a": 6, "b": 2}, {"a": 6, "b": 3}] if a_wins else [{"a": 2, "b": 6}, {"a": 3, "b": 6}]
        m.score_json = {"sets": sets}
        m.winner_id = m.participant_a_id if a_wins else m.participant_b_id
        m.status = MatchStatus.completed.value
        session.add(m)
    session.commit()


class TestElimination:
    def test_five_participant_bracket(self, session: Session):
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 5)
        outcome = _controller(session).start_tournament(tournament.id)

        assert outcome.ok
        assert outcome.phase == Phase.knockout
        assert outcome.matches_created == 7
        assert outcome.details["byes"] == 3

        session.refresh(tournament)
        assert Phase(tournament.phase) == Phase.knockout
        matches = _matches(session, tournament.id, Phase.knockout)
        assert [m.round_name for m in matches[4:]] == ["Semifinali", "Semifinali", "Finale"]
        assert all(MatchStatus(m.status) == MatchStatus.pending for m in matches[4:])

    def test_generate_bracket_twice(self, session: Session):
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 6)
        controller = _controller(session)

        first = controller.generate_bracket(tournament.id)
        second = controller.generate_bracket(tournament.id)

        assert first.ok
        assert not second.ok
        assert second.error.code == ErrorCode.MATCHES_ALREADY_EXIST
        assert _match_count(session, tournament.id) == first.matches_created

    def test_racing_generation_has_one_winner(self, session: Session, monkeypatch):
        """A concurrent winner committed its marker after our existence check ran."""
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 4)
        session.add(PhaseGeneration(tournament_id=tournament.id, phase=Phase.knockout.value))
        session.commit()

        store = SqlTournamentStore(session)
        monkeypatch.setattr(store, "phase_already_generated", lambda tournament_id, phase: False)
        outcome = StageController(store).generate_bracket(tournament.id)

        assert not outcome.ok
        assert outcome.error.code == ErrorCode.MATCHES_ALREADY_EXIST
        assert _match_count(session, tournament.id) == 0
        session.refresh(tournament)
        assert Phase(tournament.phase) == Phase.registration

    def test_insufficient_participants_persists_nothing(self, session: Session):
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 1)
        outcome = _controller(session).start_tournament(tournament.id)

        assert not outcome.ok
        assert outcome.error.code == ErrorCode.INSUFFICIENT_PARTICIPANTS
        assert _match_count(session, tournament.id) == 0
        assert session.exec(select(PhaseGeneration)).first() is None
        session.refresh(tournament)
        assert Phase(tournament.phase) == Phase.registration

    def test_full_lifecycle_to_completed(self, session: Session):
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 4)
        controller = _controller(session)
        controller.start_tournament(tournament.id)

        _play_chalk(session, _matches(session, tournament.id, Phase.knockout))
        assert controller.resolve_bracket(tournament.id) == 1
        final = _matches(session, tournament.id, Phase.knockout)[-1]
        assert MatchStatus(final.status) == MatchStatus.scheduled
        assert {final.participant_a_id, final.participant_b_id} == {
            p.id for p in session.exec(select(Participant).where(Participant.seed <= 2)).all()
        }

        done = controller.advance_stage(tournament.id)
        assert done.ok and done.phase == Phase.completed
        again = controller.advance_stage(tournament.id)
        assert again.error.code == ErrorCode.WRONG_PHASE


class TestSeedAssignment:
    def test_missing_seeds_filled_in_registration_order(self, session: Session):
        tournament = _make_tournament(session, TournamentType.eliminazione_diretta, 4, seeded=False)
        participants = session.exec(select(Participant).order_by(Participant.id)).all()
        participants[2].seed = 1
        session.add(participants[2])
        session.commit()

        assert _controller(session).start_tournament(tournament.id).ok

        seeds = [p.seed for p in session.exec(select(Participant).order_by(Participant.id)).all()]
        assert seeds == [2, 3, 1, 4]


class TestGroupFormat:
    def test_nine_participants_two_groups(self, session: Session):
        tournament = _make_tournament(
            session, TournamentType.girone_eliminazione, 9, num_groups=2, advancement_count=2
        )
        controller = _controller(session)

        started = controller.start_tournament(tournament.id)
        assert started.ok
        assert started.phase == Phase.group_stage
        assert started.groups_created == 2
        assert started.matches_created == 16
        assert started.details["group_sizes"] == {"A": 5, "B": 4}

        groups = session.exec(select(TournamentGroup).order_by(TournamentGroup.ordinal)).all()
        assert [g.name for g in groups] == ["A", "B"]
        for m in _matches(session, tournament.id, Phase.group_stage):
            assert m.group_id is not None

        # Groups are drawn exactly once
        assert controller.start_tournament(tournament.id).error.code == ErrorCode.MATCHES_ALREADY_EXIST

        _play_chalk(session, _matches(session, tournament.id, Phase.group_stage))
        knockout = controller.generate_bracket(tournament.id)
        assert knockout.ok
        assert knockout.details["qualified"] == 4
        assert knockout.details["same_group_pairings"] == 0

        round1 = [m for m in _matches(session, tournament.id, Phase.knockout) if m.round_number == 1]
        assert len(round1) == 2
        assert all(m.round_name == "round_of_4" for m in round1)

        group_of = {p.id: p.group_id for p in session.exec(select(Participant)).all()}
        seeds = _seed_of(session)
        for m in round1:
            assert group_of[m.participant_a_id] != group_of[m.participant_b_id]
        assert sorted((seeds[m.participant_a_id], seeds[m.participant_b_id]) for m in round1) == [(1, 3), (2, 4)]

    def test_group_standings_restricted_to_group(self, session: Session):
        tournament = _make_tournament(session, TournamentType.girone_eliminazione, 8, num_groups=2)
        controller = _controller(session)
        controller.start_tournament(tournament.id)
        _play_chalk(session, _matches(session, tournament.id, Phase.group_stage))

        group_a = session.exec(select(TournamentGroup).where(TournamentGroup.name == "A")).one()
        report = controller.standings(tournament.id, group_id=group_a.id)
        seeds = _seed_of(session)

        assert [seeds[r.participant_id] for r in report.rows] == [1, 4, 5, 8]
        assert [r.points for r in report.rows] == [6, 4, 2, 0]
        assert report.warnings == []

    def test_too_many_groups(self, session: Session):
        tournament = _make_tournament(session, TournamentType.girone_eliminazione, 20, num_groups=9)
        outcome = _controller(session).start_tournament(tournament.id)
        assert outcome.error.code == ErrorCode.TOO_MANY_GROUPS
        assert session.exec(select(TournamentGroup)).first() is None

    def test_knockout_requires_group_stage(self, session: Session):
        tournament = _make_tournament(session, TournamentType.girone_eliminazione, 8)
        outcome = _controller(session).generate_bracket(tournament.id)
        assert outcome.error.code == ErrorCode.WRONG_PHASE


class TestChampionship:
    def test_seven_participant_round_robin(self, session: Session):
        tournament = _make_tournament(session, TournamentType.campionato, 7)
        outcome = _controller(session).start_tournament(tournament.id)

        assert outcome.ok
        assert outcome.phase == Phase.in_progress
        assert outcome.matches_created == 21
        assert outcome.details["rounds"] == 7
        assert outcome.details["matches"] == 21

        matches = _matches(session, tournament.id, Phase.in_progress)
        assert matches[0].round_name == "Giornata 1"
        assert len({frozenset((m.participant_a_id, m.participant_b_id)) for m in matches}) == 21

    def test_even_field_has_one_round_fewer(self, session: Session):
        tournament = _make_tournament(session, TournamentType.campionato, 6)
        outcome = _controller(session).start_tournament(tournament.id)

        assert outcome.details == {"rounds": 5, "matches": 15}
        matches = _matches(session, tournament.id, Phase.in_progress)
        assert len(matches) == 15
        assert max(m.round_number for m in matches) == 5

    def test_championship_points_default_to_three(self, session: Session):
        tournament = _make_tournament(session, TournamentType.campionato, 4)
        controller = _controller(session)
        controller.start_tournament(tournament.id)
        _play_chalk(session, _matches(session, tournament.id))

        rows = controller.standings(tournament.id).rows
        assert [r.points for r in rows] == [9, 6, 3, 0]

    def test_no_bracket_for_championship(self, session: Session):
        tournament = _make_tournament(session, TournamentType.campionato, 4)
        outcome = _controller(session).generate_bracket(tournament.id)
        assert outcome.error.code == ErrorCode.WRONG_PHASE


def test_unknown_tournament(session: Session):
    outcome = _controller(session).advance_stage(999)
    assert not outcome.ok
    assert outcome.error.code == ErrorCode.TOURNAMENT_NOT_FOUND
