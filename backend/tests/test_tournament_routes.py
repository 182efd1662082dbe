"""
HTTP flows over the tournament API: CRUD, role gate, stage operations,
score entry with bracket advancement, and standings.
"""

import pytest
from fastapi.testclient import TestClient

ORGANIZER = {"X-User-Role": "gestore"}


def _create(client: TestClient, tournament_type: str = "eliminazione_diretta", **config) -> dict:
    response = client.post("/api/tournaments", json={"name": "Open di Primavera", "tournament_type": tournament_type, **config})
    assert response.status_code == 201
    return response.json()


def _register(client: TestClient, tournament_id: int, count: int, seeded: bool = True) -> list[dict]:
    created = []
    for i in range(1, count + 1):
        body = {"name": f"Player {i}"}
        if seeded:
            body["seed"] = i
        response = client.post(f"/api/tournaments/{tournament_id}/participants", json=body)
        assert response.status_code == 201
        created.append(response.json())
    return created


def _knockout_matches(client: TestClient, tournament_id: int) -> list[dict]:
    response = client.get(f"/api/tournaments/{tournament_id}/matches", params={"phase": "knockout"})
    assert response.status_code == 200
    return response.json()


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestTournamentCrud:
    def test_create_defaults(self, client: TestClient):
        data = _create(client)
        assert data["phase"] == "registration"
        assert data["num_groups"] == 2
        assert data["advancement_count"] == 2
        assert data["match_format"] == "best_of_3"
        assert data["points_per_win"] is None

    def test_unknown_type_rejected(self, client: TestClient):
        response = client.post("/api/tournaments", json={"name": "X", "tournament_type": "swiss"})
        assert response.status_code == 422

    def test_list_and_get(self, client: TestClient):
        first = _create(client)
        _create(client, "campionato")
        assert [t["id"] for t in client.get("/api/tournaments").json()][0] == first["id"]
        assert client.get(f"/api/tournaments/{first['id']}").json()["name"] == "Open di Primavera"
        assert client.get("/api/tournaments/999").status_code == 404

    def test_patch_in_registration(self, client: TestClient):
        tournament = _create(client, "girone_eliminazione")
        response = client.patch(f"/api/tournaments/{tournament['id']}", json={"num_groups": 4, "match_format": "best_of_5"})
        assert response.status_code == 200
        assert response.json()["num_groups"] == 4
        assert response.json()["match_format"] == "best_of_5"

    def test_delete(self, client: TestClient):
        tournament = _create(client)
        _register(client, tournament["id"], 4)
        client.post(f"/api/tournaments/{tournament['id']}/start", headers=ORGANIZER)

        assert client.delete(f"/api/tournaments/{tournament['id']}").status_code == 204
        assert client.get(f"/api/tournaments/{tournament['id']}").status_code == 404


class TestParticipants:
    def test_list_in_seed_order(self, client: TestClient):
        tournament = _create(client)
        tid = tournament["id"]
        client.post(f"/api/tournaments/{tid}/participants", json={"name": "Unseeded"})
        client.post(f"/api/tournaments/{tid}/participants", json={"name": "Second", "seed": 2})
        client.post(f"/api/tournaments/{tid}/participants", json={"name": "First", "seed": 1})

        names = [p["name"] for p in client.get(f"/api/tournaments/{tid}/participants").json()]
        assert names == ["First", "Second", "Unseeded"]

    @pytest.mark.parametrize("seed", [0, -3])
    def test_non_positive_seed(self, client: TestClient, seed):
        tournament = _create(client)
        response = client.post(f"/api/tournaments/{tournament['id']}/participants", json={"name": "A", "seed": seed})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_SEEDING"

    def test_duplicate_seed(self, client: TestClient):
        tournament = _create(client)
        _register(client, tournament["id"], 1)
        response = client.post(f"/api/tournaments/{tournament['id']}/participants", json={"name": "Dup", "seed": 1})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_SEEDING"

    def test_withdraw(self, client: TestClient):
        tournament = _create(client)
        player = _register(client, tournament["id"], 1)[0]
        url = f"/api/tournaments/{tournament['id']}/participants/{player['id']}"
        assert client.delete(url).status_code == 204
        assert client.delete(url).status_code == 404


class TestRoleGate:
    @pytest.mark.parametrize("headers", [{}, {"X-User-Role": "participant"}])
    def test_start_requires_privileged_role(self, client: TestClient, headers):
        tournament = _create(client)
        _register(client, tournament["id"], 4)
        response = client.post(f"/api/tournaments/{tournament['id']}/start", headers=headers)
        assert response.status_code == 403

    @pytest.mark.parametrize("role", ["admin", "GESTORE", "Organizer"])
    def test_privileged_roles_case_insensitive(self, client: TestClient, role):
        tournament = _create(client)
        _register(client, tournament["id"], 4)
        response = client.post(f"/api/tournaments/{tournament['id']}/start", headers={"X-User-Role": role})
        assert response.status_code == 200


class TestStageErrors:
    def test_insufficient_participants(self, client: TestClient):
        tournament = _create(client)
        _register(client, tournament["id"], 1)
        response = client.post(f"/api/tournaments/{tournament['id']}/start", headers=ORGANIZER)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INSUFFICIENT_PARTICIPANTS"

    def test_unknown_tournament(self, client: TestClient):
        response = client.post("/api/tournaments/999/start", headers=ORGANIZER)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "TOURNAMENT_NOT_FOUND"

    def test_generate_bracket_twice(self, client: TestClient):
        tournament = _create(client)
        _register(client, tournament["id"], 5)
        url = f"/api/tournaments/{tournament['id']}/generate-bracket"

        first = client.post(url, headers=ORGANIZER)
        assert first.status_code == 200
        assert first.json()["matches_created"] == 7

        second = client.post(url, headers=ORGANIZER)
        assert second.status_code == 409
        assert second.json()["detail"]["code"] == "MATCHES_ALREADY_EXIST"
        assert len(_knockout_matches(client, tournament["id"])) == 7

    def test_config_frozen_after_start(self, client: TestClient):
        tournament = _create(client)
        _register(client, tournament["id"], 4)
        client.post(f"/api/tournaments/{tournament['id']}/start", headers=ORGANIZER)

        response = client.patch(f"/api/tournaments/{tournament['id']}", json={"name": "Renamed"})
        assert response.status_code == 409
        late = client.post(f"/api/tournaments/{tournament['id']}/participants", json={"name": "Late"})
        assert late.status_code == 409


class TestScoreEntry:
    @pytest.fixture
    def bracket(self, client: TestClient):
        tournament = _create(client)
        players = _register(client, tournament["id"], 4)
        client.post(f"/api/tournaments/{tournament['id']}/start", headers=ORGANIZER)
        return tournament["id"], {p["seed"]: p["id"] for p in players}

    def test_invalid_set_rejected(self, client: TestClient, bracket):
        tid, _ = bracket
        match = _knockout_matches(client, tid)[0]
        response = client.patch(
            f"/api/tournaments/{tid}/matches/{match['id']}",
            json={"sets": [{"a": 6, "b": 5}, {"a": 6, "b": 0}]},
            headers=ORGANIZER,
        )
        assert response.status_code == 422
        assert "won by 2" in response.json()["detail"]

    def test_score_entry_requires_role(self, client: TestClient, bracket):
        tid, _ = bracket
        match = _knockout_matches(client, tid)[0]
        response = client.patch(
            f"/api/tournaments/{tid}/matches/{match['id']}", json={"sets": [{"a": 6, "b": 0}, {"a": 6, "b": 0}]}
        )
        assert response.status_code == 403

    def test_winner_must_agree_with_sets(self, client: TestClient, bracket):
        tid, _ = bracket
        match = _knockout_matches(client, tid)[0]
        response = client.patch(
            f"/api/tournaments/{tid}/matches/{match['id']}",
            json={"sets": [{"a": 6, "b": 0}, {"a": 6, "b": 0}], "winner_id": match["participant_b_id"]},
            headers=ORGANIZER,
        )
        assert response.status_code == 422

    def test_pending_final_cannot_complete(self, client: TestClient, bracket):
        tid, _ = bracket
        final = _knockout_matches(client, tid)[-1]
        assert final["status"] == "pending"
        response = client.patch(
            f"/api/tournaments/{tid}/matches/{final['id']}", json={"winner_id": 1}, headers=ORGANIZER
        )
        assert response.status_code == 422

    def test_results_advance_to_final_and_complete(self, client: TestClient, bracket):
        tid, seeds = bracket
        semi_1, semi_2, final = _knockout_matches(client, tid)

        first = client.patch(
            f"/api/tournaments/{tid}/matches/{semi_1['id']}",
            json={"sets": [{"a": 6, "b": 3}, {"a": 3, "b": 6}, {"a": 7, "b": 6}]},
            headers=ORGANIZER,
        )
        assert first.status_code == 200
        body = first.json()
        assert body["match"]["status"] == "completed"
        assert body["match"]["winner_id"] == semi_1["participant_a_id"]
        assert body["advanced_count"] == 1

        # Terminal
        again = client.patch(
            f"/api/tournaments/{tid}/matches/{semi_1['id']}",
            json={"sets": [{"a": 0, "b": 6}, {"a": 0, "b": 6}]},
            headers=ORGANIZER,
        )
        assert again.status_code == 409

        client.patch(
            f"/api/tournaments/{tid}/matches/{semi_2['id']}",
            json={"sets": [{"a": 2, "b": 6}, {"a": 2, "b": 6}]},
            headers=ORGANIZER,
        )
        final = _knockout_matches(client, tid)[-1]
        assert final["status"] == "scheduled"
        assert (final["participant_a_id"], final["participant_b_id"]) == (
            semi_1["participant_a_id"],
            semi_2["participant_b_id"],
        )

        # Walkover
        walkover = client.patch(
            f"/api/tournaments/{tid}/matches/{final['id']}",
            json={"winner_id": final["participant_b_id"]},
            headers=ORGANIZER,
        )
        assert walkover.status_code == 200
        assert walkover.json()["match"]["score_json"] is None

        standings = client.get(f"/api/tournaments/{tid}/standings").json()
        # Walkover final is not counted; seed 3 leads on set difference
        assert standings["rows"][0]["participant_id"] == seeds[3]
        assert standings["rows"][0]["played"] == 1
        assert standings["warnings"] == []

        done = client.post(f"/api/tournaments/{tid}/complete", headers=ORGANIZER)
        assert done.status_code == 200
        assert done.json()["phase"] == "completed"

    def test_cancelled_semi_gives_opponent_a_bye(self, client: TestClient, bracket):
        tid, _ = bracket
        semi_1, semi_2, _final = _knockout_matches(client, tid)

        cancel = client.patch(
            f"/api/tournaments/{tid}/matches/{semi_1['id']}", json={"status": "cancelled"}, headers=ORGANIZER
        )
        assert cancel.status_code == 200
        client.patch(
            f"/api/tournaments/{tid}/matches/{semi_2['id']}",
            json={"sets": [{"a": 6, "b": 1}, {"a": 6, "b": 1}]},
            headers=ORGANIZER,
        )
        final = _knockout_matches(client, tid)[-1]
        assert final["status"] == "completed"
        assert final["winner_id"] == semi_2["participant_a_id"]

    def test_resolve_bracket_is_idempotent(self, client: TestClient, bracket):
        tid, _ = bracket
        response = client.post(f"/api/tournaments/{tid}/resolve-bracket", headers=ORGANIZER)
        assert response.status_code == 200
        assert response.json() == {"advanced_count": 0}


class TestGroupFlow:
    def test_groups_and_group_standings(self, client: TestClient):
        tournament = _create(client, "girone_eliminazione", num_groups=2)
        tid = tournament["id"]
        _register(client, tid, 9)

        started = client.post(f"/api/tournaments/{tid}/start", headers=ORGANIZER)
        assert started.status_code == 200
        assert started.json()["phase"] == "group_stage"

        groups = client.get(f"/api/tournaments/{tid}/groups").json()
        assert [g["name"] for g in groups] == ["A", "B"]
        assert [p["seed"] for p in groups[0]["participants"]] == [1, 4, 5, 8, 9]

        group_b = groups[1]
        matches = client.get(f"/api/tournaments/{tid}/matches", params={"group_id": group_b["id"]}).json()
        assert len(matches) == 6

        table = client.get(f"/api/tournaments/{tid}/groups/{group_b['id']}/standings").json()
        assert [row["position"] for row in table["rows"]] == [1, 2, 3, 4]
        assert [row["participant_name"] for row in table["rows"]] == ["Player 2", "Player 3", "Player 6", "Player 7"]

        assert client.get(f"/api/tournaments/{tid}/groups/999/standings").status_code == 404
