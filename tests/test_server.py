"""Tests for the CardArena FastAPI server."""

import pytest
from fastapi.testclient import TestClient

from cardarena import server
from cardarena.core.errors import BattleInvariantError
from cardarena.server import app


@pytest.fixture(name="client")
def client_fixture():
    return TestClient(app)


def _roster(*units):
    return [{"name": name, "attack": atk, "health": hp, "speed": spd} for name, atk, hp, spd in units]


GIANT = _roster(("Giant", 100, 100, 100))
TADPOLE = _roster(("Tadpole", 0, 1, 1))


class TestHealth:
    def test_health_check(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestBattle:
    def test_battle(self, client: TestClient):
        resp = client.post("/battle", json={"team_a": GIANT, "team_b": TADPOLE, "seed": 3})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["record"]["winner"] == "A"
        assert data["record"]["win_condition"] == "elimination"
        assert data["record"]["log"][2]["kind"] == "attack"
        assert data["record"]["log"][2]["died"] is True
        assert data["record"]["final_units"]["team_b"][0]["is_alive"] is False
        assert data["record"]["score"]["total"] == 175
        assert data["ratings"] is None

    def test_battle_with_ratings(self, client: TestClient):
        resp = client.post("/battle", json={
            "team_a": GIANT,
            "team_b": TADPOLE,
            "team_a_rating": {"rating": 1000, "wins": 5, "losses": 5},
            "team_b_rating": {"rating": 1400, "wins": 5, "losses": 5},
        })
        assert resp.status_code == 200
        ratings = resp.json()["ratings"]
        assert ratings["team_a"]["new_rating"] == 1029
        assert ratings["team_b"]["change"] == -29

    def test_one_rating_is_not_enough(self, client: TestClient):
        resp = client.post("/battle", json={
            "team_a": GIANT,
            "team_b": TADPOLE,
            "team_a_rating": {"rating": 1000},
        })
        assert resp.status_code == 200
        assert resp.json()["ratings"] is None

    def test_seeded_battles_match(self, client: TestClient):
        body = {
            "team_a": _roster(("A1", 4, 20, 3), ("A2", 6, 12, 5)),
            "team_b": _roster(("B1", 5, 18, 4), ("B2", 3, 25, 2)),
            "seed": 11,
        }
        first = client.post("/battle", json=body).json()
        second = client.post("/battle", json=body).json()
        assert first["record"] == second["record"]

    def test_defaults_applied(self, client: TestClient):
        resp = client.post("/battle", json={"team_a": [{"name": "Bare"}], "team_b": [{"name": "Bare"}], "seed": 1})
        assert resp.status_code == 200
        unit = resp.json()["record"]["log"][0]["team_a"][0]
        assert unit["max_health"] == 10

    @pytest.mark.parametrize(
        "body",
        [
            {"team_a": GIANT, "team_b": []},
            {"team_a": GIANT},
            {"team_a": "giant", "team_b": TADPOLE},
            {"team_a": GIANT, "team_b": [{"name": "Broken", "health": 0}]},
        ],
    )
    def test_invalid_rosters(self, client: TestClient, body):
        resp = client.post("/battle", json=body)
        assert resp.status_code == 400
        assert resp.json()["status"] == "error"

    def test_internal_error_is_500(self, client: TestClient, monkeypatch):
        def broken(*args, **kwargs):
            raise BattleInvariantError("unit lost its team")

        monkeypatch.setattr(server, "resolve_battle", broken)
        resp = client.post("/battle", json={"team_a": GIANT, "team_b": TADPOLE})
        assert resp.status_code == 500
        assert resp.json()["message"] == "unit lost its team"


class TestRatings:
    def test_upset(self, client: TestClient):
        resp = client.post("/ratings", json={
            "team_a": {"rating": 1000, "wins": 5, "losses": 5},
            "team_b": {"rating": 1400, "wins": 5, "losses": 5},
            "winner": "A",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["team_a"]["change"] == 29
        assert data["team_a"]["expected_score"] == pytest.approx(0.0909, abs=1e-3)

    def test_defaults(self, client: TestClient):
        resp = client.post("/ratings", json={"winner": "B"})
        assert resp.status_code == 200
        assert resp.json()["team_b"]["new_rating"] == 1020

    def test_invalid_winner(self, client: TestClient):
        resp = client.post("/ratings", json={"winner": "C"})
        assert resp.status_code == 422
        assert resp.json()["message"] == "Validation error"


class TestMatchmaking:
    def test_matchmaking(self, client: TestClient):
        resp = client.post("/matchmaking", json={
            "rating": 1000,
            "candidates": [
                {"team_id": "far", "rating": 1600},
                {"team_id": "near", "rating": 1050},
                {"team_id": "unrated"},
            ],
            "limit": 2,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["range_min"] == 800
        assert data["range_max"] == 1200
        assert [m["candidate"]["team_id"] for m in data["matches"]] == ["unrated", "near"]
        assert data["matches"][1]["matchmaking_score"] == 50

    def test_negative_limit_rejected(self, client: TestClient):
        resp = client.post("/matchmaking", json={"rating": 1000, "limit": -1})
        assert resp.status_code == 422


class TestWinProbability:
    def test_probability(self, client: TestClient):
        resp = client.get("/win-probability", params={"rating_a": 1400, "rating_b": 1000})
        assert resp.status_code == 200
        data = resp.json()
        assert data["probability"] == 91
        assert data["tier_a"]["tier"] == "Advanced"
        assert data["tier_b"]["tier"] == "Novice"
        assert data["tier_b"]["color"] == "#94a3b8"

    def test_defaults_even(self, client: TestClient):
        assert client.get("/win-probability").json()["probability"] == 50


class TestNonFiniteInput:
    @pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
    def test_win_probability_rejects(self, client: TestClient, value):
        resp = client.get("/win-probability", params={"rating_a": value, "rating_b": 1000})
        assert resp.status_code == 422
        assert resp.json()["status"] == "error"

    def test_ratings_reject_overflowing_rating(self, client: TestClient):
        # 1e309 parses to infinity
        resp = client.post(
            "/ratings",
            content='{"team_a": {"rating": 1e309}, "winner": "A"}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["message"] == "Validation error"

    def test_matchmaking_rejects_infinite_rating(self, client: TestClient):
        resp = client.post(
            "/matchmaking",
            content='{"rating": 1e999, "candidates": []}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422

    def test_battle_rejects_infinite_rating_record(self, client: TestClient):
        resp = client.post(
            "/battle",
            content='{"team_a": [{"name": "x"}], "team_b": [{"name": "y"}], '
                    '"team_a_rating": {"rating": 1e309}, "team_b_rating": {}}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422


class TestUnexpectedErrors:
    def test_unhandled_error_is_json_500(self, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("tier table exploded")

        monkeypatch.setattr(server, "win_probability", broken)
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/win-probability")
        assert resp.status_code == 500
        assert resp.json() == {"status": "error", "message": "tier table exploded", "data": None}


class TestLeaderboard:
    TEAMS = [
        {"team_id": "idle", "name": "Idle", "rating": 2000},
        {"team_id": "b", "name": "Second", "rating": 1300, "wins": 4, "losses": 4},
        {"team_id": "a", "name": "First", "rating": 1300, "wins": 8, "losses": 2},
    ]

    def test_by_rating(self, client: TestClient):
        resp = client.post("/leaderboard", json={"teams": self.TEAMS})
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 2
        assert [e["team"]["team_id"] for e in data["teams"]] == ["a", "b"]
        assert data["teams"][0]["win_rate"] == 80.0
        assert data["teams"][0]["total_battles"] == 10

    def test_by_win_rate_with_limit(self, client: TestClient):
        resp = client.post("/leaderboard", json={"teams": self.TEAMS, "order": "win_rate", "limit": 1})
        assert [e["team"]["name"] for e in resp.json()["teams"]] == ["First"]

    def test_unknown_order(self, client: TestClient):
        resp = client.post("/leaderboard", json={"teams": self.TEAMS, "order": "luck"})
        assert resp.status_code == 422


class TestLifespan:
    def test_startup_configures_logging(self, monkeypatch):
        levels = []
        monkeypatch.setattr(server, "configure_logging", levels.append)
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
        assert levels == [server.config.log_level]
