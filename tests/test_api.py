import pytest
from fastapi.testclient import TestClient

from pitchside import api
from pitchside.api import SessionService
from pitchside.clock import ManualClock


@pytest.fixture
def client(tmp_path, monkeypatch):
    clock = ManualClock()
    monkeypatch.setattr(api, "service", SessionService(tmp_path, clock))
    return TestClient(api.app), clock


def _create(http: TestClient) -> dict:
    resp = http.post(
        "/api/session",
        json={
            "session_name": "Thursday",
            "num_teams": 3,
            "players_per_team": 2,
            "goals_to_win": 2,
            "new_players": ["ana", "bo", "cy", "dee", "eli", "fay"],
            "seed": 7,
        },
    )
    assert resp.status_code == 200
    return resp.json()


def test_health_and_empty_state(client) -> None:
    http, _ = client
    assert http.get("/api/health").json() == {"status": "ok"}
    assert http.get("/api/session").status_code == 404
    assert http.get("/api/session/clock").status_code == 404
    assert http.get("/api/players").json() == []


def test_rejects_bad_setup(client) -> None:
    http, _ = client
    resp = http.post("/api/session", json={"num_teams": 5, "new_players": ["ana"]})
    assert resp.status_code == 400
    resp = http.post("/api/session", json={"num_teams": 3, "players_per_team": 2})
    assert resp.status_code == 400


def test_full_session_flow(client, tmp_path) -> None:
    http, clock = client
    session = _create(http)
    assert len(session["teams"]) == 3
    assert all(len(team["player_ids"]) == 2 for team in session["teams"])
    opening = session["games"][0]
    assert opening["status"] == "pending"
    assert session["needs_tie_break"] is False

    assert http.post("/api/session/start").status_code == 200
    assert http.post("/api/session/start").status_code == 400
    clock.advance(30)
    paused = http.post("/api/session/pause").json()
    assert paused["games"][0]["status"] == "paused"
    assert http.post("/api/session/resume").status_code == 200

    team1 = opening["team1_id"]
    scorer = next(t["player_ids"][0] for t in session["teams"] if t["team_id"] == team1)
    first = http.post("/api/session/goals", json={"team_id": team1, "scorer_id": scorer})
    assert first.status_code == 200
    goal_id = first.json()["goal_id"]
    assert http.patch(f"/api/session/goals/{goal_id}", json={"scorer_id": scorer}).status_code == 200
    assert http.patch("/api/session/goals/missing", json={}).status_code == 404
    assert http.delete("/api/session/goals/missing").status_code == 404

    clock.advance(10)
    second = http.post("/api/session/goals", json={"team_id": team1, "scorer_id": scorer}).json()
    games = second["session"]["games"]
    assert games[0]["status"] == "finished"
    assert games[0]["winner_team_id"] == team1
    assert games[1]["status"] == "pending"
    assert team1 in (games[1]["team1_id"], games[1]["team2_id"])

    # Only a live game can be finished.
    assert http.post("/api/session/finish").status_code == 400

    table = http.get("/api/session/standings").json()
    assert table["teams"][0]["team_id"] == team1
    assert table["teams"][0]["points"] == 3
    assert table["players"][0]["player_id"] == scorer
    assert table["players"][0]["goals"] == 2

    clock_state = http.get("/api/session/clock").json()
    assert clock_state["game_number"] == 2
    assert clock_state["status"] == "pending"

    done = http.post("/api/session/complete").json()
    assert done["ok"] is True
    assert done["cloud_synced"] is False
    assert done["players_updated"] == 4
    assert scorer in done["breakdowns"]

    assert http.get("/api/session").status_code == 404
    roster = http.get("/api/players").json()
    assert len(roster) == 6
    star = next(p for p in roster if p["player_id"] == scorer)
    assert star["total_goals"] == 2
    assert star["total_sessions_played"] == 1
    assert isinstance(http.get("/api/news", params={"limit": 5}).json(), list)
    assert (tmp_path / "session_history.json").exists()
    assert not (tmp_path / "active_session.json").exists()


def test_active_session_survives_restart(client, tmp_path) -> None:
    http, clock = client
    created = _create(http)
    http.post("/api/session/start")
    clock.advance(45)

    reloaded = SessionService(tmp_path, clock)
    assert reloaded.machine is not None
    assert reloaded.machine.session.session_id == created["session_id"]
    assert reloaded.clock_state(announce=False)["elapsed_seconds"] == pytest.approx(45)
