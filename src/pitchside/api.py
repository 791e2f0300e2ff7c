from __future__ import annotations

import os
import random
from pathlib import Path
from threading import Lock
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .clock import Clock, SystemClock, to_datetime
from .lineup import auto_balance, can_start, create_player, create_session
from .match import MatchStateMachine, start_session
from .models import GameStatus, RotationMode, Session, SessionConfig
from .news import manage_news_feed
from .processor import process_finished_session
from .serialization import serialize_breakdown, serialize_news_item, serialize_player, serialize_session
from .statistics import calculate_all_stats
from .storage import SessionStore


class SessionSetup(BaseModel):
    session_name: str = ""
    num_teams: int = 3
    players_per_team: int = 5
    match_duration_minutes: int | None = None
    goals_to_win: int | None = None
    rotation_mode: str = RotationMode.AUTO_ROTATE.value
    player_ids: list[str] | None = None
    new_players: list[str] = []
    seed: int | None = None


class FinishSelection(BaseModel):
    manual_winner_id: str | None = None


class GoalEntry(BaseModel):
    team_id: str
    scorer_id: str | None = None
    assistant_id: str | None = None
    is_own_goal: bool = False


class GoalCorrection(BaseModel):
    scorer_id: str | None = None
    assistant_id: str | None = None
    is_own_goal: bool = False


class SessionService:
    def __init__(self, data_root: str | Path | None = None, clock: Clock | None = None) -> None:
        self.data_root = Path(data_root or os.environ.get("PITCHSIDE_DATA_DIR") or Path(__file__).resolve().parents[2])
        self.clock = clock or SystemClock()
        self.store = SessionStore(self.data_root)
        self._lock = Lock()
        session = self.store.load_active_session()
        self.machine: MatchStateMachine | None = MatchStateMachine(session, self.clock) if session is not None else None

    def _require_machine(self) -> MatchStateMachine:
        if self.machine is None:
            raise HTTPException(status_code=404, detail="No active session")
        return self.machine

    def _persist(self) -> None:
        if self.machine is not None:
            self.store.save_active_session(self.machine.session)

    def snapshot(self) -> dict[str, Any]:
        machine = self._require_machine()
        payload = serialize_session(machine.session)
        payload["needs_tie_break"] = machine.needs_tie_break
        payload["clock"] = self.clock_state(announce=False)
        return payload

    def create(self, setup: SessionSetup) -> dict[str, Any]:
        try:
            config = SessionConfig(
                num_teams=setup.num_teams,
                players_per_team=setup.players_per_team,
                match_duration_minutes=setup.match_duration_minutes,
                goals_to_win=setup.goals_to_win,
                rotation_mode=RotationMode(setup.rotation_mode),
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        now = to_datetime(self.clock.now())
        roster = self.store.load_players()
        created = [create_player(name, created_at=now) for name in setup.new_players if name.strip()]
        if created:
            self.store.save_players(created)
        wanted = set(setup.player_ids) if setup.player_ids is not None else None
        pool = [p for p in roster if wanted is None or p.player_id in wanted] + created
        if not pool:
            raise HTTPException(status_code=400, detail="No players selected")

        session = create_session(config, pool, date=now, session_name=setup.session_name)
        auto_balance(session)
        if not can_start(session):
            raise HTTPException(status_code=400, detail="Every team needs at least one player")
        start_session(session, rng=random.Random(setup.seed), clock=self.clock)
        self.machine = MatchStateMachine(session, self.clock)
        self._persist()
        return self.snapshot()

    def transition(self, action: str) -> dict[str, Any]:
        machine = self._require_machine()
        handlers = {"start": machine.start, "pause": machine.pause, "resume": machine.resume}
        if not handlers[action]():
            raise HTTPException(status_code=400, detail=f"Cannot {action} the current game")
        self._persist()
        return self.snapshot()

    def finish(self, manual_winner_id: str | None) -> dict[str, Any]:
        machine = self._require_machine()
        if not machine.finish(manual_winner_id):
            if machine.needs_tie_break:
                raise HTTPException(status_code=400, detail="Opening draw needs a manual winner")
            raise HTTPException(status_code=400, detail="No live game to finish")
        self._persist()
        return self.snapshot()

    def add_goal(self, entry: GoalEntry) -> dict[str, Any]:
        machine = self._require_machine()
        goal = machine.record_goal(
            entry.team_id,
            scorer_id=entry.scorer_id,
            assistant_id=entry.assistant_id,
            is_own_goal=entry.is_own_goal,
        )
        if goal is None:
            raise HTTPException(status_code=400, detail="Goal does not fit the current game")
        self._persist()
        return {"ok": True, "goal_id": goal.goal_id, "session": self.snapshot()}

    def correct_goal(self, goal_id: str, correction: GoalCorrection) -> dict[str, Any]:
        machine = self._require_machine()
        goal = machine.update_goal(
            goal_id,
            scorer_id=correction.scorer_id,
            assistant_id=correction.assistant_id,
            is_own_goal=correction.is_own_goal,
        )
        if goal is None:
            raise HTTPException(status_code=404, detail="Goal not found")
        self._persist()
        return self.snapshot()

    def remove_goal(self, goal_id: str) -> dict[str, Any]:
        machine = self._require_machine()
        if not machine.delete_goal(goal_id):
            raise HTTPException(status_code=404, detail="Goal not found")
        self._persist()
        return self.snapshot()

    def clock_state(self, announce: bool = True) -> dict[str, Any]:
        machine = self._require_machine()
        game = machine.current_game
        return {
            "game_number": game.game_number if game is not None else None,
            "status": game.status.value if game is not None else None,
            "elapsed_seconds": machine.elapsed_seconds(),
            "remaining_seconds": machine.remaining_seconds(),
            "display_seconds": machine.display_seconds(),
            "announcements": machine.due_announcements() if announce else [],
        }

    def standings(self) -> dict[str, Any]:
        stats = calculate_all_stats(self._require_machine().session)
        return {
            "teams": [
                {
                    "team_id": ts.team.team_id,
                    "name": ts.team.name,
                    "color": ts.team.color,
                    "games_played": ts.games_played,
                    "wins": ts.wins,
                    "draws": ts.draws,
                    "losses": ts.losses,
                    "goals_for": ts.goals_for,
                    "goals_against": ts.goals_against,
                    "goal_difference": ts.goal_difference,
                    "points": ts.points,
                    "clean_sheets": ts.clean_sheets,
                    "big_stars": ts.team.big_stars,
                }
                for ts in stats.team_stats
            ],
            "players": [
                {
                    "player_id": ps.player.player_id,
                    "nickname": ps.player.nickname,
                    "display_name": ps.player.display_name,
                    "team_id": ps.team.team_id,
                    "goals": ps.goals,
                    "assists": ps.assists,
                    "own_goals": ps.own_goals,
                    "games_played": ps.games_played,
                    "wins": ps.wins,
                    "draws": ps.draws,
                    "losses": ps.losses,
                    "win_rate": ps.win_rate_pct,
                }
                for ps in sorted(stats.player_stats, key=lambda ps: (ps.goals + ps.assists, ps.goals), reverse=True)
            ],
        }

    def complete(self) -> dict[str, Any]:
        machine = self._require_machine()
        session: Session = machine.session
        game = session.current_game
        if game is not None and game.status in (GameStatus.ACTIVE, GameStatus.PAUSED):
            raise HTTPException(status_code=400, detail="Finish the current game first")
        # The trailing unplayed game is dropped from the archive.
        session.games = [g for g in session.games if g.is_finished]

        now = to_datetime(self.clock.now())
        result = process_finished_session(session, self.store.load_players(), self.store.load_news_feed(), now)
        players_saved = self.store.save_players(result.players_to_save)
        session_saved = self.store.save_session(result.final_session)
        self.store.save_news_feed(result.updated_news_feed)
        self.store.save_active_session(None)
        self.machine = None
        return {
            "ok": players_saved.success and session_saved.success,
            "cloud_synced": players_saved.cloud_synced and session_saved.cloud_synced,
            "session_id": result.final_session.session_id,
            "players_updated": len(result.players_to_save),
            "breakdowns": {pid: serialize_breakdown(b) for pid, b in result.breakdowns.items()},
            "news": [serialize_news_item(item) for item in result.updated_news_feed],
        }

    def players(self) -> list[dict[str, Any]]:
        roster = sorted(self.store.load_players(), key=lambda p: p.rating, reverse=True)
        return [serialize_player(p) for p in roster]

    def news(self, limit: int = 50) -> list[dict[str, Any]]:
        feed = manage_news_feed(self.store.load_news_feed(), to_datetime(self.clock.now()))
        return [serialize_news_item(item) for item in feed[: max(1, min(limit, 50))]]


service = SessionService()
app = FastAPI(title="Pitchside API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/session")
def create_active_session(payload: SessionSetup) -> dict[str, Any]:
    with service._lock:
        return service.create(payload)


@app.get("/api/session")
def active_session() -> dict[str, Any]:
    with service._lock:
        return service.snapshot()


@app.post("/api/session/start")
def start_game() -> dict[str, Any]:
    with service._lock:
        return service.transition("start")


@app.post("/api/session/pause")
def pause_game() -> dict[str, Any]:
    with service._lock:
        return service.transition("pause")


@app.post("/api/session/resume")
def resume_game() -> dict[str, Any]:
    with service._lock:
        return service.transition("resume")


@app.post("/api/session/finish")
def finish_game(payload: FinishSelection | None = None) -> dict[str, Any]:
    with service._lock:
        return service.finish(payload.manual_winner_id if payload is not None else None)


@app.post("/api/session/goals")
def add_goal(payload: GoalEntry) -> dict[str, Any]:
    with service._lock:
        return service.add_goal(payload)


@app.patch("/api/session/goals/{goal_id}")
def correct_goal(goal_id: str, payload: GoalCorrection) -> dict[str, Any]:
    with service._lock:
        return service.correct_goal(goal_id, payload)


@app.delete("/api/session/goals/{goal_id}")
def delete_goal(goal_id: str) -> dict[str, Any]:
    with service._lock:
        return service.remove_goal(goal_id)


@app.get("/api/session/clock")
def game_clock() -> dict[str, Any]:
    with service._lock:
        state = service.clock_state()
        service._persist()
        return state


@app.get("/api/session/standings")
def standings() -> dict[str, Any]:
    with service._lock:
        return service.standings()


@app.post("/api/session/complete")
def complete_session() -> dict[str, Any]:
    with service._lock:
        return service.complete()


@app.get("/api/players")
def players() -> list[dict[str, Any]]:
    with service._lock:
        return service.players()


@app.get("/api/news")
def news(limit: int = 50) -> list[dict[str, Any]]:
    with service._lock:
        return service.news(limit=limit)
