import random

import pytest

from pitchside.clock import ManualClock
from pitchside.lineup import create_player, create_session
from pitchside.match import MatchStateMachine, start_session
from pitchside.models import (
    EventType,
    GameStatus,
    Session,
    SessionConfig,
    SessionStatus,
    StartRoundPayload,
    SubstitutionPayload,
)


def _setup(
    num_teams: int = 2,
    match_duration_minutes: int | None = None,
    goals_to_win: int | None = None,
) -> tuple[Session, MatchStateMachine, ManualClock]:
    config = SessionConfig(
        num_teams=num_teams,
        players_per_team=2,
        match_duration_minutes=match_duration_minutes,
        goals_to_win=goals_to_win,
    )
    players = [create_player(f"P{idx}") for idx in range(num_teams * 2)]
    session = create_session(config, players)
    for idx, player in enumerate(players):
        session.teams[idx % num_teams].player_ids.append(player.player_id)
    clock = ManualClock()
    start_session(session, rng=random.Random(1), clock=clock)
    return session, MatchStateMachine(session, clock), clock


def test_invalid_config_raises() -> None:
    with pytest.raises(ValueError):
        SessionConfig(num_teams=5)
    with pytest.raises(ValueError):
        SessionConfig(players_per_team=0)
    with pytest.raises(ValueError):
        SessionConfig(match_duration_minutes=0)
    with pytest.raises(ValueError):
        SessionConfig(rotation_mode="sometimes")


def test_start_session_creates_single_pending_game() -> None:
    session, _machine, _clock = _setup()
    assert len(session.games) == 1
    assert session.current_game.status == GameStatus.PENDING
    assert session.event_log[-1].kind == EventType.START_ROUND
    assert start_session(session) is None


def test_elapsed_time_survives_pause_and_resume() -> None:
    session, machine, clock = _setup()
    assert machine.start() is True
    assert machine.start() is False
    clock.advance(30)
    assert machine.pause() is True
    clock.advance(100)
    assert machine.elapsed_seconds() == pytest.approx(30)
    assert machine.resume() is True
    clock.advance(10)
    assert machine.elapsed_seconds() == pytest.approx(40)
    assert machine.toggle_pause() is True
    assert session.current_game.status == GameStatus.PAUSED
    assert machine.toggle_pause() is True
    assert session.current_game.status == GameStatus.ACTIVE


def test_pause_requires_active_game() -> None:
    _session, machine, _clock = _setup()
    assert machine.pause() is False
    assert machine.resume() is False
    assert machine.finish() is False


def test_finish_records_result_and_appends_next_game() -> None:
    session, machine, clock = _setup()
    game = session.current_game
    machine.start()
    clock.advance(42)
    machine.record_goal(game.team2_id)
    assert machine.finish() is True
    assert game.status == GameStatus.FINISHED
    assert game.winner_team_id == game.team2_id
    assert game.is_draw is False
    assert game.elapsed_seconds == pytest.approx(42)
    assert game.ended_at is not None
    assert len(session.games) == 2
    kinds = [entry.kind for entry in session.event_log]
    assert kinds[-2:] == [EventType.FINISH_ROUND, EventType.START_ROUND]
    assert EventType.GOAL in kinds


def test_goal_target_finishes_game_automatically() -> None:
    session, machine, _clock = _setup(goals_to_win=2)
    game = session.current_game
    machine.start()
    machine.record_goal(game.team1_id)
    assert game.status == GameStatus.ACTIVE
    machine.record_goal(game.team1_id)
    assert game.status == GameStatus.FINISHED
    assert game.winner_team_id == game.team1_id
    assert session.current_game.game_number == 2


def test_zero_goal_target_never_auto_finishes() -> None:
    session, machine, _clock = _setup(goals_to_win=0)
    game = session.current_game
    machine.start()
    for _ in range(5):
        machine.record_goal(game.team1_id)
    assert game.status == GameStatus.ACTIVE
    assert machine.check_auto_finish() is False


def test_announcements_fire_once_per_milestone() -> None:
    _session, machine, clock = _setup(match_duration_minutes=4)
    assert machine.due_announcements() == []
    machine.start()
    clock.advance(60)
    assert machine.remaining_seconds() == pytest.approx(180)
    assert machine.due_announcements() == ["three_minutes"]
    assert machine.due_announcements() == []
    clock.advance(120)
    assert machine.due_announcements() == ["one_minute"]
    machine.pause()
    clock.advance(30)
    assert machine.due_announcements() == []
    assert machine.display_seconds() == pytest.approx(60)


def test_untimed_game_counts_up_without_announcements() -> None:
    _session, machine, clock = _setup()
    machine.start()
    clock.advance(75)
    assert machine.remaining_seconds() is None
    assert machine.display_seconds() == pytest.approx(75)
    assert machine.due_announcements() == []


def test_swap_pending_team_rewrites_lineup_log() -> None:
    session, machine, _clock = _setup(num_teams=3)
    game = session.current_game
    bench = next(t for t in session.teams if t.team_id not in game.team_ids)
    replaced = game.team1_id
    assert machine.swap_pending_team("left", bench.team_id) is True
    assert game.team1_id == bench.team_id
    assert session.get_team(replaced).consecutive_games == 0
    last_start = next(e for e in reversed(session.event_log) if isinstance(e.payload, StartRoundPayload))
    assert last_start.payload.left_team == bench.color
    assert machine.swap_pending_team("middle", replaced) is False
    machine.start()
    assert machine.swap_pending_team("left", replaced) is False


def test_substitute_swaps_lineup_positions() -> None:
    session, machine, _clock = _setup()
    team = session.teams[0]
    first, last = team.player_ids[0], team.player_ids[-1]
    assert machine.substitute(team.team_id, first, last) is True
    assert team.player_ids[0] == last
    assert team.player_ids[-1] == first
    assert isinstance(session.event_log[-1].payload, SubstitutionPayload)
    assert machine.substitute(team.team_id, first, "ghost") is False


def test_completed_session_has_no_current_game() -> None:
    session, machine, _clock = _setup()
    session.status = SessionStatus.COMPLETED
    assert machine.current_game is None
    assert machine.start() is False
    assert machine.record_goal(session.teams[0].team_id) is None
