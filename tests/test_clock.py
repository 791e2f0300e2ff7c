import pytest

from pitchside.clock import (
    ManualClock,
    display_seconds,
    due_milestones,
    elapsed_seconds,
    remaining_seconds,
    to_datetime,
)
from pitchside.models import Game, GameStatus


def test_manual_clock_advances() -> None:
    clock = ManualClock(start=100.0)
    assert clock.now() == 100.0
    assert clock.advance(2.5) == 102.5
    clock.set(10)
    assert clock.now() == 10.0
    assert to_datetime(0).year == 1970


def test_clock_is_derived_from_stored_timestamps() -> None:
    game = Game(team1_id="a", team2_id="b", duration_seconds=300)
    game.status = GameStatus.ACTIVE
    game.elapsed_seconds_on_pause = 50.0
    game.last_resume_time = 1000.0
    # A long gap between observations still yields the right reading.
    assert elapsed_seconds(game, 1100.0) == pytest.approx(150.0)
    assert remaining_seconds(game, 1100.0) == pytest.approx(150.0)
    assert remaining_seconds(game, 5000.0) == 0.0
    game.status = GameStatus.PAUSED
    assert elapsed_seconds(game, 9999.0) == pytest.approx(50.0)


def test_untimed_game_has_no_remaining_time() -> None:
    game = Game(team1_id="a", team2_id="b")
    game.status = GameStatus.ACTIVE
    game.last_resume_time = 0.0
    assert remaining_seconds(game, 30.0) is None
    assert display_seconds(game, 30.0) == pytest.approx(30.0)


def test_due_milestones_skip_announced_and_inactive() -> None:
    game = Game(team1_id="a", team2_id="b", duration_seconds=60)
    game.last_resume_time = 0.0
    assert due_milestones(game, 0.0) == []
    game.status = GameStatus.ACTIVE
    assert due_milestones(game, 0.2) == [60]
    game.announced_milestones.add(60)
    assert due_milestones(game, 0.2) == []
    assert due_milestones(game, 55.0) == [5]
    assert due_milestones(game, 44.0) == []
