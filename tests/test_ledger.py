from pitchside import ledger
from pitchside.models import Game, GameStatus


def _live_game() -> Game:
    game = Game(team1_id="red", team2_id="blue")
    game.status = GameStatus.ACTIVE
    game.last_resume_time = 1000.0
    game.start_time = 1000.0
    return game


def test_record_goal_stamps_floor_seconds_and_scores() -> None:
    game = _live_game()
    goal = ledger.record_goal(game, "red", 1012.7, scorer_id="ana", assistant_id="bo")
    assert goal is not None
    assert goal.timestamp_seconds == 12
    assert (game.team1_score, game.team2_score) == (1, 0)
    assert game.goals == [goal]


def test_own_goal_credits_opponent_and_drops_assist() -> None:
    game = _live_game()
    goal = ledger.record_goal(game, "red", 1005.0, scorer_id="ana", assistant_id="bo", is_own_goal=True)
    assert goal.team_id == "red"
    assert goal.assistant_id is None
    assert (game.team1_score, game.team2_score) == (0, 1)


def test_record_goal_rejects_unknown_team_and_finished_game() -> None:
    game = _live_game()
    assert ledger.record_goal(game, "green", 1001.0) is None
    game.status = GameStatus.FINISHED
    assert ledger.record_goal(game, "red", 1001.0) is None
    assert game.goals == []


def test_update_goal_leaves_score_alone() -> None:
    game = _live_game()
    goal = ledger.record_goal(game, "blue", 1001.0, scorer_id="cy")
    updated = ledger.update_goal(game, goal.goal_id, scorer_id="dee", assistant_id="cy")
    assert updated.scorer_id == "dee"
    assert updated.assistant_id == "cy"
    ledger.update_goal(game, goal.goal_id, scorer_id="dee", assistant_id="cy", is_own_goal=True)
    assert goal.assistant_id is None
    assert (game.team1_score, game.team2_score) == (0, 1)
    assert ledger.update_goal(game, "missing") is None


def test_delete_goal_reverts_score_and_result() -> None:
    game = _live_game()
    ledger.record_goal(game, "red", 1001.0)
    late = ledger.record_goal(game, "red", 1002.0)
    game.status = GameStatus.FINISHED
    game.settle_result()
    assert game.winner_team_id == "red"

    assert ledger.delete_goal(game, late.goal_id) is True
    assert game.team1_score == 1
    assert ledger.delete_goal(game, game.goals[0].goal_id) is True
    assert game.team1_score == 0
    assert game.is_draw is True
    assert game.winner_team_id is None
    assert ledger.delete_goal(game, "missing") is False


def test_own_goal_correction_then_delete_restores_score() -> None:
    game = _live_game()
    goal = ledger.record_goal(game, "red", 1003.0, scorer_id="ana")
    ledger.update_goal(game, goal.goal_id, scorer_id="ana", is_own_goal=True)
    assert goal.credited_team_id(game) == "red"
    assert (game.team1_score, game.team2_score) == (1, 0)

    assert ledger.delete_goal(game, goal.goal_id) is True
    assert game.goals == []
    assert (game.team1_score, game.team2_score) == (0, 0)


def test_own_goal_cleared_then_delete_restores_score() -> None:
    game = _live_game()
    goal = ledger.record_goal(game, "red", 1003.0, scorer_id="ana", is_own_goal=True)
    ledger.update_goal(game, goal.goal_id, scorer_id="ana")
    assert (game.team1_score, game.team2_score) == (0, 1)
    ledger.delete_goal(game, goal.goal_id)
    assert (game.team1_score, game.team2_score) == (0, 0)
