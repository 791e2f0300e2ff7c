from __future__ import annotations

import logging

from .clock import elapsed_seconds
from .models import Game, Goal

logger = logging.getLogger(__name__)


def record_goal(
    game: Game,
    team_id: str,
    now: float,
    scorer_id: str | None = None,
    assistant_id: str | None = None,
    is_own_goal: bool = False,
) -> Goal | None:
    """Append a goal to a live game and bump the credited team's score.

    ``team_id`` is the side of the player who put the ball in. For own goals
    the opponent's score moves while the record keeps the own-goal side.
    """
    if game.is_finished or not game.involves(team_id):
        return None
    goal = Goal(
        game_id=game.game_id,
        team_id=team_id,
        scorer_id=scorer_id,
        assistant_id=None if is_own_goal else assistant_id,
        is_own_goal=is_own_goal,
        timestamp_seconds=int(elapsed_seconds(game, now)),
    )
    goal.credited_to = goal.credited_team_id(game)
    game.goals.append(goal)
    _adjust_score(game, goal.credited_to, 1)
    logger.debug("Goal %s recorded in game %s for %s", goal.goal_id, game.game_number, team_id)
    return goal


def update_goal(
    game: Game,
    goal_id: str,
    scorer_id: str | None = None,
    assistant_id: str | None = None,
    is_own_goal: bool = False,
) -> Goal | None:
    """Correct attribution of an existing goal.

    The score is left alone, and so is the side the goal was credited to.
    """
    goal = game.find_goal(goal_id)
    if goal is None:
        return None
    goal.scorer_id = scorer_id
    goal.assistant_id = None if is_own_goal else assistant_id
    goal.is_own_goal = is_own_goal
    return goal


def delete_goal(game: Game, goal_id: str) -> bool:
    goal = game.find_goal(goal_id)
    if goal is None:
        return False
    _adjust_score(game, goal.credited_team_id(game), -1)
    game.goals = [g for g in game.goals if g.goal_id != goal_id]
    if game.is_finished:
        game.settle_result()
    return True


def _adjust_score(game: Game, team_id: str, step: int) -> None:
    if team_id == game.team1_id:
        game.team1_score = max(0, game.team1_score + step)
    elif team_id == game.team2_id:
        game.team2_score = max(0, game.team2_score + step)
