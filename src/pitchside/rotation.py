from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Sequence

from .config import AUTO_ROTATE_STREAK, BENCH_FAIRNESS_GAP, DRAW_ROTATE_STREAK
from .models import Game, RotationMode, Session, Team

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RotationOutcome:
    team1_id: str
    team2_id: str
    streaks: dict[str, int] = field(default_factory=dict)
    big_star_team_id: str | None = None
    rotation_queue: list[str] | None = None


def initialize_queue(team_ids: Sequence[str], rng: random.Random) -> list[str]:
    queue = list(team_ids)
    rng.shuffle(queue)
    return queue


def calculate_next_matchup(
    session: Session,
    game: Game,
    manual_winner_id: str | None = None,
) -> RotationOutcome | None:
    """Decide who takes the field after ``game``.

    ``game`` must already carry its final result. Returns None when a 3-team
    opening draw still needs an external tie-break, or when the game refers
    to teams the session does not know.
    """
    num_teams = session.config.num_teams
    if num_teams == 4:
        return next_four_team(session, game)
    if num_teams == 3:
        return next_three_team(session, game, manual_winner_id)
    return next_two_team(session, game)


def apply_outcome(session: Session, outcome: RotationOutcome) -> None:
    for team in session.teams:
        if team.team_id in outcome.streaks:
            team.consecutive_games = outcome.streaks[team.team_id]
        if team.team_id == outcome.big_star_team_id:
            team.big_stars += 1
    if outcome.rotation_queue is not None:
        session.rotation_queue = list(outcome.rotation_queue)


def next_two_team(session: Session, game: Game) -> RotationOutcome | None:
    if session.get_team(game.team1_id) is None or session.get_team(game.team2_id) is None:
        return None
    return RotationOutcome(team1_id=game.team1_id, team2_id=game.team2_id)


def next_three_team(
    session: Session,
    game: Game,
    manual_winner_id: str | None = None,
) -> RotationOutcome | None:
    team1 = session.get_team(game.team1_id)
    team2 = session.get_team(game.team2_id)
    resting = next((t for t in session.teams if t.team_id not in game.team_ids), None)
    if team1 is None or team2 is None or resting is None:
        return None

    auto_rotate = session.config.rotation_mode == RotationMode.AUTO_ROTATE
    if game.is_draw:
        if game.game_number == 1:
            if not game.involves(manual_winner_id):
                return None
            stayer_id = manual_winner_id
        else:
            # Fewer consecutive games keeps the field; ties favour the first slot.
            stayer_id = team2.team_id if team1.consecutive_games > team2.consecutive_games else team1.team_id
    else:
        stayer_id = game.winner_team_id

    stayer, leaver = (team1, team2) if stayer_id == team1.team_id else (team2, team1)
    forced_off = auto_rotate and not game.is_draw and stayer.consecutive_games + 1 >= AUTO_ROTATE_STREAK
    forced_off_on_draw = auto_rotate and game.is_draw and stayer.consecutive_games >= DRAW_ROTATE_STREAK

    if forced_off or forced_off_on_draw:
        on_field, to_rest = leaver, stayer
    else:
        on_field, to_rest = stayer, leaver

    # The team that stays holds its slot; the resting team takes the vacated one.
    if on_field.team_id == game.team1_id:
        next_team1, next_team2 = on_field.team_id, resting.team_id
    else:
        next_team1, next_team2 = resting.team_id, on_field.team_id

    streaks = {
        on_field.team_id: on_field.consecutive_games + 1,
        to_rest.team_id: 0,
        resting.team_id: 0,
    }
    outcome = RotationOutcome(
        team1_id=next_team1,
        team2_id=next_team2,
        streaks=streaks,
        big_star_team_id=stayer.team_id if forced_off else None,
    )
    logger.debug(
        "3-team rotation after game %s: %s stays, %s rests (forced=%s)",
        game.game_number,
        on_field.name,
        to_rest.name,
        forced_off or forced_off_on_draw,
    )
    return outcome


def _valid_queue(session: Session) -> list[str]:
    team_ids = [t.team_id for t in session.teams]
    queue = session.rotation_queue or []
    if len(queue) == 4 and len(set(queue)) == 4 and set(queue) == set(team_ids):
        return list(queue)
    return team_ids[:4]


def _finished_count(session: Session, team_id: str) -> int:
    return sum(1 for g in session.games if g.is_finished and g.involves(team_id))


def next_four_team(session: Session, game: Game) -> RotationOutcome | None:
    if len(session.teams) != 4:
        return None
    team_lookup: dict[str, Team] = {t.team_id: t for t in session.teams}
    if game.team1_id not in team_lookup or game.team2_id not in team_lookup:
        return None
    queue = _valid_queue(session)
    field_a, field_b = game.team1_id, game.team2_id
    bench = [team_id for team_id in queue if team_id not in (field_a, field_b)]
    if len(bench) != 2:
        return None

    challenger, remaining = bench
    # Queue order wins unless the first bench team has played clearly more.
    if _finished_count(session, challenger) - _finished_count(session, remaining) >= BENCH_FAIRNESS_GAP:
        challenger, remaining = remaining, challenger

    auto_rotate = session.config.rotation_mode == RotationMode.AUTO_ROTATE
    big_star_team_id: str | None = None
    if game.is_draw or game.winner_team_id is None:
        next_queue = [challenger, remaining, field_a, field_b]
    else:
        winner_id = game.winner_team_id
        loser_id = field_b if winner_id == field_a else field_a
        winner = team_lookup[winner_id]
        if auto_rotate and winner.consecutive_games + 1 >= AUTO_ROTATE_STREAK:
            next_queue = [challenger, remaining, loser_id, winner_id]
            big_star_team_id = winner_id
        elif winner_id == field_a:
            next_queue = [field_a, challenger, remaining, field_b]
        else:
            next_queue = [challenger, field_b, remaining, field_a]

    streaks: dict[str, int] = {}
    for team_id, team in team_lookup.items():
        stays = team_id in next_queue[:2]
        kept_winner = stays and team_id == game.winner_team_id and not game.is_draw
        streaks[team_id] = team.consecutive_games + 1 if kept_winner else 0

    logger.debug("4-team rotation after game %s: %s", game.game_number, next_queue)
    return RotationOutcome(
        team1_id=next_queue[0],
        team2_id=next_queue[1],
        streaks=streaks,
        big_star_team_id=big_star_team_id,
        rotation_queue=next_queue,
    )
