from __future__ import annotations

import logging
import random

from . import clock as game_clock
from . import ledger
from .clock import Clock, SystemClock, to_datetime
from .models import (
    EventLogEntry,
    EventPayload,
    FinishRoundPayload,
    Game,
    GameStatus,
    Goal,
    GoalPayload,
    Session,
    SessionStatus,
    StartRoundPayload,
    SubstitutionPayload,
    Team,
    TimerStartPayload,
    TimerStopPayload,
)
from .rotation import apply_outcome, calculate_next_matchup, initialize_queue

logger = logging.getLogger(__name__)


def build_game(session: Session, team1_id: str, team2_id: str, game_number: int) -> Game:
    return Game(
        team1_id=team1_id,
        team2_id=team2_id,
        game_number=game_number,
        duration_seconds=session.config.duration_seconds,
    )


def start_round_payload(session: Session, team1: Team, team2: Team) -> StartRoundPayload:
    per_team = session.config.players_per_team
    return StartRoundPayload(
        left_team=team1.color,
        right_team=team2.color,
        left_players=[session.nickname(pid) for pid in team1.lineup(per_team)],
        right_players=[session.nickname(pid) for pid in team2.lineup(per_team)],
    )


def start_session(
    session: Session,
    rng: random.Random | None = None,
    clock: Clock | None = None,
) -> Game | None:
    """Create the opening game once teams are assigned.

    4-team sessions seed the rotation queue from ``rng``; 3-team sessions
    coin-flip the opening pair with it.
    """
    if session.games or len(session.teams) < 2:
        return None
    rng = rng or random.Random()
    clock = clock or SystemClock()
    teams = list(session.teams)
    if session.config.num_teams == 4 and len(teams) == 4:
        session.rotation_queue = initialize_queue([t.team_id for t in teams], rng)
        lookup = {t.team_id: t for t in teams}
        teams = [lookup[team_id] for team_id in session.rotation_queue]
    elif session.config.num_teams == 3:
        rng.shuffle(teams)
    team1, team2 = teams[0], teams[1]
    game = build_game(session, team1.team_id, team2.team_id, 1)
    session.games.append(game)
    session.event_log.append(
        EventLogEntry(timestamp=to_datetime(clock.now()), round=1, payload=start_round_payload(session, team1, team2))
    )
    return game


class MatchStateMachine:
    """Drives the current game of a session through its lifecycle.

    Every operation returns a falsy value and leaves the session untouched
    when it does not apply (wrong state, unknown ids, completed session).
    """

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        self.session = session
        self.clock = clock or SystemClock()
        self.needs_tie_break = False

    @property
    def current_game(self) -> Game | None:
        if self.session.status == SessionStatus.COMPLETED:
            return None
        return self.session.current_game

    def _log(self, round_no: int, payload: EventPayload) -> None:
        self.session.event_log.append(
            EventLogEntry(timestamp=to_datetime(self.clock.now()), round=round_no, payload=payload)
        )

    def start(self) -> bool:
        game = self.current_game
        if game is None or game.status != GameStatus.PENDING:
            return False
        now = self.clock.now()
        game.status = GameStatus.ACTIVE
        game.last_resume_time = now
        if game.start_time is None:
            game.start_time = now
        game.announced_milestones = set()
        self._log(game.game_number, TimerStartPayload())
        logger.debug("Game %s started", game.game_number)
        return True

    def pause(self) -> bool:
        game = self.current_game
        if game is None or game.status != GameStatus.ACTIVE:
            return False
        now = self.clock.now()
        game.elapsed_seconds_on_pause += max(0.0, now - (game.last_resume_time or now))
        game.status = GameStatus.PAUSED
        self._log(game.game_number, TimerStopPayload())
        return True

    def resume(self) -> bool:
        game = self.current_game
        if game is None or game.status != GameStatus.PAUSED:
            return False
        game.status = GameStatus.ACTIVE
        game.last_resume_time = self.clock.now()
        self._log(game.game_number, TimerStartPayload())
        return True

    def toggle_pause(self) -> bool:
        game = self.current_game
        if game is not None and game.status == GameStatus.ACTIVE:
            return self.pause()
        return self.resume()

    def elapsed_seconds(self) -> float:
        game = self.current_game
        return game_clock.elapsed_seconds(game, self.clock.now()) if game is not None else 0.0

    def remaining_seconds(self) -> float | None:
        game = self.current_game
        return game_clock.remaining_seconds(game, self.clock.now()) if game is not None else None

    def display_seconds(self) -> float:
        game = self.current_game
        return game_clock.display_seconds(game, self.clock.now()) if game is not None else 0.0

    def due_announcements(self) -> list[str]:
        """Milestone keys to announce now; each value fires once per game."""
        game = self.current_game
        if game is None:
            return []
        due = game_clock.due_milestones(game, self.clock.now())
        game.announced_milestones.update(due)
        return [game_clock.announcement_key(m) for m in due]

    def finish(self, manual_winner_id: str | None = None) -> bool:
        game = self.current_game
        if game is None or game.status not in (GameStatus.ACTIVE, GameStatus.PAUSED):
            return False
        session = self.session
        now = self.clock.now()
        final_elapsed = game_clock.elapsed_seconds(game, now)

        # An opening 3-team draw stays live until the caller names who keeps the field.
        is_draw = game.team1_score == game.team2_score
        if session.config.num_teams == 3 and is_draw and game.game_number == 1 and not game.involves(manual_winner_id):
            self.needs_tie_break = True
            return False

        game.settle_result()
        game.status = GameStatus.FINISHED
        game.elapsed_seconds = final_elapsed
        game.ended_at = to_datetime(now)

        outcome = calculate_next_matchup(session, game, manual_winner_id)
        self.needs_tie_break = False
        self._log(game.game_number, FinishRoundPayload(winner_team_id=game.winner_team_id, is_draw=game.is_draw))
        if outcome is None:
            logger.warning("No next matchup for game %s; session teams do not match", game.game_number)
            return True
        apply_outcome(session, outcome)

        team1 = session.get_team(outcome.team1_id)
        team2 = session.get_team(outcome.team2_id)
        if team1 is None or team2 is None:
            return True
        next_game = build_game(session, team1.team_id, team2.team_id, game.game_number + 1)
        session.games.append(next_game)
        self._log(next_game.game_number, start_round_payload(session, team1, team2))
        logger.debug(
            "Game %s finished %s-%s; next %s vs %s",
            game.game_number,
            game.team1_score,
            game.team2_score,
            team1.name,
            team2.name,
        )
        return True

    def check_auto_finish(self) -> bool:
        game = self.current_game
        target = self.session.config.goals_to_win
        if game is None or game.status != GameStatus.ACTIVE or not target or target <= 0:
            return False
        if game.team1_score >= target or game.team2_score >= target:
            return self.finish()
        return False

    def record_goal(
        self,
        team_id: str,
        scorer_id: str | None = None,
        assistant_id: str | None = None,
        is_own_goal: bool = False,
    ) -> Goal | None:
        game = self.current_game
        if game is None:
            return None
        goal = ledger.record_goal(
            game,
            team_id,
            self.clock.now(),
            scorer_id=scorer_id,
            assistant_id=assistant_id,
            is_own_goal=is_own_goal,
        )
        if goal is None:
            return None
        team = self.session.get_team(team_id)
        self._log(
            game.game_number,
            GoalPayload(
                team=team.color if team is not None else "",
                scorer=self.session.nickname(scorer_id) or None,
                assist=self.session.nickname(goal.assistant_id) or None,
                is_own_goal=is_own_goal,
            ),
        )
        self.check_auto_finish()
        return goal

    def _game_with_goal(self, goal_id: str) -> Game | None:
        for game in self.session.games:
            if game.find_goal(goal_id) is not None:
                return game
        return None

    def update_goal(
        self,
        goal_id: str,
        scorer_id: str | None = None,
        assistant_id: str | None = None,
        is_own_goal: bool = False,
    ) -> Goal | None:
        game = self._game_with_goal(goal_id)
        if game is None:
            return None
        return ledger.update_goal(game, goal_id, scorer_id=scorer_id, assistant_id=assistant_id, is_own_goal=is_own_goal)

    def delete_goal(self, goal_id: str) -> bool:
        game = self._game_with_goal(goal_id)
        if game is None:
            return False
        return ledger.delete_goal(game, goal_id)

    def swap_pending_team(self, side: str, team_id: str) -> bool:
        """Replace one side of a game that has not kicked off yet."""
        game = self.current_game
        if game is None or game.status != GameStatus.PENDING or side not in ("left", "right"):
            return False
        new_team = self.session.get_team(team_id)
        if new_team is None or game.involves(team_id):
            return False
        old_team_id = game.team1_id if side == "left" else game.team2_id
        if side == "left":
            game.team1_id = team_id
        else:
            game.team2_id = team_id

        queue = self.session.rotation_queue
        if queue and old_team_id in queue and team_id in queue:
            old_idx, new_idx = queue.index(old_team_id), queue.index(team_id)
            queue[old_idx], queue[new_idx] = queue[new_idx], queue[old_idx]

        # Entering a game from the bench resets the streak bookkeeping for the team that left.
        old_team = self.session.get_team(old_team_id)
        if old_team is not None:
            old_team.consecutive_games = 0

        for entry in reversed(self.session.event_log):
            if isinstance(entry.payload, StartRoundPayload):
                lineup = [self.session.nickname(pid) for pid in new_team.lineup(self.session.config.players_per_team)]
                if side == "left":
                    entry.payload.left_team, entry.payload.left_players = new_team.color, lineup
                else:
                    entry.payload.right_team, entry.payload.right_players = new_team.color, lineup
                break
        return True

    def substitute(self, team_id: str, player_out_id: str, player_in_id: str) -> bool:
        team = self.session.get_team(team_id)
        if team is None or player_out_id not in team.player_ids or player_in_id not in team.player_ids:
            return False
        out_idx, in_idx = team.player_ids.index(player_out_id), team.player_ids.index(player_in_id)
        team.player_ids[out_idx], team.player_ids[in_idx] = team.player_ids[in_idx], team.player_ids[out_idx]
        game = self.session.current_game
        if game is not None:
            self._log(
                game.game_number,
                SubstitutionPayload(
                    side="left" if team_id == game.team1_id else "right",
                    player_out=self.session.nickname(player_out_id),
                    player_in=self.session.nickname(player_in_id),
                ),
            )
        return True
