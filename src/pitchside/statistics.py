from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Iterable

from .config import SESSION_HISTORY_LIMIT
from .models import Game, Player, PlayerStats, Session, SessionStatus, TeamStats


@dataclass(slots=True)
class SessionStatistics:
    team_stats: list[TeamStats]
    player_stats: list[PlayerStats]

    def for_player(self, player_id: str) -> PlayerStats | None:
        for stats in self.player_stats:
            if stats.player.player_id == player_id:
                return stats
        return None


def rank_teams(team_stats: Iterable[TeamStats]) -> list[TeamStats]:
    return sorted(
        team_stats,
        key=lambda ts: (ts.points, ts.goal_difference, ts.goals_for),
        reverse=True,
    )


def goal_replay(game: Game, team_id: str) -> bool:
    """Replay goals in order and report whether ``team_id`` was ever behind."""
    mine = theirs = 0
    for goal in game.ordered_goals():
        if goal.credited_team_id(game) == team_id:
            mine += 1
        else:
            theirs += 1
        if theirs > mine:
            return True
    return False


def player_games(session: Session, player_id: str) -> list[Game]:
    team = session.team_for_player(player_id)
    if team is None:
        return []
    return [g for g in session.finished_games() if g.involves(team.team_id)]


def calculate_all_stats(session: Session) -> SessionStatistics:
    """Fold the finished games of a session into player and team aggregates.

    Builds fresh accumulators on every call, so repeated aggregation of the
    same session always yields the same numbers.
    """
    team_stats = {team.team_id: TeamStats(team=team) for team in session.teams}
    player_stats: dict[str, PlayerStats] = {}
    for team in session.teams:
        for player_id in team.player_ids:
            player = session.get_player(player_id)
            if player is not None and player_id not in player_stats:
                player_stats[player_id] = PlayerStats(player=player, team=team)

    for game in session.finished_games():
        team1_stats = team_stats.get(game.team1_id)
        team2_stats = team_stats.get(game.team2_id)
        if team1_stats is None or team2_stats is None:
            continue

        team1_stats.register_game(
            game.team1_score,
            game.team2_score,
            won=game.winner_team_id == game.team1_id,
            drew=game.is_draw,
        )
        team2_stats.register_game(
            game.team2_score,
            game.team1_score,
            won=game.winner_team_id == game.team2_id,
            drew=game.is_draw,
        )

        for goal in game.goals:
            scorer = player_stats.get(goal.scorer_id or "")
            if goal.is_own_goal:
                if scorer is not None:
                    scorer.own_goals += 1
                continue
            if scorer is not None:
                scorer.goals += 1
            assistant = player_stats.get(goal.assistant_id or "")
            if assistant is not None:
                assistant.assists += 1

        for stats in player_stats.values():
            team_id = stats.team.team_id
            if not game.involves(team_id):
                continue
            stats.games_played += 1
            conceded = game.score_against(team_id)
            if conceded == 0:
                stats.clean_sheets += 1
            if game.winner_team_id == team_id:
                stats.wins += 1
                if conceded == 0:
                    stats.clean_sheet_wins += 1
            elif game.is_draw:
                stats.draws += 1
            else:
                stats.losses += 1

    return SessionStatistics(
        team_stats=rank_teams(team_stats.values()),
        player_stats=list(player_stats.values()),
    )


def audit_career_totals(players: Iterable[Player], history: Iterable[Session]) -> list[Player]:
    """Rebuild career totals from completed sessions, trusting scores over stored winners."""
    completed = sorted(
        (s for s in history if s.status == SessionStatus.COMPLETED),
        key=lambda s: s.date.timestamp() if s.date is not None else 0.0,
    )
    audited: list[Player] = []
    for player in players:
        pid = player.player_id
        goals = assists = games = wins = draws = losses = sessions = 0
        win_rates: list[int] = []
        for session in completed:
            team = session.team_for_player(pid)
            in_pool = session.get_player(pid) is not None
            if team is None and not in_pool:
                continue
            session_games = session_wins = 0
            for game in session.finished_games():
                for goal in game.goals:
                    if goal.scorer_id == pid and not goal.is_own_goal:
                        goals += 1
                    if goal.assistant_id == pid:
                        assists += 1
                if team is None or not game.involves(team.team_id):
                    continue
                games += 1
                session_games += 1
                mine, theirs = game.score_for(team.team_id), game.score_against(team.team_id)
                if mine > theirs:
                    wins += 1
                    session_wins += 1
                elif mine == theirs:
                    draws += 1
                else:
                    losses += 1
            if session_games > 0:
                sessions += 1
                win_rates.append(int(session_wins / session_games * 100 + 0.5))

        updated = copy.deepcopy(player)
        updated.total_goals = goals
        updated.total_assists = assists
        updated.total_games = games
        updated.total_wins = wins
        updated.total_draws = draws
        updated.total_losses = losses
        updated.total_sessions_played = sessions
        updated.session_history = win_rates[-SESSION_HISTORY_LIMIT:]
        audited.append(updated)
    return audited
