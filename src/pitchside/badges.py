from __future__ import annotations

from dataclasses import dataclass

from .config import (
    ASSISTANT_ASSISTS,
    CAREER_INFLUENCE,
    CAREER_WINS,
    CLUB_LEGEND_ASSISTS,
    CLUB_LEGEND_GOALS,
    COMEBACK_GAMES,
    CONDUCTOR_GAMES,
    DOMINANT_PARTICIPANT_GAMES,
    DUPLET_GAMES,
    DYNASTY_WINS,
    FIRST_BLOOD_GAMES,
    FORTRESS_GAMES,
    GOLEADOR_GOALS,
    IRON_STREAK_WINS,
    MAESTRO_GAMES,
    MASTERY_BALANCE_MIN,
    MVP_MIN,
    PERFECT_FINISH_GAMES,
    PERFECT_FINISH_TARGET,
    SNIPER_GAMES,
    STREAK_GAMES,
    SUPER_VETERAN_SESSIONS,
    TEAM_CONTEXT_MIN_WINS,
    TEN_INFLUENCE_TOTAL,
    UNDEFEATED_GAMES,
    VETERAN_SESSIONS,
)
from .models import Game, Player, PlayerStats, Session
from .statistics import SessionStatistics, goal_replay, player_games


@dataclass(slots=True)
class GameLine:
    """One player's footprint in a single finished game."""

    goals: int
    assists: int
    won: bool
    clean_sheet: bool
    margin: int
    team_score: int
    scored_first: bool
    scored_last: bool
    came_back: bool

    @property
    def contributed(self) -> bool:
        return self.goals > 0 or self.assists > 0


def game_line(game: Game, team_id: str, player_id: str) -> GameLine:
    ordered = game.ordered_goals()
    won = game.winner_team_id == team_id
    return GameLine(
        goals=sum(1 for g in game.goals if g.scorer_id == player_id and not g.is_own_goal),
        assists=sum(1 for g in game.goals if g.assistant_id == player_id and not g.is_own_goal),
        won=won,
        clean_sheet=game.score_against(team_id) == 0,
        margin=game.score_for(team_id) - game.score_against(team_id),
        team_score=game.score_for(team_id),
        scored_first=bool(ordered) and ordered[0].scorer_id == player_id and not ordered[0].is_own_goal,
        scored_last=bool(ordered) and ordered[-1].scorer_id == player_id and not ordered[-1].is_own_goal,
        came_back=won and goal_replay(game, team_id),
    )


def _longest_run(flags: list[bool]) -> int:
    best = run = 0
    for flag in flags:
        run = run + 1 if flag else 0
        best = max(best, run)
    return best


def _crossed(before: int, after: int, thresholds: tuple[int, ...]) -> bool:
    return any(before < mark <= after for mark in thresholds)


def session_total_badges(stats: PlayerStats, all_stats: SessionStatistics) -> list[str]:
    earned: list[str] = []
    if stats.goals >= GOLEADOR_GOALS:
        earned.append("goleador")
    if stats.assists >= ASSISTANT_ASSISTS:
        earned.append("assistant")
    if stats.goals >= MVP_MIN and stats.assists >= MVP_MIN and stats.wins >= MVP_MIN:
        earned.append("mvp")
    if stats.goals + stats.assists >= TEN_INFLUENCE_TOTAL:
        earned.append("ten_influence")
    if stats.goals >= MASTERY_BALANCE_MIN and stats.assists >= MASTERY_BALANCE_MIN:
        earned.append("mastery_balance")
    if stats.games_played >= DOMINANT_PARTICIPANT_GAMES:
        earned.append("dominant_participant")
    if stats.games_played >= UNDEFEATED_GAMES and stats.losses == 0:
        earned.append("undefeated")

    everyone = all_stats.player_stats or [stats]
    if stats.goals > 0 and stats.goals == max(s.goals for s in everyone):
        earned.append("session_top_scorer")
    if stats.assists > 0 and stats.assists == max(s.assists for s in everyone):
        earned.append("session_top_assistant")
    if stats.wins > 0 and stats.wins == max(s.wins for s in everyone):
        earned.append("win_leader")
    return earned


def game_pattern_badges(lines: list[GameLine], session: Session, player_id: str, team_id: str) -> list[str]:
    earned: list[str] = []
    wins = [line for line in lines if line.won]
    if sum(1 for line in wins if line.goals >= 2) >= DUPLET_GAMES:
        earned.append("duplet")
    if sum(1 for line in wins if line.assists >= 2) >= MAESTRO_GAMES:
        earned.append("maestro")
    if sum(1 for line in wins if line.clean_sheet) >= FORTRESS_GAMES:
        earned.append("fortress")
    if sum(1 for line in wins if line.margin == 1 and line.scored_last) >= SNIPER_GAMES:
        earned.append("sniper")
    if sum(1 for line in lines if line.scored_first) >= FIRST_BLOOD_GAMES:
        earned.append("first_blood")
    if sum(1 for line in wins if line.came_back) >= COMEBACK_GAMES:
        earned.append("comeback_kings")
    if sum(1 for line in wins if line.assists > 0) >= CONDUCTOR_GAMES:
        earned.append("team_conductor")
    # Literal target of 2, regardless of the session's win threshold.
    if session.config.goals_to_win == PERFECT_FINISH_TARGET:
        perfect = sum(
            1 for line in wins if line.team_score == PERFECT_FINISH_TARGET and line.goals == PERFECT_FINISH_TARGET
        )
        if perfect >= PERFECT_FINISH_GAMES:
            earned.append("perfect_finish")

    finished = session.finished_games()
    if finished and finished[-1].involves(team_id):
        last = game_line(finished[-1], team_id, player_id)
        if last.won and last.margin == 1 and last.scored_last:
            earned.append("victory_finisher")
    return earned


def streak_badges(lines: list[GameLine]) -> list[str]:
    earned: list[str] = []
    if _longest_run([line.goals > 0 for line in lines]) >= STREAK_GAMES:
        earned.append("stable_striker")
    if _longest_run([line.assists > 0 for line in lines]) >= STREAK_GAMES:
        earned.append("passing_streak")
    win_run = _longest_run([line.won for line in lines])
    if win_run >= IRON_STREAK_WINS:
        earned.append("iron_streak")
    if win_run >= DYNASTY_WINS:
        earned.append("dynasty")
    if _longest_run([line.won and line.contributed for line in lines]) >= STREAK_GAMES:
        earned.append("key_player")
    return earned


def team_context_badges(stats: PlayerStats, lines: list[GameLine], all_stats: SessionStatistics) -> list[str]:
    earned: list[str] = []
    team_wins = {ts.team.team_id: ts.wins for ts in all_stats.team_stats}
    top_team_wins = max(team_wins.values(), default=0)
    if (
        stats.goals == 0
        and stats.assists == 0
        and stats.wins >= TEAM_CONTEXT_MIN_WINS
        and team_wins.get(stats.team.team_id, 0) == top_team_wins
    ):
        earned.append("unsung_hero")
    wins = [line for line in lines if line.won]
    if len(wins) >= TEAM_CONTEXT_MIN_WINS and all(line.contributed for line in wins):
        earned.append("decisive_factor")
    return earned


def career_badges(player: Player, stats: PlayerStats) -> list[str]:
    """Career thresholds crossed by merging this session into the pre-session totals."""
    earned: list[str] = []
    sessions_before = player.total_sessions_played
    influence_before = player.total_influence
    if _crossed(player.total_goals, player.total_goals + stats.goals, CLUB_LEGEND_GOALS):
        earned.append("club_legend_goals")
    if _crossed(player.total_assists, player.total_assists + stats.assists, CLUB_LEGEND_ASSISTS):
        earned.append("club_legend_assists")
    if _crossed(sessions_before, sessions_before + 1, VETERAN_SESSIONS):
        earned.append("veteran")
    if _crossed(player.total_wins, player.total_wins + stats.wins, (CAREER_WINS,)):
        earned.append("career_100_wins")
    if _crossed(influence_before, influence_before + stats.goals + stats.assists, (CAREER_INFLUENCE,)):
        earned.append("career_150_influence")
    if _crossed(sessions_before, sessions_before + 1, (SUPER_VETERAN_SESSIONS,)):
        earned.append("career_super_veteran")
    return earned


def calculate_earned_badges(
    player: Player,
    stats: PlayerStats,
    session: Session,
    all_stats: SessionStatistics,
) -> list[str]:
    """Badges earned in ``session``; ``player`` is the snapshot before career totals merge."""
    if session.config.num_teams == 2 or stats.games_played <= 0:
        return []
    team_id = stats.team.team_id
    lines = [game_line(game, team_id, player.player_id) for game in player_games(session, player.player_id)]

    earned: list[str] = []
    for badge in (
        session_total_badges(stats, all_stats)
        + game_pattern_badges(lines, session, player.player_id, team_id)
        + streak_badges(lines)
        + team_context_badges(stats, lines, all_stats)
        + career_badges(player, stats)
    ):
        if badge not in earned:
            earned.append(badge)
    return earned
