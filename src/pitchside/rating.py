from __future__ import annotations

import logging
import math
from typing import Iterable

from .config import (
    ASSIST_WEIGHT,
    ATTACKER_GOAL_WEIGHT,
    ATTACKING_SKILLS,
    BADGE_BONUSES,
    BASE_MATCH_RATING,
    CLEAN_SHEET_POINTS,
    DEFENSIVE_CLEAN_SHEET_POINTS,
    DEFENSIVE_SKILLS,
    DOMINANT_GOAL_DIFF,
    FORM_COLD_DELTA,
    FORM_HOT_DELTA,
    GOAL_WEIGHT,
    HIGH_WIN_RATE,
    INACTIVITY_PENALTY,
    K_FACTORS,
    LOW_WIN_RATE,
    NEW_PLAYER_DELTA_CAP,
    NEW_PLAYER_SESSIONS,
    NO_CONTRIBUTION_PENALTY,
    OWN_GOAL_WEIGHT,
    PLAYMAKER_ASSIST_WEIGHT,
    PLAYMAKING_SKILLS,
    RATING_MAX,
    RATING_MIN,
    TEAM_POINTS,
    TIER_THRESHOLDS,
    VETERAN_DELTA_CAP,
    WIN_RATE_NUDGE,
)
from .models import Game, Player, PlayerForm, PlayerStats, PlayerTier, RatingBreakdown, Session
from .statistics import goal_replay, player_games

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def tier_for_rating(rating: int) -> PlayerTier:
    for minimum, tier in TIER_THRESHOLDS:
        if rating >= minimum:
            return PlayerTier(tier)
    return PlayerTier.DEVELOPING


def form_for_delta(delta: float) -> PlayerForm:
    if delta >= FORM_HOT_DELTA:
        return PlayerForm.HOT_STREAK
    if delta <= FORM_COLD_DELTA:
        return PlayerForm.COLD_STREAK
    return PlayerForm.STABLE


def k_factor(sessions_played: int) -> float:
    for limit, factor in K_FACTORS:
        if limit is None or sessions_played < limit:
            return factor
    return K_FACTORS[-1][1]


def delta_cap(sessions_played: int) -> float:
    return NEW_PLAYER_DELTA_CAP if sessions_played < NEW_PLAYER_SESSIONS else VETERAN_DELTA_CAP


def team_points(game: Game, team_id: str) -> float:
    goal_diff = game.score_for(team_id) - game.score_against(team_id)
    if game.is_draw:
        return TEAM_POINTS["draw"]
    if game.winner_team_id == team_id:
        # A comeback outranks a dominant margin.
        if goal_replay(game, team_id):
            return TEAM_POINTS["comeback_win"]
        if goal_diff >= DOMINANT_GOAL_DIFF:
            return TEAM_POINTS["dominant_win"]
        return TEAM_POINTS["win"]
    if goal_diff <= -DOMINANT_GOAL_DIFF:
        return TEAM_POINTS["heavy_loss"]
    return TEAM_POINTS["loss"]


def individual_points(game: Game, team_id: str, player: Player) -> float:
    points = 0.0
    if game.score_against(team_id) == 0:
        points += DEFENSIVE_CLEAN_SHEET_POINTS if player.has_skill(DEFENSIVE_SKILLS) else CLEAN_SHEET_POINTS
    goal_weight = ATTACKER_GOAL_WEIGHT if player.has_skill(ATTACKING_SKILLS) else GOAL_WEIGHT
    assist_weight = PLAYMAKER_ASSIST_WEIGHT if player.has_skill(PLAYMAKING_SKILLS) else ASSIST_WEIGHT
    for goal in game.goals:
        if goal.scorer_id == player.player_id:
            points += OWN_GOAL_WEIGHT if goal.is_own_goal else goal_weight
        if goal.assistant_id == player.player_id and not goal.is_own_goal:
            points += assist_weight
    return points


def badge_bonus(badges: Iterable[str]) -> float:
    return sum(BADGE_BONUSES.get(badge, 0.0) for badge in badges)


def calculate_rating_update(
    player: Player,
    stats: PlayerStats,
    session: Session,
    earned_badges: Iterable[str] = (),
) -> tuple[float, RatingBreakdown]:
    """Move ``player.rating`` toward this session's performance level.

    Returns the clamped delta and an audit breakdown; the player is not
    mutated. Callers pass the snapshot taken before career totals merge.
    """
    badges = list(earned_badges)
    games = player_games(session, player.player_id)
    if stats.games_played <= 0 or not games:
        return 0.0, RatingBreakdown(previous_rating=player.rating, new_rating=player.rating)

    team_id = stats.team.team_id
    avg_team = sum(team_points(g, team_id) for g in games) / len(games)
    avg_individual = sum(individual_points(g, team_id, player) for g in games) / len(games)
    bonus = badge_bonus(badges)

    avg_match_rating = BASE_MATCH_RATING + avg_team + avg_individual + bonus
    performance_level = min(RATING_MAX, max(RATING_MIN, avg_match_rating * 10))
    sessions_played = player.total_sessions_played
    delta = (performance_level - player.rating) * k_factor(sessions_played)

    if stats.win_rate >= HIGH_WIN_RATE:
        delta += WIN_RATE_NUDGE
    elif stats.win_rate <= LOW_WIN_RATE:
        delta -= WIN_RATE_NUDGE
    if stats.wins == 0 and stats.goals == 0 and stats.assists == 0 and stats.clean_sheets == 0:
        delta -= NO_CONTRIBUTION_PENALTY

    cap = delta_cap(sessions_played)
    delta = max(-cap, min(cap, delta))
    new_rating = max(player.initial_rating, min(RATING_MAX, round_half_up(player.rating + delta)))

    return delta, RatingBreakdown(
        previous_rating=player.rating,
        team_performance=round(avg_team, 2),
        individual_performance=round(avg_individual, 2),
        badge_bonus=round(bonus, 2),
        final_change=round(delta, 2),
        new_rating=new_rating,
        badges_earned=badges,
    )


def apply_inactivity_penalty(player: Player) -> RatingBreakdown:
    """Take one inactivity step off ``player`` in place, never below the starting rating."""
    previous = player.rating
    player.rating = max(player.initial_rating, previous - INACTIVITY_PENALTY)
    player.tier = tier_for_rating(player.rating)
    change = float(player.rating - previous)
    player.form = form_for_delta(change)
    breakdown = RatingBreakdown(
        previous_rating=previous,
        final_change=change,
        new_rating=player.rating,
        is_penalty=True,
    )
    player.last_rating_change = breakdown
    logger.info(
        "Inactivity penalty for %s after %s missed sessions: %s -> %s",
        player.nickname,
        player.consecutive_missed_sessions,
        previous,
        player.rating,
    )
    return breakdown
