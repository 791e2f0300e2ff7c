from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime

from .badges import calculate_earned_badges
from .clock import as_utc
from .config import HISTORY_DATA_LIMIT, MISSED_SESSIONS_PER_PENALTY, SESSION_HISTORY_LIMIT
from .models import (
    HistoryEntry,
    NewsItem,
    Player,
    PlayerStats,
    RatingBreakdown,
    RecordEntry,
    Session,
    SessionStatus,
)
from .news import generate_news_updates, manage_news_feed
from .rating import apply_inactivity_penalty, calculate_rating_update, form_for_delta, tier_for_rating
from .statistics import SessionStatistics, calculate_all_stats

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessedSession:
    updated_players: list[Player]
    players_to_save: list[Player]
    final_session: Session
    updated_news_feed: list[NewsItem]
    breakdowns: dict[str, RatingBreakdown] = field(default_factory=dict)


def _same_month(left: datetime | None, right: datetime | None) -> bool:
    if left is None or right is None:
        return True
    return (left.year, left.month) == (right.year, right.month)


def _history_date(session: Session, now: datetime) -> str:
    return (session.date or now).date().isoformat()


def _update_record(current: RecordEntry, value: float, session_id: str) -> RecordEntry:
    if value >= current.value:
        return RecordEntry(value=value, session_id=session_id)
    return current


def _merge_participant(player: Player, stats: PlayerStats, session: Session, all_stats: SessionStatistics, now: datetime) -> RatingBreakdown:
    # Badges and rating see the pre-merge snapshot.
    snapshot = copy.deepcopy(player)
    earned = calculate_earned_badges(snapshot, stats, session, all_stats)
    delta, breakdown = calculate_rating_update(snapshot, stats, session, earned)

    session_date = session.date or now
    if not _same_month(player.last_played_at, session_date):
        player.monthly_goals = 0
        player.monthly_assists = 0
        player.monthly_games = 0
        player.monthly_wins = 0
        player.monthly_sessions_played = 0

    player.total_games += stats.games_played
    player.total_goals += stats.goals
    player.total_assists += stats.assists
    player.total_wins += stats.wins
    player.total_draws += stats.draws
    player.total_losses += stats.losses
    player.total_sessions_played += 1
    player.monthly_games += stats.games_played
    player.monthly_goals += stats.goals
    player.monthly_assists += stats.assists
    player.monthly_wins += stats.wins
    player.monthly_sessions_played += 1

    player.rating = breakdown.new_rating
    player.tier = tier_for_rating(player.rating)
    player.form = form_for_delta(delta)
    for badge in earned:
        player.badges[badge] = player.badges.get(badge, 0) + 1

    win_rate = stats.win_rate_pct
    player.session_history = (player.session_history + [win_rate])[-SESSION_HISTORY_LIMIT:]
    player.history_data = (
        player.history_data
        + [
            HistoryEntry(
                date=_history_date(session, now),
                rating=player.rating,
                win_rate=win_rate,
                goals=stats.goals,
                assists=stats.assists,
            )
        ]
    )[-HISTORY_DATA_LIMIT:]

    records = player.records
    records.best_goals_in_session = _update_record(records.best_goals_in_session, stats.goals, session.session_id)
    records.best_assists_in_session = _update_record(records.best_assists_in_session, stats.assists, session.session_id)
    records.best_win_rate_in_session = _update_record(records.best_win_rate_in_session, win_rate, session.session_id)

    player.consecutive_missed_sessions = 0
    player.last_played_at = session_date
    player.last_rating_change = breakdown
    return breakdown


def _register_absence(player: Player, session: Session, now: datetime) -> RatingBreakdown | None:
    player.consecutive_missed_sessions += 1
    if player.is_immune_to_penalty or player.consecutive_missed_sessions % MISSED_SESSIONS_PER_PENALTY != 0:
        return None
    breakdown = apply_inactivity_penalty(player)
    player.history_data = (
        player.history_data + [HistoryEntry(date=_history_date(session, now), rating=player.rating)]
    )[-HISTORY_DATA_LIMIT:]
    return breakdown


def process_finished_session(
    session: Session,
    all_players: list[Player],
    news_feed: list[NewsItem],
    now: datetime,
) -> ProcessedSession:
    """Turn a finished session into updated players, a completed session and a refreshed news feed.

    Inputs are never mutated. Given the same inputs the result is identical,
    which makes the function safe to re-run for audits. A naive ``now`` is
    taken to be UTC. Expired items are pruned from the feed on every run.
    """
    now = as_utc(now)
    all_stats = calculate_all_stats(session)
    stats_by_id = {s.player.player_id: s for s in all_stats.player_stats if s.games_played > 0}

    updated: list[Player] = []
    to_save: list[Player] = []
    breakdowns: dict[str, RatingBreakdown] = {}
    for original in all_players:
        player = copy.deepcopy(original)
        stats = stats_by_id.get(player.player_id)
        if stats is not None:
            breakdowns[player.player_id] = _merge_participant(player, stats, session, all_stats, now)
            to_save.append(player)
        else:
            penalty = _register_absence(player, session, now)
            if penalty is not None:
                breakdowns[player.player_id] = penalty
                to_save.append(player)
        updated.append(player)

    fresh_news = generate_news_updates(all_players, updated, now, session.session_id)
    feed = manage_news_feed(fresh_news + list(news_feed), now)

    final_session = copy.deepcopy(session)
    final_session.status = SessionStatus.COMPLETED

    logger.info(
        "Processed session %s: %s participants, %s penalties, %s news items",
        session.session_id,
        len(stats_by_id),
        sum(1 for b in breakdowns.values() if b.is_penalty),
        len(fresh_news),
    )
    return ProcessedSession(
        updated_players=updated,
        players_to_save=to_save,
        final_session=final_session,
        updated_news_feed=feed,
        breakdowns=breakdowns,
    )
