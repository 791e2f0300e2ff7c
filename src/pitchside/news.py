from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from .clock import as_utc
from .config import (
    HOT_BADGES,
    NEWS_BASE_PRIORITY,
    NEWS_FEED_LIMIT,
    NEWS_MAX_PER_RUN,
    NEWS_MILESTONES,
    NEWS_MIN_TIER_RANK,
    NEWS_TTL_SECONDS,
    RATING_SURGE_DELTA,
    TIER_RANKS,
)
from .models import NewsItem, Player, PlayerForm, PlayerTier

NEWS_TTL = timedelta(seconds=NEWS_TTL_SECONDS)


def tier_rank(tier: PlayerTier | str) -> int:
    return TIER_RANKS.get(PlayerTier(tier).value, 0)


def _item(
    session_id: str,
    player: Player,
    kind: str,
    detail: str,
    now: datetime,
    priority: int,
    is_hot: bool,
    params: dict[str, object] | None = None,
) -> NewsItem:
    return NewsItem(
        news_id=f"{session_id}:{player.player_id}:{kind}:{detail}",
        player_id=player.player_id,
        player_name=player.nickname,
        kind=kind,
        timestamp=now,
        priority=priority,
        is_hot=is_hot,
        params=params or {},
        rating=player.rating,
        tier=player.tier,
    )


def _player_news(old: Player, new: Player, now: datetime, session_id: str) -> list[NewsItem]:
    items: list[NewsItem] = []

    old_rank, new_rank = tier_rank(old.tier), tier_rank(new.tier)
    if new_rank > old_rank and new_rank >= NEWS_MIN_TIER_RANK:
        items.append(
            _item(
                session_id,
                new,
                "tier_up",
                new.tier.value,
                now,
                NEWS_BASE_PRIORITY["tier_up"] + new_rank,
                is_hot=new.tier in (PlayerTier.LEGEND, PlayerTier.ELITE),
                params={"tier": new.tier.value},
            )
        )

    career = {
        "goals": (old.total_goals, new.total_goals),
        "assists": (old.total_assists, new.total_assists),
        "wins": (old.total_wins, new.total_wins),
        "sessions": (old.total_sessions_played, new.total_sessions_played),
    }
    for label, (before, after) in career.items():
        for mark in NEWS_MILESTONES[label]:
            if before < mark <= after:
                items.append(
                    _item(
                        session_id,
                        new,
                        "milestone",
                        f"{label}-{mark}",
                        now,
                        NEWS_BASE_PRIORITY["milestone"] + mark // 50,
                        is_hot=mark >= 100,
                        params={"label": label, "milestone": mark},
                    )
                )

    for badge in new.badges:
        if old.badges.get(badge, 0) > 0 or new.badges[badge] <= 0:
            continue
        hot = badge in HOT_BADGES
        items.append(
            _item(
                session_id,
                new,
                "badge",
                badge,
                now,
                NEWS_BASE_PRIORITY["badge"] + (5 if hot else 0),
                is_hot=hot,
                params={"badge": badge},
            )
        )

    surge = new.rating - old.rating
    if surge >= RATING_SURGE_DELTA:
        items.append(
            _item(
                session_id,
                new,
                "rating_surge",
                str(surge),
                now,
                NEWS_BASE_PRIORITY["rating_surge"] + surge,
                is_hot=True,
                params={"rating_diff": surge},
            )
        )

    if old.form != PlayerForm.HOT_STREAK and new.form == PlayerForm.HOT_STREAK:
        items.append(_item(session_id, new, "hot_streak", "", now, NEWS_BASE_PRIORITY["hot_streak"], is_hot=False))
    return items


def generate_news_updates(
    old_players: Iterable[Player],
    new_players: Iterable[Player],
    now: datetime,
    session_id: str,
) -> list[NewsItem]:
    """Diff player snapshots into at most ``NEWS_MAX_PER_RUN`` items, highest priority first.

    Players missing from ``old_players`` are skipped. Ids are derived from the
    session, player and event, so re-running a session yields the same ids.
    """
    old_by_id = {p.player_id: p for p in old_players}
    items: list[NewsItem] = []
    for new in new_players:
        old = old_by_id.get(new.player_id)
        if old is not None:
            items.extend(_player_news(old, new, now, session_id))
    items.sort(key=lambda item: item.priority, reverse=True)
    return items[:NEWS_MAX_PER_RUN]


def is_fresh(item: NewsItem, now: datetime) -> bool:
    return as_utc(now) - as_utc(item.timestamp) < NEWS_TTL


def manage_news_feed(feed: Iterable[NewsItem], now: datetime) -> list[NewsItem]:
    seen: set[str] = set()
    kept: list[NewsItem] = []
    for item in feed:
        if item.news_id in seen or not is_fresh(item, now):
            continue
        seen.add(item.news_id)
        kept.append(item)
    kept.sort(key=lambda item: (as_utc(item.timestamp), item.priority), reverse=True)
    return kept[:NEWS_FEED_LIMIT]
