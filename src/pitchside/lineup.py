from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .config import DEFAULT_START_RATING, TEAM_COLORS
from .models import Player, Session, SessionConfig, Team
from .rating import tier_for_rating


def create_player(nickname: str, start_rating: int = DEFAULT_START_RATING, created_at: datetime | None = None) -> Player:
    """New club member; the starting rating doubles as the permanent floor."""
    return Player(
        nickname=nickname.strip(),
        rating=start_rating,
        initial_rating=start_rating,
        tier=tier_for_rating(start_rating),
        created_at=created_at,
        last_played_at=created_at,
    )


def create_teams(num_teams: int) -> list[Team]:
    return [
        Team(name=f"Team {idx + 1}", color=TEAM_COLORS[idx % len(TEAM_COLORS)])
        for idx in range(num_teams)
    ]


def create_session(
    config: SessionConfig,
    players: Iterable[Player],
    date: datetime | None = None,
    session_name: str = "",
) -> Session:
    return Session(
        config=config,
        session_name=session_name,
        date=date,
        created_at=date,
        teams=create_teams(config.num_teams),
        player_pool=list(players),
    )


def assign_player(session: Session, player_id: str, team_id: str) -> bool:
    """Move a pool player onto a team; assigning to the current team unassigns."""
    target = session.get_team(team_id)
    if target is None or session.get_player(player_id) is None:
        return False
    current = session.team_for_player(player_id)
    for team in session.teams:
        if player_id in team.player_ids:
            team.player_ids.remove(player_id)
    if current is not target:
        target.player_ids.append(player_id)
    return True


def auto_balance(session: Session) -> None:
    """Snake-order distribution of the pool by rating, strongest first."""
    if not session.teams:
        return
    ranked = sorted(session.player_pool, key=lambda p: p.rating, reverse=True)
    for team in session.teams:
        team.player_ids = []
    team_idx, direction = 0, 1
    last = len(session.teams) - 1
    for player in ranked:
        session.teams[team_idx].player_ids.append(player.player_id)
        team_idx += direction
        if team_idx > last:
            team_idx, direction = last, -1
        elif team_idx < 0:
            team_idx, direction = 0, 1


def unassigned_players(session: Session) -> list[Player]:
    assigned = {pid for team in session.teams for pid in team.player_ids}
    return [p for p in session.player_pool if p.player_id not in assigned]


def can_start(session: Session) -> bool:
    return (
        bool(session.player_pool)
        and not unassigned_players(session)
        and len(session.teams) >= 2
        and all(team.player_ids for team in session.teams)
    )
