from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from .config import DEFAULT_START_RATING
from .models import (
    BADGE_TYPES,
    PAYLOAD_TYPES,
    EventLogEntry,
    EventType,
    FinishRoundPayload,
    Game,
    GameStatus,
    Goal,
    GoalPayload,
    HistoryEntry,
    NewsItem,
    Player,
    PlayerForm,
    PlayerRecords,
    PlayerTier,
    RatingBreakdown,
    RecordEntry,
    RotationMode,
    Session,
    SessionConfig,
    SessionStatus,
    StartRoundPayload,
    SubstitutionPayload,
    Team,
    new_id,
)

E = TypeVar("E", bound=Enum)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt_int(value: Any) -> int | None:
    return None if value is None else _int(value)


def _opt_float(value: Any) -> float | None:
    return None if value is None else _float(value)


def _opt_str(value: Any) -> str | None:
    return None if value in (None, "") else str(value)


def _enum(enum_type: type[E], value: Any, default: E) -> E:
    try:
        return enum_type(value)
    except ValueError:
        return default


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_breakdown(breakdown: RatingBreakdown | None) -> dict[str, Any] | None:
    if breakdown is None:
        return None
    return {
        "previous_rating": breakdown.previous_rating,
        "team_performance": breakdown.team_performance,
        "individual_performance": breakdown.individual_performance,
        "badge_bonus": breakdown.badge_bonus,
        "final_change": breakdown.final_change,
        "new_rating": breakdown.new_rating,
        "badges_earned": list(breakdown.badges_earned),
        "is_penalty": breakdown.is_penalty,
    }


def deserialize_breakdown(raw: Any) -> RatingBreakdown | None:
    if not isinstance(raw, dict):
        return None
    previous = _int(raw.get("previous_rating"), DEFAULT_START_RATING)
    return RatingBreakdown(
        previous_rating=previous,
        team_performance=_float(raw.get("team_performance")),
        individual_performance=_float(raw.get("individual_performance")),
        badge_bonus=_float(raw.get("badge_bonus")),
        final_change=_float(raw.get("final_change")),
        new_rating=_int(raw.get("new_rating"), previous),
        badges_earned=[b for b in _str_list(raw.get("badges_earned")) if b in BADGE_TYPES],
        is_penalty=bool(raw.get("is_penalty", False)),
    )


def _serialize_record(entry: RecordEntry) -> dict[str, Any]:
    return {"value": entry.value, "session_id": entry.session_id}


def _deserialize_record(raw: Any) -> RecordEntry:
    # Legacy payloads stored records as bare numbers or left them null.
    if not isinstance(raw, dict):
        return RecordEntry()
    return RecordEntry(value=_float(raw.get("value")), session_id=str(raw.get("session_id") or ""))


def serialize_player(player: Player) -> dict[str, Any]:
    records = player.records
    return {
        "player_id": player.player_id,
        "nickname": player.nickname,
        "surname": player.surname,
        "created_at": format_datetime(player.created_at),
        "total_goals": player.total_goals,
        "total_assists": player.total_assists,
        "total_games": player.total_games,
        "total_wins": player.total_wins,
        "total_draws": player.total_draws,
        "total_losses": player.total_losses,
        "total_sessions_played": player.total_sessions_played,
        "monthly_goals": player.monthly_goals,
        "monthly_assists": player.monthly_assists,
        "monthly_games": player.monthly_games,
        "monthly_wins": player.monthly_wins,
        "monthly_sessions_played": player.monthly_sessions_played,
        "rating": player.rating,
        "initial_rating": player.initial_rating,
        "tier": player.tier.value,
        "form": player.form.value,
        "badges": dict(player.badges),
        "skills": list(player.skills),
        "last_played_at": format_datetime(player.last_played_at),
        "session_history": [{"win_rate": rate} for rate in player.session_history],
        "history_data": [
            {
                "date": entry.date,
                "rating": entry.rating,
                "win_rate": entry.win_rate,
                "goals": entry.goals,
                "assists": entry.assists,
            }
            for entry in player.history_data
        ],
        "records": {
            "best_goals_in_session": _serialize_record(records.best_goals_in_session),
            "best_assists_in_session": _serialize_record(records.best_assists_in_session),
            "best_win_rate_in_session": _serialize_record(records.best_win_rate_in_session),
        },
        "last_rating_change": serialize_breakdown(player.last_rating_change),
        "consecutive_missed_sessions": player.consecutive_missed_sessions,
        "is_immune_to_penalty": player.is_immune_to_penalty,
    }


def deserialize_player(raw: dict[str, Any]) -> Player:
    rating = _int(raw.get("rating"), DEFAULT_START_RATING)
    initial_rating = _int(raw.get("initial_rating"), rating)
    raw_badges = raw.get("badges") if isinstance(raw.get("badges"), dict) else {}
    raw_records = raw.get("records") if isinstance(raw.get("records"), dict) else {}
    session_history: list[int] = []
    for entry in raw.get("session_history") or []:
        if isinstance(entry, dict):
            session_history.append(_int(entry.get("win_rate")))
        elif isinstance(entry, (int, float)):
            session_history.append(int(entry))
    history_data = [
        HistoryEntry(
            date=str(entry.get("date", "")),
            rating=_int(entry.get("rating"), rating),
            win_rate=_int(entry.get("win_rate")),
            goals=_int(entry.get("goals")),
            assists=_int(entry.get("assists")),
        )
        for entry in raw.get("history_data") or []
        if isinstance(entry, dict)
    ]
    return Player(
        player_id=str(raw.get("player_id") or new_id()),
        nickname=str(raw.get("nickname", "")),
        surname=str(raw.get("surname", "")),
        created_at=parse_datetime(raw.get("created_at")),
        total_goals=_int(raw.get("total_goals")),
        total_assists=_int(raw.get("total_assists")),
        total_games=_int(raw.get("total_games")),
        total_wins=_int(raw.get("total_wins")),
        total_draws=_int(raw.get("total_draws")),
        total_losses=_int(raw.get("total_losses")),
        total_sessions_played=_int(raw.get("total_sessions_played")),
        monthly_goals=_int(raw.get("monthly_goals")),
        monthly_assists=_int(raw.get("monthly_assists")),
        monthly_games=_int(raw.get("monthly_games")),
        monthly_wins=_int(raw.get("monthly_wins")),
        monthly_sessions_played=_int(raw.get("monthly_sessions_played")),
        rating=max(rating, initial_rating),
        initial_rating=initial_rating,
        tier=_enum(PlayerTier, raw.get("tier"), PlayerTier.AVERAGE),
        form=_enum(PlayerForm, raw.get("form"), PlayerForm.STABLE),
        badges={str(k): _int(v) for k, v in raw_badges.items() if k in BADGE_TYPES and _int(v) > 0},
        skills=_str_list(raw.get("skills")),
        last_played_at=parse_datetime(raw.get("last_played_at")),
        session_history=session_history,
        history_data=history_data,
        records=PlayerRecords(
            best_goals_in_session=_deserialize_record(raw_records.get("best_goals_in_session")),
            best_assists_in_session=_deserialize_record(raw_records.get("best_assists_in_session")),
            best_win_rate_in_session=_deserialize_record(raw_records.get("best_win_rate_in_session")),
        ),
        last_rating_change=deserialize_breakdown(raw.get("last_rating_change")),
        consecutive_missed_sessions=_int(raw.get("consecutive_missed_sessions")),
        is_immune_to_penalty=bool(raw.get("is_immune_to_penalty", False)),
    )


def serialize_team(team: Team) -> dict[str, Any]:
    return {
        "team_id": team.team_id,
        "name": team.name,
        "color": team.color,
        "player_ids": list(team.player_ids),
        "consecutive_games": team.consecutive_games,
        "big_stars": team.big_stars,
    }


def deserialize_team(raw: dict[str, Any]) -> Team:
    return Team(
        team_id=str(raw.get("team_id") or new_id()),
        name=str(raw.get("name", "")),
        color=str(raw.get("color") or "#0074D9"),
        player_ids=_str_list(raw.get("player_ids")),
        consecutive_games=max(0, _int(raw.get("consecutive_games"))),
        big_stars=max(0, _int(raw.get("big_stars"))),
    )


def serialize_goal(goal: Goal) -> dict[str, Any]:
    return {
        "goal_id": goal.goal_id,
        "game_id": goal.game_id,
        "team_id": goal.team_id,
        "scorer_id": goal.scorer_id,
        "assistant_id": goal.assistant_id,
        "is_own_goal": goal.is_own_goal,
        "timestamp_seconds": goal.timestamp_seconds,
        "credited_to": goal.credited_to,
    }


def deserialize_goal(raw: dict[str, Any], game_id: str) -> Goal:
    return Goal(
        goal_id=str(raw.get("goal_id") or new_id()),
        game_id=str(raw.get("game_id") or game_id),
        team_id=str(raw.get("team_id", "")),
        scorer_id=_opt_str(raw.get("scorer_id")),
        assistant_id=_opt_str(raw.get("assistant_id")),
        is_own_goal=bool(raw.get("is_own_goal", False)),
        timestamp_seconds=max(0, _int(raw.get("timestamp_seconds"))),
        credited_to=_opt_str(raw.get("credited_to")),
    )


def serialize_game(game: Game) -> dict[str, Any]:
    return {
        "game_id": game.game_id,
        "game_number": game.game_number,
        "team1_id": game.team1_id,
        "team2_id": game.team2_id,
        "team1_score": game.team1_score,
        "team2_score": game.team2_score,
        "status": game.status.value,
        "winner_team_id": game.winner_team_id,
        "is_draw": game.is_draw,
        "duration_seconds": game.duration_seconds,
        "start_time": game.start_time,
        "last_resume_time": game.last_resume_time,
        "elapsed_seconds_on_pause": game.elapsed_seconds_on_pause,
        "elapsed_seconds": game.elapsed_seconds,
        "ended_at": format_datetime(game.ended_at),
        "goals": [serialize_goal(goal) for goal in game.goals],
        "announced_milestones": sorted(game.announced_milestones),
    }


def deserialize_game(raw: dict[str, Any]) -> Game:
    game_id = str(raw.get("game_id") or new_id())
    return Game(
        game_id=game_id,
        game_number=max(1, _int(raw.get("game_number"), 1)),
        team1_id=str(raw.get("team1_id", "")),
        team2_id=str(raw.get("team2_id", "")),
        team1_score=max(0, _int(raw.get("team1_score"))),
        team2_score=max(0, _int(raw.get("team2_score"))),
        status=_enum(GameStatus, raw.get("status"), GameStatus.PENDING),
        winner_team_id=_opt_str(raw.get("winner_team_id")),
        is_draw=bool(raw.get("is_draw", False)),
        duration_seconds=_opt_int(raw.get("duration_seconds")),
        start_time=_opt_float(raw.get("start_time")),
        last_resume_time=_opt_float(raw.get("last_resume_time")),
        elapsed_seconds_on_pause=_float(raw.get("elapsed_seconds_on_pause")),
        elapsed_seconds=_float(raw.get("elapsed_seconds")),
        ended_at=parse_datetime(raw.get("ended_at")),
        goals=[deserialize_goal(goal, game_id) for goal in raw.get("goals") or [] if isinstance(goal, dict)],
        announced_milestones={_int(m) for m in raw.get("announced_milestones") or [] if isinstance(m, (int, float))},
    )


def serialize_config(config: SessionConfig) -> dict[str, Any]:
    return {
        "num_teams": config.num_teams,
        "players_per_team": config.players_per_team,
        "match_duration_minutes": config.match_duration_minutes,
        "goals_to_win": config.goals_to_win,
        "rotation_mode": config.rotation_mode.value,
    }


def deserialize_config(raw: Any) -> SessionConfig:
    """Build a config from stored values, falling back to defaults field by field."""
    if not isinstance(raw, dict):
        return SessionConfig()
    num_teams = _int(raw.get("num_teams"), 3)
    if num_teams not in SessionConfig.SUPPORTED_TEAM_COUNTS:
        num_teams = 3
    duration = _opt_int(raw.get("match_duration_minutes"))
    goals_to_win = _opt_int(raw.get("goals_to_win"))
    return SessionConfig(
        num_teams=num_teams,
        players_per_team=max(1, _int(raw.get("players_per_team"), 5)),
        match_duration_minutes=duration if duration is not None and duration > 0 else None,
        goals_to_win=goals_to_win if goals_to_win is not None and goals_to_win >= 0 else None,
        rotation_mode=_enum(RotationMode, raw.get("rotation_mode"), RotationMode.AUTO_ROTATE),
    )


def serialize_event(entry: EventLogEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if isinstance(entry.payload, StartRoundPayload):
        payload = {
            "left_team": entry.payload.left_team,
            "right_team": entry.payload.right_team,
            "left_players": list(entry.payload.left_players),
            "right_players": list(entry.payload.right_players),
        }
    elif isinstance(entry.payload, FinishRoundPayload):
        payload = {"winner_team_id": entry.payload.winner_team_id, "is_draw": entry.payload.is_draw}
    elif isinstance(entry.payload, GoalPayload):
        payload = {
            "team": entry.payload.team,
            "scorer": entry.payload.scorer,
            "assist": entry.payload.assist,
            "is_own_goal": entry.payload.is_own_goal,
        }
    elif isinstance(entry.payload, SubstitutionPayload):
        payload = {
            "side": entry.payload.side,
            "player_out": entry.payload.player_out,
            "player_in": entry.payload.player_in,
        }
    return {
        "timestamp": format_datetime(entry.timestamp),
        "round": entry.round,
        "type": entry.kind.value,
        "payload": payload,
    }


def deserialize_event(raw: dict[str, Any]) -> EventLogEntry | None:
    """Rebuild one log entry; unknown event types are dropped."""
    try:
        kind = EventType(raw.get("type"))
    except ValueError:
        return None
    data = raw.get("payload") if isinstance(raw.get("payload"), dict) else {}
    payload_type = PAYLOAD_TYPES[kind]
    if payload_type is StartRoundPayload:
        payload = StartRoundPayload(
            left_team=str(data.get("left_team", "")),
            right_team=str(data.get("right_team", "")),
            left_players=_str_list(data.get("left_players")),
            right_players=_str_list(data.get("right_players")),
        )
    elif payload_type is FinishRoundPayload:
        payload = FinishRoundPayload(
            winner_team_id=_opt_str(data.get("winner_team_id")),
            is_draw=bool(data.get("is_draw", False)),
        )
    elif payload_type is GoalPayload:
        payload = GoalPayload(
            team=str(data.get("team", "")),
            scorer=_opt_str(data.get("scorer")),
            assist=_opt_str(data.get("assist")),
            is_own_goal=bool(data.get("is_own_goal", False)),
        )
    elif payload_type is SubstitutionPayload:
        payload = SubstitutionPayload(
            side=str(data.get("side", "")),
            player_out=str(data.get("player_out", "")),
            player_in=str(data.get("player_in", "")),
        )
    else:
        payload = payload_type()
    return EventLogEntry(
        timestamp=parse_datetime(raw.get("timestamp")) or datetime.fromtimestamp(0, tz=timezone.utc),
        round=max(0, _int(raw.get("round"))),
        payload=payload,
    )


def serialize_session(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "session_name": session.session_name,
        "date": format_datetime(session.date),
        "created_at": format_datetime(session.created_at),
        "config": serialize_config(session.config),
        "teams": [serialize_team(team) for team in session.teams],
        "games": [serialize_game(game) for game in session.games],
        "player_pool": [serialize_player(player) for player in session.player_pool],
        "rotation_queue": list(session.rotation_queue) if session.rotation_queue is not None else None,
        "status": session.status.value,
        "event_log": [serialize_event(entry) for entry in session.event_log],
    }


def deserialize_session(raw: dict[str, Any]) -> Session:
    events = [deserialize_event(entry) for entry in raw.get("event_log") or [] if isinstance(entry, dict)]
    queue = raw.get("rotation_queue")
    return Session(
        session_id=str(raw.get("session_id") or new_id()),
        session_name=str(raw.get("session_name", "")),
        date=parse_datetime(raw.get("date")),
        created_at=parse_datetime(raw.get("created_at")),
        config=deserialize_config(raw.get("config")),
        teams=[deserialize_team(team) for team in raw.get("teams") or [] if isinstance(team, dict)],
        games=sorted(
            (deserialize_game(game) for game in raw.get("games") or [] if isinstance(game, dict)),
            key=lambda game: game.game_number,
        ),
        player_pool=[deserialize_player(p) for p in raw.get("player_pool") or [] if isinstance(p, dict)],
        rotation_queue=_str_list(queue) if isinstance(queue, list) else None,
        status=_enum(SessionStatus, raw.get("status"), SessionStatus.ACTIVE),
        event_log=[entry for entry in events if entry is not None],
    )


def serialize_news_item(item: NewsItem) -> dict[str, Any]:
    return {
        "news_id": item.news_id,
        "player_id": item.player_id,
        "player_name": item.player_name,
        "kind": item.kind,
        "timestamp": format_datetime(item.timestamp),
        "priority": item.priority,
        "is_hot": item.is_hot,
        "params": dict(item.params),
        "rating": item.rating,
        "tier": item.tier.value if item.tier is not None else None,
    }


def deserialize_news_item(raw: dict[str, Any]) -> NewsItem | None:
    timestamp = parse_datetime(raw.get("timestamp"))
    if timestamp is None:
        return None
    tier = raw.get("tier")
    return NewsItem(
        news_id=str(raw.get("news_id") or new_id()),
        player_id=str(raw.get("player_id", "")),
        player_name=str(raw.get("player_name", "")),
        kind=str(raw.get("kind", "")),
        timestamp=timestamp,
        priority=_int(raw.get("priority")),
        is_hot=bool(raw.get("is_hot", False)),
        params=dict(raw.get("params")) if isinstance(raw.get("params"), dict) else {},
        rating=_opt_int(raw.get("rating")),
        tier=_enum(PlayerTier, tier, PlayerTier.AVERAGE) if tier is not None else None,
    )
