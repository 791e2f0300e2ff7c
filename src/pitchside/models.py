from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union
from uuid import uuid4

from .config import DEFAULT_START_RATING


class GameStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    FINISHED = "finished"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class RotationMode(str, Enum):
    AUTO_ROTATE = "auto_rotate"
    PLAY_UNTIL_LOSS = "play_until_loss"


class PlayerTier(str, Enum):
    LEGEND = "legend"
    ELITE = "elite"
    STRONG = "strong"
    AVERAGE = "average"
    DEVELOPING = "developing"


class PlayerForm(str, Enum):
    HOT_STREAK = "hot_streak"
    STABLE = "stable"
    COLD_STREAK = "cold_streak"


class EventType(str, Enum):
    START_ROUND = "start_round"
    FINISH_ROUND = "finish_round"
    GOAL = "goal"
    SUBSTITUTION = "sub"
    TIMER_START = "start"
    TIMER_STOP = "stop"


BADGE_TYPES: tuple[str, ...] = (
    "goleador",
    "assistant",
    "mvp",
    "ten_influence",
    "mastery_balance",
    "dominant_participant",
    "undefeated",
    "session_top_scorer",
    "session_top_assistant",
    "win_leader",
    "unsung_hero",
    "decisive_factor",
    "duplet",
    "maestro",
    "fortress",
    "sniper",
    "first_blood",
    "comeback_kings",
    "team_conductor",
    "perfect_finish",
    "victory_finisher",
    "stable_striker",
    "passing_streak",
    "iron_streak",
    "dynasty",
    "key_player",
    "club_legend_goals",
    "club_legend_assists",
    "veteran",
    "career_100_wins",
    "career_150_influence",
    "career_super_veteran",
)

SKILL_TYPES = frozenset(
    {
        "goalkeeper",
        "power_shot",
        "technique",
        "defender",
        "playmaker",
        "finisher",
        "versatile",
        "tireless_motor",
        "leader",
    }
)


def new_id() -> str:
    return uuid4().hex


@dataclass(slots=True)
class RatingBreakdown:
    previous_rating: int
    team_performance: float = 0.0
    individual_performance: float = 0.0
    badge_bonus: float = 0.0
    final_change: float = 0.0
    new_rating: int = 0
    badges_earned: list[str] = field(default_factory=list)
    is_penalty: bool = False


@dataclass(slots=True)
class RecordEntry:
    value: float = 0
    session_id: str = ""


@dataclass(slots=True)
class PlayerRecords:
    best_goals_in_session: RecordEntry = field(default_factory=RecordEntry)
    best_assists_in_session: RecordEntry = field(default_factory=RecordEntry)
    best_win_rate_in_session: RecordEntry = field(default_factory=RecordEntry)


@dataclass(slots=True)
class HistoryEntry:
    date: str
    rating: int
    win_rate: int = 0
    goals: int = 0
    assists: int = 0


@dataclass(slots=True)
class Player:
    nickname: str
    surname: str = ""
    player_id: str = field(default_factory=new_id)
    created_at: datetime | None = None
    total_goals: int = 0
    total_assists: int = 0
    total_games: int = 0
    total_wins: int = 0
    total_draws: int = 0
    total_losses: int = 0
    total_sessions_played: int = 0
    monthly_goals: int = 0
    monthly_assists: int = 0
    monthly_games: int = 0
    monthly_wins: int = 0
    monthly_sessions_played: int = 0
    rating: int = DEFAULT_START_RATING
    initial_rating: int = DEFAULT_START_RATING
    tier: PlayerTier = PlayerTier.AVERAGE
    form: PlayerForm = PlayerForm.STABLE
    badges: dict[str, int] = field(default_factory=dict)
    skills: list[str] = field(default_factory=list)
    last_played_at: datetime | None = None
    session_history: list[int] = field(default_factory=list)
    history_data: list[HistoryEntry] = field(default_factory=list)
    records: PlayerRecords = field(default_factory=PlayerRecords)
    last_rating_change: RatingBreakdown | None = None
    consecutive_missed_sessions: int = 0
    is_immune_to_penalty: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.nickname} {self.surname}".strip()

    @property
    def total_influence(self) -> int:
        return self.total_goals + self.total_assists

    def has_skill(self, skills: frozenset[str]) -> bool:
        return any(skill in skills for skill in self.skills)


@dataclass(slots=True)
class Team:
    name: str
    color: str = "#0074D9"
    team_id: str = field(default_factory=new_id)
    player_ids: list[str] = field(default_factory=list)
    consecutive_games: int = 0
    big_stars: int = 0

    def lineup(self, players_per_team: int) -> list[str]:
        return self.player_ids[:players_per_team]

    def has_player(self, player_id: str | None) -> bool:
        return player_id is not None and player_id in self.player_ids


@dataclass(slots=True)
class Goal:
    game_id: str
    team_id: str
    scorer_id: str | None = None
    assistant_id: str | None = None
    is_own_goal: bool = False
    timestamp_seconds: int = 0
    goal_id: str = field(default_factory=new_id)
    credited_to: str | None = None

    def credited_team_id(self, game: Game) -> str:
        """Team whose score this goal counts towards.

        Fixed when the goal is recorded, so later attribution fixes never move
        the point to the other side.
        """
        if self.credited_to is not None:
            return self.credited_to
        if not self.is_own_goal:
            return self.team_id
        return game.opponent_of(self.team_id) or self.team_id


@dataclass(slots=True)
class Game:
    team1_id: str
    team2_id: str
    game_number: int = 1
    game_id: str = field(default_factory=new_id)
    team1_score: int = 0
    team2_score: int = 0
    status: GameStatus = GameStatus.PENDING
    winner_team_id: str | None = None
    is_draw: bool = False
    duration_seconds: int | None = None
    start_time: float | None = None
    last_resume_time: float | None = None
    elapsed_seconds_on_pause: float = 0.0
    elapsed_seconds: float = 0.0
    ended_at: datetime | None = None
    goals: list[Goal] = field(default_factory=list)
    announced_milestones: set[int] = field(default_factory=set)

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    @property
    def team_ids(self) -> tuple[str, str]:
        return (self.team1_id, self.team2_id)

    def involves(self, team_id: str | None) -> bool:
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    def opponent_of(self, team_id: str) -> str | None:
        if team_id == self.team1_id:
            return self.team2_id
        if team_id == self.team2_id:
            return self.team1_id
        return None

    def score_for(self, team_id: str) -> int:
        return self.team1_score if team_id == self.team1_id else self.team2_score

    def score_against(self, team_id: str) -> int:
        return self.team2_score if team_id == self.team1_id else self.team1_score

    def ordered_goals(self) -> list[Goal]:
        # sorted() is stable, so equal timestamps keep insertion order.
        return sorted(self.goals, key=lambda goal: goal.timestamp_seconds)

    def find_goal(self, goal_id: str) -> Goal | None:
        for goal in self.goals:
            if goal.goal_id == goal_id:
                return goal
        return None

    def settle_result(self) -> None:
        if self.team1_score > self.team2_score:
            self.winner_team_id, self.is_draw = self.team1_id, False
        elif self.team2_score > self.team1_score:
            self.winner_team_id, self.is_draw = self.team2_id, False
        else:
            self.winner_team_id, self.is_draw = None, True


@dataclass(frozen=True, slots=True)
class SessionConfig:
    num_teams: int = 3
    players_per_team: int = 5
    match_duration_minutes: int | None = None
    goals_to_win: int | None = None
    rotation_mode: RotationMode = RotationMode.AUTO_ROTATE

    SUPPORTED_TEAM_COUNTS: ClassVar[tuple[int, ...]] = (2, 3, 4)

    def __post_init__(self) -> None:
        if self.num_teams not in self.SUPPORTED_TEAM_COUNTS:
            raise ValueError(f"Unsupported team count {self.num_teams}; expected one of {self.SUPPORTED_TEAM_COUNTS}.")
        if self.players_per_team < 1:
            raise ValueError("players_per_team must be at least 1.")
        if self.match_duration_minutes is not None and self.match_duration_minutes <= 0:
            raise ValueError("match_duration_minutes must be positive when set.")
        if self.goals_to_win is not None and self.goals_to_win < 0:
            raise ValueError("goals_to_win cannot be negative.")
        if not isinstance(self.rotation_mode, RotationMode):
            object.__setattr__(self, "rotation_mode", RotationMode(self.rotation_mode))

    @property
    def duration_seconds(self) -> int | None:
        if self.match_duration_minutes is None:
            return None
        return self.match_duration_minutes * 60


@dataclass(slots=True)
class StartRoundPayload:
    left_team: str
    right_team: str
    left_players: list[str] = field(default_factory=list)
    right_players: list[str] = field(default_factory=list)

    kind: ClassVar[EventType] = EventType.START_ROUND


@dataclass(slots=True)
class FinishRoundPayload:
    winner_team_id: str | None = None
    is_draw: bool = False

    kind: ClassVar[EventType] = EventType.FINISH_ROUND


@dataclass(slots=True)
class GoalPayload:
    team: str
    scorer: str | None = None
    assist: str | None = None
    is_own_goal: bool = False

    kind: ClassVar[EventType] = EventType.GOAL


@dataclass(slots=True)
class SubstitutionPayload:
    side: str
    player_out: str
    player_in: str

    kind: ClassVar[EventType] = EventType.SUBSTITUTION


@dataclass(slots=True)
class TimerStartPayload:
    kind: ClassVar[EventType] = EventType.TIMER_START


@dataclass(slots=True)
class TimerStopPayload:
    kind: ClassVar[EventType] = EventType.TIMER_STOP


EventPayload = Union[
    StartRoundPayload,
    FinishRoundPayload,
    GoalPayload,
    SubstitutionPayload,
    TimerStartPayload,
    TimerStopPayload,
]

PAYLOAD_TYPES: dict[EventType, type] = {
    payload_type.kind: payload_type
    for payload_type in (
        StartRoundPayload,
        FinishRoundPayload,
        GoalPayload,
        SubstitutionPayload,
        TimerStartPayload,
        TimerStopPayload,
    )
}


@dataclass(slots=True)
class EventLogEntry:
    timestamp: datetime
    round: int
    payload: EventPayload

    @property
    def kind(self) -> EventType:
        return self.payload.kind


@dataclass(slots=True)
class Session:
    config: SessionConfig
    session_name: str = ""
    session_id: str = field(default_factory=new_id)
    date: datetime | None = None
    created_at: datetime | None = None
    teams: list[Team] = field(default_factory=list)
    games: list[Game] = field(default_factory=list)
    player_pool: list[Player] = field(default_factory=list)
    rotation_queue: list[str] | None = None
    status: SessionStatus = SessionStatus.ACTIVE
    event_log: list[EventLogEntry] = field(default_factory=list)

    @property
    def current_game(self) -> Game | None:
        if not self.games:
            return None
        return self.games[-1]

    def finished_games(self) -> list[Game]:
        return sorted((g for g in self.games if g.is_finished), key=lambda g: g.game_number)

    def get_team(self, team_id: str | None) -> Team | None:
        for team in self.teams:
            if team.team_id == team_id:
                return team
        return None

    def get_player(self, player_id: str | None) -> Player | None:
        for player in self.player_pool:
            if player.player_id == player_id:
                return player
        return None

    def team_for_player(self, player_id: str) -> Team | None:
        for team in self.teams:
            if player_id in team.player_ids:
                return team
        return None

    def nickname(self, player_id: str | None) -> str:
        player = self.get_player(player_id)
        return player.nickname if player is not None else ""


@dataclass(slots=True)
class NewsItem:
    news_id: str
    player_id: str
    player_name: str
    kind: str
    timestamp: datetime
    priority: int = 0
    is_hot: bool = False
    params: dict[str, object] = field(default_factory=dict)
    rating: int | None = None
    tier: PlayerTier | None = None


@dataclass(slots=True)
class PlayerStats:
    player: Player
    team: Team
    goals: int = 0
    assists: int = 0
    own_goals: int = 0
    games_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    clean_sheets: int = 0
    clean_sheet_wins: int = 0

    @property
    def win_rate(self) -> float:
        if self.games_played <= 0:
            return 0.0
        return self.wins / self.games_played

    @property
    def win_rate_pct(self) -> int:
        return int(self.win_rate * 100 + 0.5)


@dataclass(slots=True)
class TeamStats:
    team: Team
    games_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    clean_sheets: int = 0

    @property
    def points(self) -> int:
        return self.wins * 3 + self.draws

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    def register_game(self, goals_for: int, goals_against: int, won: bool, drew: bool) -> None:
        self.games_played += 1
        self.goals_for += goals_for
        self.goals_against += goals_against
        if goals_against == 0:
            self.clean_sheets += 1
        if won:
            self.wins += 1
        elif drew:
            self.draws += 1
        else:
            self.losses += 1
