"""Static engine tuning constants."""

# Tier bands, highest first: (minimum rating, tier value).
TIER_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (87, "legend"),
    (79, "elite"),
    (73, "strong"),
    (65, "average"),
)
TIER_RANKS: dict[str, int] = {
    "legend": 5,
    "elite": 4,
    "strong": 3,
    "average": 2,
    "developing": 1,
}

DEFAULT_START_RATING = 68
RATING_MIN = 40
RATING_MAX = 99

# Experience-scaled K-factor: (sessions played below, factor). Last entry is the veteran fallback.
K_FACTORS: tuple[tuple[int | None, float], ...] = (
    (3, 0.25),
    (15, 0.10),
    (30, 0.07),
    (None, 0.04),
)
NEW_PLAYER_SESSIONS = 3
NEW_PLAYER_DELTA_CAP = 3.0
VETERAN_DELTA_CAP = 2.0

BASE_MATCH_RATING = 6.0
TEAM_POINTS: dict[str, float] = {
    "draw": 0.4,
    "win": 1.0,
    "dominant_win": 1.3,
    "comeback_win": 1.5,
    "loss": -0.5,
    "heavy_loss": -0.8,
}
DOMINANT_GOAL_DIFF = 2
CLEAN_SHEET_POINTS = 1.0
DEFENSIVE_CLEAN_SHEET_POINTS = 2.0
GOAL_WEIGHT = 1.0
ATTACKER_GOAL_WEIGHT = 1.2
ASSIST_WEIGHT = 0.7
PLAYMAKER_ASSIST_WEIGHT = 1.0
OWN_GOAL_WEIGHT = -1.5

DEFENSIVE_SKILLS = frozenset({"goalkeeper", "defender"})
ATTACKING_SKILLS = frozenset({"finisher", "power_shot"})
PLAYMAKING_SKILLS = frozenset({"playmaker"})

HIGH_WIN_RATE = 0.75
LOW_WIN_RATE = 0.20
WIN_RATE_NUDGE = 0.3
NO_CONTRIBUTION_PENALTY = 0.5

BADGE_BONUSES: dict[str, float] = {
    "mvp": 0.4,
    "dynasty": 0.4,
    "goleador": 0.3,
    "assistant": 0.3,
    "fortress": 0.3,
    "session_top_scorer": 0.3,
    "session_top_assistant": 0.3,
    "win_leader": 0.3,
    "ten_influence": 0.25,
    "iron_streak": 0.25,
    "undefeated": 0.25,
    "decisive_factor": 0.2,
    "comeback_kings": 0.2,
    "sniper": 0.2,
    "unsung_hero": 0.2,
    "key_player": 0.2,
    "mastery_balance": 0.2,
    "team_conductor": 0.2,
    "first_blood": 0.1,
    "perfect_finish": 0.1,
    "duplet": 0.1,
    "maestro": 0.1,
    "stable_striker": 0.1,
    "passing_streak": 0.1,
    "dominant_participant": 0.1,
    "victory_finisher": 0.1,
}

FORM_HOT_DELTA = 0.5
FORM_COLD_DELTA = -0.5

# Session badge thresholds.
GOLEADOR_GOALS = 7
ASSISTANT_ASSISTS = 6
MVP_MIN = 5
TEN_INFLUENCE_TOTAL = 10
MASTERY_BALANCE_MIN = 3
DOMINANT_PARTICIPANT_GAMES = 10
UNDEFEATED_GAMES = 6
DUPLET_GAMES = 2
MAESTRO_GAMES = 2
FORTRESS_GAMES = 3
SNIPER_GAMES = 3
FIRST_BLOOD_GAMES = 5
COMEBACK_GAMES = 3
CONDUCTOR_GAMES = 3
PERFECT_FINISH_GAMES = 3
PERFECT_FINISH_TARGET = 2
STREAK_GAMES = 3
IRON_STREAK_WINS = 5
DYNASTY_WINS = 9
TEAM_CONTEXT_MIN_WINS = 3

# Career badge milestones, crossed during a session.
CLUB_LEGEND_GOALS: tuple[int, ...] = (40, 60, 80)
CLUB_LEGEND_ASSISTS: tuple[int, ...] = (40, 60, 80)
VETERAN_SESSIONS: tuple[int, ...] = (20, 50)
CAREER_WINS = 100
CAREER_INFLUENCE = 150
SUPER_VETERAN_SESSIONS = 100

# Inactivity.
MISSED_SESSIONS_PER_PENALTY = 5
INACTIVITY_PENALTY = 1

SESSION_HISTORY_LIMIT = 5
HISTORY_DATA_LIMIT = 12

# News feed.
NEWS_TTL_SECONDS = 24 * 60 * 60
NEWS_MAX_PER_RUN = 10
NEWS_FEED_LIMIT = 50
NEWS_MIN_TIER_RANK = 3
RATING_SURGE_DELTA = 2
NEWS_MILESTONES: dict[str, tuple[int, ...]] = {
    "goals": (50, 100, 150, 200, 300, 400, 500),
    "assists": (50, 100, 150, 200, 300),
    "wins": (50, 100, 200),
    "sessions": (50, 100),
}
NEWS_BASE_PRIORITY: dict[str, int] = {
    "tier_up": 60,
    "milestone": 50,
    "badge": 40,
    "rating_surge": 30,
    "hot_streak": 10,
}
HOT_BADGES = frozenset({"dynasty", "club_legend_goals", "club_legend_assists", "comeback_kings"})

# Live clock announcements keyed by seconds remaining.
ANNOUNCEMENT_MILESTONES: dict[int, str] = {
    180: "three_minutes",
    60: "one_minute",
    30: "thirty_seconds",
    5: "five",
    4: "four",
    3: "three",
    2: "two",
    1: "one",
    0: "finish_match",
}

AUTO_ROTATE_STREAK = 3
DRAW_ROTATE_STREAK = 2
BENCH_FAIRNESS_GAP = 2

TEAM_COLORS: tuple[str, ...] = ("#0074D9", "#D00000", "#FF9500", "#2ECC40")
