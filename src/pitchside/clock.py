"""Wall-clock abstraction and live game clock derivation.

Game time is never accumulated by ticking. Every observation recomputes it
from the stored pause total and the last resume timestamp, so the clock stays
correct after the host process is suspended.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol

from .config import ANNOUNCEMENT_MILESTONES
from .models import Game, GameStatus


class Clock(Protocol):
    def now(self) -> float:
        """Current time as epoch seconds."""
        ...


class SystemClock:
    def now(self) -> float:
        return time.time()


class ManualClock:
    """Deterministic clock for tests and replay tooling."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now

    def set(self, value: float) -> None:
        self._now = float(value)


def to_datetime(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def elapsed_seconds(game: Game, now: float) -> float:
    elapsed = game.elapsed_seconds_on_pause
    if game.status == GameStatus.ACTIVE and game.last_resume_time is not None:
        elapsed += max(0.0, now - game.last_resume_time)
    return elapsed


def remaining_seconds(game: Game, now: float) -> float | None:
    if game.duration_seconds is None:
        return None
    return max(0.0, game.duration_seconds - elapsed_seconds(game, now))


def display_seconds(game: Game, now: float) -> float:
    # Timed games count down, open-ended games count up.
    remaining = remaining_seconds(game, now)
    if remaining is None:
        return elapsed_seconds(game, now)
    return remaining


def due_milestones(game: Game, now: float) -> list[int]:
    """Milestone values reached at this observation and not yet announced.

    Only exact hits on the rounded countdown fire; a milestone skipped while
    the observer was away is not replayed later.
    """
    if game.status != GameStatus.ACTIVE:
        return []
    remaining = remaining_seconds(game, now)
    if remaining is None:
        return []
    second = int(remaining + 0.5)
    if second in ANNOUNCEMENT_MILESTONES and second not in game.announced_milestones:
        return [second]
    return []


def announcement_key(milestone: int) -> str:
    return ANNOUNCEMENT_MILESTONES[milestone]
