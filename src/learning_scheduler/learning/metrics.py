"""
Pure metric derivations over a topic's attempt history.

Every function here is a deterministic function of its arguments: the same
history evaluated at the same instant always yields identical floats. History
is ordered newest first, so position 0 is the most recent attempt.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.learning.models import DEFAULT_DIFFICULTY, AttemptRecord, LearningMetrics

SECONDS_PER_DAY = 24 * 60 * 60
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 5.0
DIFFICULTY_SMOOTHING = 0.7
RECENT_WINDOW = 5


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def clamp_difficulty(value: float) -> float:
    return clamp(value, MIN_DIFFICULTY, MAX_DIFFICULTY)


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation from `a` toward `b`, with `t` clamped to [0, 1]."""
    return a + (b - a) * clamp(t, 0.0, 1.0)


def days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def recency_weight(position: int, decay_rate: float = 0.1) -> float:
    return math.exp(-decay_rate * position)


def weighted_success_rate(history: Sequence[AttemptRecord], decay_rate: float = 0.1) -> float:
    """Recency-biased success rate: position i contributes weight e^(-decay*i)."""
    if not history:
        return 0.0
    weighted_successes = 0.0
    weighted_total = 0.0
    for index, entry in enumerate(history):
        weight = recency_weight(index, decay_rate)
        weighted_total += weight
        if entry.success:
            weighted_successes += weight
    return weighted_successes / weighted_total


def day_streak(history: Sequence[AttemptRecord], now: datetime, gap_days: float = 2.0) -> int:
    """
    Count consecutive attempts separated by at most `gap_days`.

    Returns 0 when the newest attempt is older than `gap_days`; otherwise the
    streak starts at 1 and walks back until the first larger gap.
    """
    if not history:
        return 0
    if days_between(now, history[0].timestamp) > gap_days:
        return 0

    streak = 1
    for newer, older in zip(history, history[1:]):
        if days_between(newer.timestamp, older.timestamp) <= gap_days:
            streak += 1
        else:
            break
    return streak


def consistency_score(streak_days: int) -> float:
    return min(streak_days / 7, 1.0)


def retention_score(
    history: Sequence[AttemptRecord],
    now: datetime,
    decay_rate: float = 0.1,
    recency_decay_rate: float = 0.1,
) -> float:
    """Mean over history of successful attempts' forgetting decay times their recency weight."""
    if not history:
        return 0.0
    score = 0.0
    for index, entry in enumerate(history):
        if not entry.success:
            continue
        decay = math.exp(-days_between(now, entry.timestamp) * decay_rate)
        score += decay * recency_weight(index, recency_decay_rate)
    return score / len(history)


def volatility(history: Sequence[AttemptRecord]) -> float:
    """Fraction of adjacent attempt pairs whose outcome flipped."""
    if len(history) < 2:
        return 0.0
    changes = sum(1 for newer, older in zip(history, history[1:]) if newer.success != older.success)
    return changes / (len(history) - 1)


def recent_success_fraction(history: Sequence[AttemptRecord], window: int = RECENT_WINDOW) -> float:
    recent = history[:window]
    if not recent:
        return 0.0
    return sum(1 for entry in recent if entry.success) / len(recent)


def derive_difficulty(
    success_rate: float,
    history: Sequence[AttemptRecord],
    min_data_points: int = 3,
) -> float:
    """
    Adapt difficulty from overall success, the last five outcomes, and volatility.

    The target is pushed to 4 for sustained, stable success and to 2 for weak
    results, then damped 70% toward the difficulty the newest attempt was made at.
    """
    if len(history) < min_data_points:
        return DEFAULT_DIFFICULTY

    recent_success = recent_success_fraction(history)
    flips = volatility(history)

    target = DEFAULT_DIFFICULTY
    if success_rate > 0.8 and recent_success > 0.8 and flips < 0.3:
        target = clamp_difficulty(target + 1)
    elif success_rate < 0.4 or (recent_success < 0.3 and flips < 0.3):
        target = clamp_difficulty(target - 1)

    previous = clamp_difficulty(history[0].difficulty)
    return clamp_difficulty(lerp(target, previous, DIFFICULTY_SMOOTHING))


def compute_metrics(
    history: Sequence[AttemptRecord],
    now: datetime,
    total_time_spent: float,
    config: SchedulerConfig | None = None,
) -> LearningMetrics:
    """Assemble a fresh `LearningMetrics` value from history; never mutates an existing one."""
    config = config or SchedulerConfig()
    if not history:
        return LearningMetrics(time_spent=total_time_spent)

    attempts = len(history)
    success_rate = weighted_success_rate(history, config.recency_decay_rate)
    streak = day_streak(history, now, config.streak_gap_days)
    return LearningMetrics(
        time_spent=total_time_spent,
        attempts=attempts,
        success_rate=success_rate,
        difficulty=derive_difficulty(success_rate, history, config.min_data_points),
        consistency_score=consistency_score(streak),
        retention_score=retention_score(
            history, now, config.retention_decay_rate, config.recency_decay_rate
        ),
        last_attempt=history[0].timestamp,
        streak_days=streak,
        average_session_time=sum(entry.time_spent for entry in history) / attempts,
    )
