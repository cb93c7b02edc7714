from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, FrozenSet, List, Literal, Optional, Tuple

Clock = Callable[[], datetime]

InsightType = Literal["success", "warning", "info"]

DEFAULT_DIFFICULTY = 3.0


def utc_now() -> datetime:
    """Default clock used by the ledger and strategy engine."""
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, unlike the builtin banker's rounding."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


@dataclass(frozen=True)
class AttemptRecord:
    """Single practice attempt on a topic. Never mutated once recorded."""

    timestamp: datetime
    time_spent: float  # seconds
    success: bool
    difficulty: float  # 1-5, difficulty in effect when the attempt happened


@dataclass(frozen=True)
class LearningMetrics:
    """Metrics derived from a topic's attempt history."""

    time_spent: float = 0.0
    attempts: int = 0
    success_rate: float = 0.0
    difficulty: float = DEFAULT_DIFFICULTY
    consistency_score: float = 0.0
    retention_score: float = 0.0
    last_attempt: Optional[datetime] = None
    streak_days: int = 0
    average_session_time: float = 0.0

    @property
    def display_difficulty(self) -> int:
        return round_half_up(self.difficulty)


@dataclass(frozen=True)
class LearningPattern:
    """Performance ledger for one topic: bounded history (newest first) plus derived metrics."""

    topic_id: str
    metrics: LearningMetrics = field(default_factory=LearningMetrics)
    history: Tuple[AttemptRecord, ...] = ()
    related_topics: FrozenSet[str] = frozenset()
    prerequisites: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class AlternativeStrategies:
    """Bracketing values to fall back on when the primary recommendation is not working."""

    time_per_session: Tuple[int, int]
    difficulty: Tuple[int, int]


@dataclass(frozen=True)
class AdaptiveStrategy:
    """Recommended practice parameters for a topic."""

    topic_id: str
    recommended_time_per_session: int  # seconds
    recommended_attempts: int
    suggested_difficulty: int
    next_review_date: datetime
    confidence_score: float
    alternative_strategies: AlternativeStrategies
    prerequisites_completed: bool


@dataclass(frozen=True)
class LearningInsight:
    """Human-readable observation about a learner's progress on a topic."""

    type: InsightType
    message: str
    confidence: float
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class Recommendations:
    """Current strategy and insights for a topic; empty when data is insufficient."""

    strategy: Optional[AdaptiveStrategy] = None
    insights: List[LearningInsight] = field(default_factory=list)


@dataclass(frozen=True)
class TopicAnalytics:
    """Full diagnostic view of a topic, for dashboards and debugging."""

    pattern: LearningPattern
    strategy: AdaptiveStrategy
    insights: List[LearningInsight]
    missing_prerequisites: List[str]
