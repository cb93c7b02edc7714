from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, List, Optional, Tuple

from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.exceptions import ComputationFailure
from learning_scheduler.learning.feedback import generate_insights
from learning_scheduler.learning.metrics import (
    clamp,
    clamp_difficulty,
    days_between,
    volatility,
)
from learning_scheduler.learning.models import (
    AdaptiveStrategy,
    AlternativeStrategies,
    Clock,
    LearningPattern,
    Recommendations,
    TopicAnalytics,
    round_half_up,
    utc_now,
)

if TYPE_CHECKING:
    from learning_scheduler.storage.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

MAX_RECOMMENDED_ATTEMPTS = 5
# 2**64 days already exceeds any review window; larger exponents overflow floats
MAX_INTERVAL_DOUBLINGS = 64


class StrategyEngine:
    """
    Turn a topic's performance ledger into an adaptive practice strategy.

    A strategy is only derived once a topic has at least `min_data_points`
    attempts; below that the topic simply has no strategy, which callers treat
    as a normal state. Evolution failures are logged and swallowed so the most
    recent valid strategy (or none) stays in place.

    Adaptation Mechanisms
    ---------------------
    1. **Session time**: mean duration of successful attempts, with +/-25% alternatives.
    2. **Attempts**: fewer attempts as the weighted success rate rises.
    3. **Difficulty**: metric difficulty nudged by retention and consistency.
    4. **Review date**: exponential spaced-repetition interval scaled by
       performance and consistency, jittered and clamped to 1-30 days.
    5. **Confidence**: data sufficiency, consistency, stability, and recency.

    The random source drives only the review-date jitter and is injectable so
    tests can pin it with a seed.
    """

    def __init__(
        self,
        store: "LedgerStore",
        config: SchedulerConfig | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.config = config or SchedulerConfig()
        self.clock = clock
        self.rng = rng or random.Random()

    def evolve_strategy(self, topic_id: str) -> Optional[AdaptiveStrategy]:
        """
        Recompute and store the strategy for a topic.

        Returns the newly stored strategy, or whatever strategy was already in
        place when there is not enough data or the computation fails.
        """
        pattern = self.store.get_pattern(topic_id)
        if pattern is None or len(pattern.history) < self.config.min_data_points:
            return self.store.get_strategy(topic_id)

        try:
            strategy = self._build_strategy(pattern)
        except Exception as exc:  # noqa: BLE001
            failure = ComputationFailure(topic_id, exc)
            logger.exception(f"{failure}; keeping previous strategy")
            return self.store.get_strategy(topic_id)

        self.store.put_strategy(strategy)
        logger.debug(
            f"Evolved strategy for {topic_id}: difficulty={strategy.suggested_difficulty} "
            f"attempts={strategy.recommended_attempts} confidence={strategy.confidence_score:.2f}"
        )
        return strategy

    def _build_strategy(self, pattern: LearningPattern) -> AdaptiveStrategy:
        now = self.clock()
        time_optimal, time_alternatives = self.optimal_time(pattern)
        attempts = self.optimal_attempts(pattern)
        difficulty_optimal, difficulty_alternatives = self.optimal_difficulty(pattern)
        next_review = self.next_review_date(pattern, now)
        confidence = self.confidence_score(pattern, now)
        prerequisites_completed = not self.missing_prerequisites(pattern.topic_id)

        return AdaptiveStrategy(
            topic_id=pattern.topic_id,
            recommended_time_per_session=time_optimal,
            recommended_attempts=attempts,
            suggested_difficulty=difficulty_optimal,
            next_review_date=next_review,
            confidence_score=confidence,
            alternative_strategies=AlternativeStrategies(
                time_per_session=time_alternatives,
                difficulty=difficulty_alternatives,
            ),
            prerequisites_completed=prerequisites_completed,
        )

    def optimal_time(self, pattern: LearningPattern) -> Tuple[int, Tuple[int, int]]:
        """Average duration of successful sessions, defaulting to ten minutes without any."""
        times = [entry.time_spent for entry in pattern.history if entry.success]
        if not times:
            default = self.config.default_session_seconds
            return default, (round_half_up(default * 0.5), round_half_up(default * 1.5))

        optimal = round_half_up(sum(times) / len(times))
        return optimal, (round_half_up(optimal * 0.75), round_half_up(optimal * 1.25))

    @staticmethod
    def optimal_attempts(pattern: LearningPattern) -> int:
        attempts = math.ceil(5 - pattern.metrics.success_rate * 3)
        return max(1, min(MAX_RECOMMENDED_ATTEMPTS, attempts))

    @staticmethod
    def optimal_difficulty(pattern: LearningPattern) -> Tuple[int, Tuple[int, int]]:
        metrics = pattern.metrics
        optimal = clamp_difficulty(metrics.difficulty)
        if metrics.retention_score > 0.8 and metrics.consistency_score > 0.7:
            optimal = clamp_difficulty(optimal + 0.5)
        elif metrics.retention_score < 0.4 or metrics.consistency_score < 0.3:
            optimal = clamp_difficulty(optimal - 0.5)

        lower = int(clamp_difficulty(round_half_up(optimal - 1)))
        upper = int(clamp_difficulty(round_half_up(optimal + 1)))
        return round_half_up(optimal), (lower, upper)

    def review_interval_days(self, pattern: LearningPattern) -> float:
        """Spaced-repetition interval: doubles per repetition, scaled by mastery and consistency."""
        metrics = pattern.metrics
        repetitions = len(pattern.history)
        base_interval = 2.0 ** min(repetitions - 1, MAX_INTERVAL_DOUBLINGS)
        performance_factor = (metrics.success_rate + metrics.retention_score) / 2
        interval = base_interval * performance_factor
        interval *= 1 + metrics.consistency_score * 0.5

        jitter = self.config.review_jitter
        interval *= 1 + self.rng.uniform(-jitter, jitter)
        return clamp(interval, self.config.min_review_days, self.config.max_review_days)

    def next_review_date(self, pattern: LearningPattern, now: datetime | None = None) -> datetime:
        now = now or self.clock()
        return now + timedelta(days=round_half_up(self.review_interval_days(pattern)))

    def confidence_score(self, pattern: LearningPattern, now: datetime | None = None) -> float:
        """Mean of data sufficiency, consistency, outcome stability, and recency."""
        now = now or self.clock()
        metrics = pattern.metrics
        data_points = min(len(pattern.history) / self.config.min_data_points, 1.0)
        stability = 1 - volatility(pattern.history)
        if metrics.last_attempt is None:
            recency = 0.0
        else:
            recency = math.exp(-0.1 * max(0.0, days_between(now, metrics.last_attempt)))
        return (data_points + metrics.consistency_score + stability + recency) / 4

    def missing_prerequisites(self, topic_id: str) -> List[str]:
        """Prerequisites without a pattern or whose success rate is below the mastery threshold."""
        pattern = self.store.get_pattern(topic_id)
        if pattern is None:
            return []
        threshold = self.config.prerequisite_mastery_threshold
        missing = []
        for prerequisite_id in sorted(pattern.prerequisites):
            prerequisite = self.store.get_pattern(prerequisite_id)
            if prerequisite is None or prerequisite.metrics.success_rate < threshold:
                missing.append(prerequisite_id)
        return missing

    def get_strategy(self, topic_id: str) -> Optional[AdaptiveStrategy]:
        return self.store.get_strategy(topic_id)

    def get_recommendations(self, topic_id: str) -> Recommendations:
        """Return the topic's current strategy with fresh insights, or an empty result."""
        pattern = self.store.get_pattern(topic_id)
        strategy = self.store.get_strategy(topic_id)
        if pattern is None or strategy is None:
            return Recommendations()
        return Recommendations(strategy=strategy, insights=generate_insights(pattern, strategy))

    def get_analytics(self, topic_id: str) -> Optional[TopicAnalytics]:
        pattern = self.store.get_pattern(topic_id)
        strategy = self.store.get_strategy(topic_id)
        if pattern is None or strategy is None:
            return None
        return TopicAnalytics(
            pattern=pattern,
            strategy=strategy,
            insights=generate_insights(pattern, strategy),
            missing_prerequisites=self.missing_prerequisites(topic_id),
        )
