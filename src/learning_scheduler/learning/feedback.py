from __future__ import annotations

from typing import List

from learning_scheduler.learning.models import AdaptiveStrategy, LearningInsight, LearningPattern

LONG_SESSION_FACTOR = 1.5


def generate_insights(pattern: LearningPattern, strategy: AdaptiveStrategy) -> List[LearningInsight]:
    """Evaluate every insight rule independently against the topic's metrics and strategy."""
    metrics = pattern.metrics
    insights: List[LearningInsight] = []

    if metrics.success_rate > 0.8 and metrics.consistency_score > 0.7:
        insights.append(
            LearningInsight(
                type="success",
                message="Excellent progress! Consider increasing difficulty.",
                confidence=0.9,
                recommendation="Try more challenging exercises",
            )
        )

    if metrics.average_session_time > strategy.recommended_time_per_session * LONG_SESSION_FACTOR:
        insights.append(
            LearningInsight(
                type="warning",
                message="Sessions might be too long for optimal learning.",
                confidence=0.8,
                recommendation="Try shorter, more focused sessions",
            )
        )

    if metrics.consistency_score < 0.3:
        insights.append(
            LearningInsight(
                type="info",
                message="More regular practice would improve retention.",
                confidence=0.85,
                recommendation="Aim for daily short practice sessions",
            )
        )

    return insights
