from .models import (
    AdaptiveStrategy,
    AlternativeStrategies,
    AttemptRecord,
    LearningInsight,
    LearningMetrics,
    LearningPattern,
    Recommendations,
    TopicAnalytics,
)
from .progress import PerformanceLedger
from .strategy import StrategyEngine

__all__ = [
    "AdaptiveStrategy",
    "AlternativeStrategies",
    "AttemptRecord",
    "LearningInsight",
    "LearningMetrics",
    "LearningPattern",
    "PerformanceLedger",
    "Recommendations",
    "StrategyEngine",
    "TopicAnalytics",
]
