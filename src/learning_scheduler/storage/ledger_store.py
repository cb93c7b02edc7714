from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from learning_scheduler.learning.models import (
    AdaptiveStrategy,
    AlternativeStrategies,
    AttemptRecord,
    LearningMetrics,
    LearningPattern,
)

logger = logging.getLogger(__name__)


class LedgerStore:
    """
    In-memory home for every topic's learning pattern and adaptive strategy.

    Values are immutable; writers replace whole entries, so a reader always sees
    either the previous or the next pattern, never a half-updated one. One store
    lives for the process (or learner session) and is handed to the ledger and
    strategy engine at construction time.
    """

    def __init__(
        self,
        patterns: Optional[Dict[str, LearningPattern]] = None,
        strategies: Optional[Dict[str, AdaptiveStrategy]] = None,
    ):
        self.patterns: Dict[str, LearningPattern] = dict(patterns or {})
        self.strategies: Dict[str, AdaptiveStrategy] = dict(strategies or {})

    def get_pattern(self, topic_id: str) -> Optional[LearningPattern]:
        return self.patterns.get(topic_id)

    def put_pattern(self, pattern: LearningPattern) -> None:
        self.patterns[pattern.topic_id] = pattern

    def get_strategy(self, topic_id: str) -> Optional[AdaptiveStrategy]:
        return self.strategies.get(topic_id)

    def put_strategy(self, strategy: AdaptiveStrategy) -> None:
        self.strategies[strategy.topic_id] = strategy

    def all_patterns(self) -> List[LearningPattern]:
        return list(self.patterns.values())


def _encode_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _decode_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def pattern_to_dict(pattern: LearningPattern) -> Dict[str, Any]:
    metrics = pattern.metrics
    return {
        "topic_id": pattern.topic_id,
        "metrics": {
            "time_spent": metrics.time_spent,
            "attempts": metrics.attempts,
            "success_rate": metrics.success_rate,
            "difficulty": metrics.difficulty,
            "consistency_score": metrics.consistency_score,
            "retention_score": metrics.retention_score,
            "last_attempt": _encode_datetime(metrics.last_attempt),
            "streak_days": metrics.streak_days,
            "average_session_time": metrics.average_session_time,
        },
        "history": [
            {
                "timestamp": _encode_datetime(entry.timestamp),
                "time_spent": entry.time_spent,
                "success": entry.success,
                "difficulty": entry.difficulty,
            }
            for entry in pattern.history
        ],
        "related_topics": sorted(pattern.related_topics),
        "prerequisites": sorted(pattern.prerequisites),
    }


def pattern_from_dict(data: Dict[str, Any]) -> LearningPattern:
    raw_metrics = dict(data.get("metrics", {}))
    raw_metrics["last_attempt"] = _decode_datetime(raw_metrics.get("last_attempt"))
    history = tuple(
        AttemptRecord(
            timestamp=_decode_datetime(entry["timestamp"]),
            time_spent=entry["time_spent"],
            success=entry["success"],
            difficulty=entry["difficulty"],
        )
        for entry in data.get("history", [])
    )
    return LearningPattern(
        topic_id=data["topic_id"],
        metrics=LearningMetrics(**raw_metrics),
        history=history,
        related_topics=frozenset(data.get("related_topics", [])),
        prerequisites=frozenset(data.get("prerequisites", [])),
    )


def strategy_to_dict(strategy: AdaptiveStrategy) -> Dict[str, Any]:
    return {
        "topic_id": strategy.topic_id,
        "recommended_time_per_session": strategy.recommended_time_per_session,
        "recommended_attempts": strategy.recommended_attempts,
        "suggested_difficulty": strategy.suggested_difficulty,
        "next_review_date": _encode_datetime(strategy.next_review_date),
        "confidence_score": strategy.confidence_score,
        "alternative_strategies": {
            "time_per_session": list(strategy.alternative_strategies.time_per_session),
            "difficulty": list(strategy.alternative_strategies.difficulty),
        },
        "prerequisites_completed": strategy.prerequisites_completed,
    }


def strategy_from_dict(data: Dict[str, Any]) -> AdaptiveStrategy:
    alternatives = data["alternative_strategies"]
    return AdaptiveStrategy(
        topic_id=data["topic_id"],
        recommended_time_per_session=data["recommended_time_per_session"],
        recommended_attempts=data["recommended_attempts"],
        suggested_difficulty=data["suggested_difficulty"],
        next_review_date=_decode_datetime(data["next_review_date"]),
        confidence_score=data["confidence_score"],
        alternative_strategies=AlternativeStrategies(
            time_per_session=tuple(alternatives["time_per_session"]),
            difficulty=tuple(alternatives["difficulty"]),
        ),
        prerequisites_completed=data["prerequisites_completed"],
    )


class LedgerSnapshotStore:
    """
    Persist whole ledger stores as one JSON file per learner.

    Snapshots are written as `{learner_id}.json` under `base_dir`:
    ```json
    {
      "learner_id": "student123",
      "patterns": [{"topic_id": "algebra", "metrics": {...}, "history": [...]}],
      "strategies": [{"topic_id": "algebra", "recommended_attempts": 3, ...}]
    }
    ```
    Loading an unknown learner yields an empty store.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def snapshot_path(self, learner_id: str) -> Path:
        """Return the JSON file path for a given learner ID."""
        return self.base_dir / f"{learner_id}.json"

    def load(self, learner_id: str) -> LedgerStore:
        path = self.snapshot_path(learner_id)
        if not path.exists():
            return LedgerStore()

        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)

        patterns = [pattern_from_dict(item) for item in data.get("patterns", [])]
        strategies = [strategy_from_dict(item) for item in data.get("strategies", [])]
        logger.debug(f"Loaded {len(patterns)} patterns for learner {learner_id}")
        return LedgerStore(
            patterns={pattern.topic_id: pattern for pattern in patterns},
            strategies={strategy.topic_id: strategy for strategy in strategies},
        )

    def save(self, learner_id: str, store: LedgerStore) -> None:
        """Serialize the store back to disk, replacing any previous snapshot."""
        serialized = {
            "learner_id": learner_id,
            "patterns": [pattern_to_dict(pattern) for pattern in store.patterns.values()],
            "strategies": [strategy_to_dict(strategy) for strategy in store.strategies.values()],
        }
        path = self.snapshot_path(learner_id)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(serialized, handle, indent=2)
