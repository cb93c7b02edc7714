from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from learning_scheduler.config import Settings, load_settings
from learning_scheduler.learning import (
    LearningPattern,
    PerformanceLedger,
    Recommendations,
    StrategyEngine,
    TopicAnalytics,
)
from learning_scheduler.learning.models import Clock, utc_now
from learning_scheduler.roadmap import (
    RoadmapSequencer,
    RoadmapTopic,
    SequencingResult,
    TopicPerformance,
    performances_from_patterns,
)
from learning_scheduler.storage import LedgerSnapshotStore, LedgerStore
from learning_scheduler.utils.logging import configure_from_settings

logger = logging.getLogger(__name__)


class SchedulerSystem:
    """
    Facade wiring the performance ledger, strategy engine, and roadmap sequencer.

    Recording an attempt updates the topic's ledger and then synchronously
    re-evolves that topic's strategy, so a caller reading recommendations right
    after `record_attempt` returns always sees consistent data. Roadmap
    sequencing reads a snapshot of the current ledgers and runs independently.

    Attributes
    ----------
    settings : Settings
        Validated configuration (scheduler constants, GA parameters, paths, logging).
    store : LedgerStore
        In-memory patterns and strategies for this learner/session.
    ledger : PerformanceLedger
        Records attempts and derives metrics.
    engine : StrategyEngine
        Derives strategies and insights from ledger patterns.
    sequencer : RoadmapSequencer
        Genetic-algorithm topic ordering.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: LedgerStore | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
        configure_logs: bool = True,
    ):
        self.settings = settings or Settings()
        if configure_logs:
            configure_from_settings(self.settings.logging)

        self.rng = rng or random.Random()
        self.store = store if store is not None else LedgerStore()
        self.ledger = PerformanceLedger(self.store, self.settings.scheduler, clock=clock)
        self.engine = StrategyEngine(self.store, self.settings.scheduler, clock=clock, rng=self.rng)
        self.sequencer = RoadmapSequencer(self.settings.sequencer, rng=self.rng)

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        store: LedgerStore | None = None,
        rng: random.Random | None = None,
    ) -> "SchedulerSystem":
        """Build a system from YAML configuration (see `load_settings`)."""
        settings = load_settings(config_path)
        return cls(settings, store=store, rng=rng)

    def snapshot_store(self) -> LedgerSnapshotStore:
        return LedgerSnapshotStore(self.settings.paths.ledger_dir)

    def record_attempt(
        self,
        topic_id: str,
        time_spent: float,
        success: bool,
        related_topics: Iterable[str] = (),
        prerequisites: Iterable[str] = (),
    ) -> LearningPattern:
        """Record an attempt, then re-evolve the topic's strategy before returning."""
        pattern = self.ledger.record_attempt(
            topic_id,
            time_spent,
            success,
            related_topics=related_topics,
            prerequisites=prerequisites,
        )
        self.engine.evolve_strategy(topic_id)
        return pattern

    def get_recommendations(self, topic_id: str) -> Recommendations:
        return self.engine.get_recommendations(topic_id)

    def get_analytics(self, topic_id: str) -> Optional[TopicAnalytics]:
        return self.engine.get_analytics(topic_id)

    def missing_prerequisites(self, topic_id: str) -> List[str]:
        return self.engine.missing_prerequisites(topic_id)

    def all_patterns(self) -> List[LearningPattern]:
        return self.ledger.all_patterns()

    def topic_performances(self) -> List[TopicPerformance]:
        return performances_from_patterns(self.ledger.all_patterns())

    def sequence_roadmap(
        self,
        topics: Sequence[RoadmapTopic],
        performances: Sequence[TopicPerformance] | None = None,
        deadline_seconds: Optional[float] = None,
    ) -> SequencingResult:
        """Order roadmap topics using the current ledgers unless performances are supplied."""
        if performances is None:
            performances = self.topic_performances()
        return self.sequencer.evolve(topics, performances, deadline_seconds=deadline_seconds)
