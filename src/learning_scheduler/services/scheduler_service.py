"""Service layer for scheduler operations - keeps transports away from ledger internals.

Holds one `SchedulerSystem` per learner, loaded lazily from the snapshot store
and written back after every recorded attempt. Writes for a learner are
serialized, so each topic ledger has a single writer at a time.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Dict, Iterable, List, Optional, Sequence

from learning_scheduler.config import Settings
from learning_scheduler.learning import LearningPattern, Recommendations
from learning_scheduler.roadmap import RoadmapTopic, SequencingResult
from learning_scheduler.storage import LedgerSnapshotStore
from learning_scheduler.system import SchedulerSystem

logger = logging.getLogger(__name__)


class SchedulerService:
    """Per-learner facade used by the REST API and other front ends."""

    def __init__(
        self,
        settings: Settings,
        snapshots: LedgerSnapshotStore | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings
        self.snapshots = snapshots or LedgerSnapshotStore(settings.paths.ledger_dir)
        self.rng = rng
        self._systems: Dict[str, SchedulerSystem] = {}
        self._learner_locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, learner_id: str) -> threading.Lock:
        with self._guard:
            return self._learner_locks.setdefault(learner_id, threading.Lock())

    def system_for(self, learner_id: str) -> SchedulerSystem:
        """Return the learner's system, restoring it from its snapshot on first use."""
        with self._guard:
            system = self._systems.get(learner_id)
            if system is None:
                system = SchedulerSystem(
                    self.settings,
                    store=self.snapshots.load(learner_id),
                    rng=self.rng,
                    configure_logs=False,
                )
                self._systems[learner_id] = system
                logger.info(f"Loaded scheduler state for learner {learner_id}")
            return system

    def record_attempt(
        self,
        learner_id: str,
        topic_id: str,
        time_spent: float,
        success: bool,
        related_topics: Iterable[str] = (),
        prerequisites: Iterable[str] = (),
    ) -> LearningPattern:
        system = self.system_for(learner_id)
        with self._lock_for(learner_id):
            pattern = system.record_attempt(
                topic_id,
                time_spent,
                success,
                related_topics=related_topics,
                prerequisites=prerequisites,
            )
            self.snapshots.save(learner_id, system.store)
        return pattern

    def get_recommendations(self, learner_id: str, topic_id: str) -> Recommendations:
        return self.system_for(learner_id).get_recommendations(topic_id)

    def missing_prerequisites(self, learner_id: str, topic_id: str) -> List[str]:
        return self.system_for(learner_id).missing_prerequisites(topic_id)

    def list_patterns(self, learner_id: str) -> List[LearningPattern]:
        return self.system_for(learner_id).all_patterns()

    def sequence_roadmap(
        self,
        learner_id: str,
        topics: Sequence[RoadmapTopic],
        deadline_seconds: Optional[float] = None,
    ) -> SequencingResult:
        return self.system_for(learner_id).sequence_roadmap(topics, deadline_seconds=deadline_seconds)
