from __future__ import annotations

import logging
import math
import threading
from collections import defaultdict
from dataclasses import replace
from typing import TYPE_CHECKING, DefaultDict, Iterable, List, Optional

from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.exceptions import InvalidInputError
from learning_scheduler.learning.metrics import compute_metrics
from learning_scheduler.learning.models import (
    AttemptRecord,
    Clock,
    LearningMetrics,
    LearningPattern,
    utc_now,
)

if TYPE_CHECKING:
    from learning_scheduler.storage.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class PerformanceLedger:
    """
    Record practice attempts per topic and keep their derived metrics current.

    Each topic owns an append-only history (newest first, bounded to
    `max_history_items`) plus the `LearningMetrics` computed from it. A topic's
    pattern is created lazily on its first attempt with default metrics
    (difficulty 3, every score 0).

    Updates never mutate a stored pattern: the new history and metrics are built
    into a fresh `LearningPattern` and swapped into the store, so concurrent
    readers observe either the previous or the next state. Writers to the same
    topic are serialized with a per-topic lock.

    Examples
    --------
    >>> ledger = PerformanceLedger(LedgerStore())
    >>> pattern = ledger.record_attempt("algebra", 540, success=True)
    >>> pattern.metrics.attempts
    1
    >>> ledger.record_attempt("algebra", -5, success=True)
    Traceback (most recent call last):
    ...
    InvalidInputError: time_spent must be a non-negative number of seconds
    """

    def __init__(
        self,
        store: "LedgerStore",
        config: SchedulerConfig | None = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.config = config or SchedulerConfig()
        self.clock = clock
        self._locks: DefaultDict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, topic_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[topic_id]

    @staticmethod
    def _validate(topic_id: str, time_spent: float) -> None:
        if not isinstance(topic_id, str) or not topic_id.strip():
            raise InvalidInputError("topic_id must be a non-empty string")
        if isinstance(time_spent, bool) or not isinstance(time_spent, (int, float)):
            raise InvalidInputError("time_spent must be a non-negative number of seconds")
        if not math.isfinite(time_spent) or time_spent < 0:
            raise InvalidInputError("time_spent must be a non-negative number of seconds")

    def record_attempt(
        self,
        topic_id: str,
        time_spent: float,
        success: bool,
        related_topics: Iterable[str] = (),
        prerequisites: Iterable[str] = (),
    ) -> LearningPattern:
        """
        Append an attempt to the topic's ledger and recompute its metrics.

        Parameters
        ----------
        topic_id : str
            Topic the attempt belongs to; must be non-empty.
        time_spent : float
            Seconds spent on the attempt; must be finite and >= 0.
        success : bool
            Outcome of the attempt.
        related_topics, prerequisites : Iterable[str]
            Topic IDs merged (set union) into the pattern's relationships.

        Returns
        -------
        LearningPattern
            The new pattern now held by the store.

        Raises
        ------
        InvalidInputError
            If the topic ID or time spent is malformed. The ledger is unchanged.
        """
        self._validate(topic_id, time_spent)
        related = frozenset(related_topics)
        required = frozenset(prerequisites)

        with self._lock_for(topic_id):
            existing = self.store.get_pattern(topic_id) or LearningPattern(topic_id=topic_id)
            now = self.clock()

            entry = AttemptRecord(
                timestamp=now,
                time_spent=float(time_spent),
                success=bool(success),
                difficulty=existing.metrics.difficulty,
            )
            history = ((entry,) + existing.history)[: self.config.max_history_items]
            metrics = compute_metrics(
                history,
                now,
                total_time_spent=existing.metrics.time_spent + float(time_spent),
                config=self.config,
            )

            updated = replace(
                existing,
                metrics=metrics,
                history=history,
                related_topics=existing.related_topics | related,
                prerequisites=existing.prerequisites | required,
            )
            self.store.put_pattern(updated)

        logger.debug(
            f"Recorded attempt on {topic_id}: success={success} "
            f"attempts={metrics.attempts} success_rate={metrics.success_rate:.3f}"
        )
        return updated

    def recompute_metrics(self, topic_id: str) -> Optional[LearningMetrics]:
        """Re-derive metrics for a topic from its stored history at the current instant."""
        pattern = self.store.get_pattern(topic_id)
        if pattern is None:
            return None
        return compute_metrics(
            pattern.history,
            self.clock(),
            total_time_spent=pattern.metrics.time_spent,
            config=self.config,
        )

    def get_pattern(self, topic_id: str) -> Optional[LearningPattern]:
        return self.store.get_pattern(topic_id)

    def get_metrics(self, topic_id: str) -> Optional[LearningMetrics]:
        pattern = self.store.get_pattern(topic_id)
        return pattern.metrics if pattern else None

    def all_patterns(self) -> List[LearningPattern]:
        return self.store.all_patterns()

    def topic_ids(self) -> List[str]:
        return sorted(self.store.patterns)
