from __future__ import annotations


class SchedulerError(Exception):
    """Base class for errors raised by the adaptive learning scheduler."""


class InvalidInputError(SchedulerError, ValueError):
    """Malformed attempt data or roadmap input, rejected before any state changes."""


class ComputationFailure(SchedulerError):
    """Unexpected internal error while evolving a strategy.

    Never propagated to callers of `StrategyEngine.evolve_strategy`; it is only
    attached to the log record so failures stay searchable.
    """

    def __init__(self, topic_id: str, cause: BaseException):
        super().__init__(f"Strategy evolution failed for topic {topic_id!r}: {cause}")
        self.topic_id = topic_id
        self.cause = cause
