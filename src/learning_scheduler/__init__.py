"""
Adaptive Learning Scheduler.

Tracks per-topic practice performance, derives spaced-repetition and difficulty
strategies from it, and orders roadmap topics with a genetic algorithm.
"""

from .config.loader import load_settings
from .exceptions import ComputationFailure, InvalidInputError, SchedulerError

__all__ = ["ComputationFailure", "InvalidInputError", "SchedulerError", "load_settings"]
