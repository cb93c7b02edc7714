"""Shared fixtures: a controllable clock, a seeded random source, and wired components."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.learning.progress import PerformanceLedger
from learning_scheduler.learning.strategy import StrategyEngine
from learning_scheduler.storage import LedgerStore

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock whose current instant only moves when a test advances it."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def scheduler_config():
    return SchedulerConfig()


@pytest.fixture
def store():
    return LedgerStore()


@pytest.fixture
def ledger(store, scheduler_config, clock):
    return PerformanceLedger(store, scheduler_config, clock=clock)


@pytest.fixture
def engine(store, scheduler_config, clock, rng):
    return StrategyEngine(store, scheduler_config, clock=clock, rng=rng)
