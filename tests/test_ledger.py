"""Tests for recording attempts into per-topic performance ledgers."""

from __future__ import annotations

import random

import pytest

from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.exceptions import InvalidInputError
from learning_scheduler.learning.progress import PerformanceLedger
from learning_scheduler.learning.strategy import StrategyEngine


def test_first_attempt_creates_pattern_with_defaults(ledger):
    pattern = ledger.record_attempt("algebra", 300, success=True)

    assert pattern.topic_id == "algebra"
    assert pattern.metrics.attempts == 1
    assert pattern.metrics.time_spent == 300
    assert pattern.metrics.average_session_time == 300
    assert pattern.metrics.difficulty == 3.0
    assert pattern.history[0].difficulty == 3.0
    assert ledger.get_pattern("algebra") is pattern


def test_attempt_count_matches_number_of_recordings(ledger, clock):
    for index in range(12):
        ledger.record_attempt("geometry", 120, success=index % 3 != 0)
        clock.advance(hours=5)

    metrics = ledger.get_metrics("geometry")
    assert metrics.attempts == 12
    assert metrics.attempts == len(ledger.get_pattern("geometry").history)
    assert metrics.time_spent == 12 * 120


def test_history_is_capped_and_newest_first(store, clock):
    ledger = PerformanceLedger(store, SchedulerConfig(max_history_items=5), clock=clock)
    for seconds in range(1, 9):
        ledger.record_attempt("calculus", seconds, success=True)
        clock.advance(minutes=30)

    pattern = ledger.get_pattern("calculus")
    assert len(pattern.history) == 5
    assert pattern.metrics.attempts == 5
    assert [entry.time_spent for entry in pattern.history] == [8, 7, 6, 5, 4]
    # cumulative time still includes the truncated attempts
    assert pattern.metrics.time_spent == sum(range(1, 9))


def test_average_session_time_is_stable_once_history_is_capped(store, clock):
    config = SchedulerConfig()
    ledger = PerformanceLedger(store, config, clock=clock)
    engine = StrategyEngine(store, config, clock=clock, rng=random.Random(3))
    for _ in range(config.max_history_items * 2):
        ledger.record_attempt("algebra", 600, success=True)
        engine.evolve_strategy("algebra")
        clock.advance(hours=12)

    pattern = ledger.get_pattern("algebra")
    assert pattern.metrics.attempts == config.max_history_items
    assert pattern.metrics.time_spent == 600 * config.max_history_items * 2
    assert pattern.metrics.average_session_time == pytest.approx(600)

    insights = engine.get_recommendations("algebra").insights
    assert "warning" not in [insight.type for insight in insights]


def test_recorded_difficulty_is_the_level_in_effect_before_the_attempt(ledger, clock):
    for _ in range(4):
        ledger.record_attempt("trig", 200, success=True)
        clock.advance(hours=2)
    before = ledger.get_metrics("trig").difficulty

    pattern = ledger.record_attempt("trig", 200, success=True)

    assert pattern.history[0].difficulty == before
    assert 1.0 <= pattern.metrics.difficulty <= 5.0


@pytest.mark.parametrize("seconds", [-1, float("nan"), float("inf"), "60", True])
def test_invalid_time_is_rejected_without_changing_the_ledger(ledger, seconds):
    ledger.record_attempt("algebra", 60, success=True)
    snapshot = ledger.get_pattern("algebra")

    with pytest.raises(InvalidInputError):
        ledger.record_attempt("algebra", seconds, success=False)

    assert ledger.get_pattern("algebra") is snapshot


@pytest.mark.parametrize("topic_id", ["", "   "])
def test_blank_topic_id_is_rejected(ledger, topic_id):
    with pytest.raises(InvalidInputError):
        ledger.record_attempt(topic_id, 60, success=True)
    assert ledger.all_patterns() == []


def test_invalid_input_is_also_a_value_error(ledger):
    with pytest.raises(ValueError):
        ledger.record_attempt("algebra", -5, success=True)


def test_relationships_are_merged_without_duplicates(ledger):
    ledger.record_attempt("calculus", 60, True, related_topics=["physics"], prerequisites=["algebra"])
    pattern = ledger.record_attempt(
        "calculus", 60, True, related_topics=["physics", "stats"], prerequisites=["algebra", "trig"]
    )

    assert pattern.related_topics == frozenset({"physics", "stats"})
    assert pattern.prerequisites == frozenset({"algebra", "trig"})


def test_streak_resets_after_a_long_gap(ledger, clock):
    ledger.record_attempt("algebra", 60, True)
    clock.advance(days=1)
    assert ledger.record_attempt("algebra", 60, True).metrics.streak_days == 2

    clock.advance(days=3)
    pattern = ledger.record_attempt("algebra", 60, True)

    assert pattern.metrics.streak_days == 1
    assert pattern.metrics.consistency_score == pytest.approx(1 / 7)


def test_updates_swap_in_new_values_instead_of_mutating(ledger):
    first = ledger.record_attempt("algebra", 60, True)
    second = ledger.record_attempt("algebra", 90, False)

    assert first is not second
    assert first.metrics.attempts == 1
    assert len(first.history) == 1
    assert second.metrics.attempts == 2


def test_recompute_metrics_matches_stored_metrics_at_same_instant(ledger):
    for outcome in (True, False, True):
        ledger.record_attempt("algebra", 100, outcome)

    assert ledger.recompute_metrics("algebra") == ledger.get_metrics("algebra")
    assert ledger.recompute_metrics("unknown") is None


def test_topic_ids_are_sorted(ledger):
    ledger.record_attempt("stats", 60, True)
    ledger.record_attempt("algebra", 60, True)

    assert ledger.topic_ids() == ["algebra", "stats"]
