"""Tests for adaptive strategy evolution, recommendations, and insights."""

from __future__ import annotations

import logging
import random
from datetime import timedelta

import pytest

from learning_scheduler.config import Settings
from learning_scheduler.config.schema import SchedulerConfig
from learning_scheduler.learning.feedback import generate_insights
from learning_scheduler.learning.models import (
    AdaptiveStrategy,
    AlternativeStrategies,
    AttemptRecord,
    LearningMetrics,
    LearningPattern,
)
from learning_scheduler.learning.strategy import StrategyEngine
from learning_scheduler.system import SchedulerSystem

from conftest import START


def _pattern(outcomes=(True, True, True), times=None, **metric_overrides):
    times = times or [600.0] * len(outcomes)
    history = tuple(
        AttemptRecord(
            timestamp=START - timedelta(hours=index),
            time_spent=seconds,
            success=success,
            difficulty=3.0,
        )
        for index, (success, seconds) in enumerate(zip(outcomes, times))
    )
    metrics = LearningMetrics(
        attempts=len(history),
        time_spent=sum(times),
        last_attempt=START,
        average_session_time=sum(times) / len(times),
        **metric_overrides,
    )
    return LearningPattern(topic_id="algebra", metrics=metrics, history=history)


def _strategy(recommended_time=600):
    return AdaptiveStrategy(
        topic_id="algebra",
        recommended_time_per_session=recommended_time,
        recommended_attempts=3,
        suggested_difficulty=3,
        next_review_date=START + timedelta(days=2),
        confidence_score=0.7,
        alternative_strategies=AlternativeStrategies((450, 750), (2, 4)),
        prerequisites_completed=True,
    )


@pytest.fixture
def system(clock):
    return SchedulerSystem(clock=clock, rng=random.Random(42))


def test_no_strategy_below_minimum_data_points(system):
    system.record_attempt("algebra", 600, True)
    system.record_attempt("algebra", 600, True)

    recommendations = system.get_recommendations("algebra")

    assert recommendations.strategy is None
    assert recommendations.insights == []


def test_unknown_topic_has_no_recommendations(system):
    recommendations = system.get_recommendations("nothing-recorded")
    assert recommendations.strategy is None
    assert recommendations.insights == []


def test_algebra_scenario_yields_consistent_strategy(system, clock):
    base = clock.now
    clock.now = base - timedelta(days=3)
    for index, success in enumerate([True, False, True, True, True]):
        system.record_attempt("algebra", 600, success)
        if index < 4:
            clock.advance(hours=18)

    pattern = system.ledger.get_pattern("algebra")
    strategy = system.get_recommendations("algebra").strategy

    assert pattern.metrics.success_rate > 0.6
    assert pattern.metrics.streak_days >= 3
    assert pattern.metrics.average_session_time == pytest.approx(600)
    assert strategy is not None
    assert 1 <= strategy.recommended_attempts <= 3
    assert 1 <= (strategy.next_review_date - clock.now).days <= 30
    assert 0.0 <= strategy.confidence_score <= 1.0
    assert strategy.prerequisites_completed is True


def test_strategy_is_available_as_soon_as_record_returns(system):
    for _ in range(3):
        system.record_attempt("algebra", 400, True)

    assert system.engine.get_strategy("algebra") is not None
    assert system.get_recommendations("algebra").strategy.recommended_time_per_session == 400


def test_optimal_time_averages_successful_sessions(engine):
    pattern = _pattern(outcomes=(True, True, False), times=[300.0, 600.0, 900.0])
    assert engine.optimal_time(pattern) == (450, (338, 563))


def test_optimal_time_defaults_without_successes(engine):
    pattern = _pattern(outcomes=(False, False, False))
    assert engine.optimal_time(pattern) == (600, (300, 900))


@pytest.mark.parametrize(
    "success_rate, expected",
    [(1.0, 2), (0.8, 3), (0.5, 4), (0.0, 5)],
)
def test_optimal_attempts_falls_as_success_rises(success_rate, expected):
    assert StrategyEngine.optimal_attempts(_pattern(success_rate=success_rate)) == expected


def test_optimal_difficulty_rises_with_strong_retention_and_consistency():
    pattern = _pattern(difficulty=3.3, retention_score=0.9, consistency_score=0.8)
    assert StrategyEngine.optimal_difficulty(pattern) == (4, (3, 5))


def test_optimal_difficulty_eases_with_weak_retention():
    pattern = _pattern(difficulty=3.0, retention_score=0.2, consistency_score=0.8)
    assert StrategyEngine.optimal_difficulty(pattern) == (3, (2, 4))


def test_optimal_difficulty_alternatives_are_clamped():
    pattern = _pattern(difficulty=5.0, retention_score=0.95, consistency_score=0.9)
    assert StrategyEngine.optimal_difficulty(pattern) == (5, (4, 5))


def test_review_interval_grows_with_repetitions_and_is_clamped(store, clock):
    engine = StrategyEngine(store, SchedulerConfig(review_jitter=0.0), clock=clock)

    three = _pattern(outcomes=(True,) * 3, success_rate=1.0, retention_score=1.0)
    ten = _pattern(outcomes=(True,) * 10, success_rate=1.0, retention_score=1.0)
    weak = _pattern(outcomes=(False,) * 3, success_rate=0.0, retention_score=0.0)

    assert engine.review_interval_days(three) == pytest.approx(4.0)
    assert engine.review_interval_days(ten) == 30.0
    assert engine.review_interval_days(weak) == 1.0
    assert engine.next_review_date(three, START) == START + timedelta(days=4)


def test_review_interval_survives_very_long_histories(store, clock):
    engine = StrategyEngine(store, SchedulerConfig(review_jitter=0.0), clock=clock)
    pattern = _pattern(outcomes=(True,) * 1500, success_rate=1.0, retention_score=1.0)

    assert engine.review_interval_days(pattern) == 30.0


def test_strategy_keeps_evolving_past_a_thousand_attempts(clock, caplog):
    settings = Settings(scheduler=SchedulerConfig(max_history_items=2000))
    system = SchedulerSystem(settings, clock=clock, rng=random.Random(42))
    for _ in range(1030):
        system.record_attempt("algebra", 300, True)
    before = system.engine.get_strategy("algebra")

    with caplog.at_level(logging.ERROR, logger="learning_scheduler.learning.strategy"):
        system.record_attempt("algebra", 300, True)

    after = system.engine.get_strategy("algebra")
    assert after is not before
    assert system.ledger.get_metrics("algebra").attempts == 1031
    assert after.next_review_date == clock() + timedelta(days=30)
    assert caplog.records == []


def test_review_jitter_stays_within_ten_percent(store, clock):
    engine = StrategyEngine(store, clock=clock, rng=random.Random(5))
    pattern = _pattern(outcomes=(True,) * 3, success_rate=1.0, retention_score=1.0)

    for _ in range(50):
        assert 3.6 <= engine.review_interval_days(pattern) <= 4.4


def test_confidence_combines_four_components(engine):
    pattern = _pattern(outcomes=(True, True, True), consistency_score=0.5)
    assert engine.confidence_score(pattern, START) == pytest.approx((1 + 0.5 + 1 + 1) / 4)


def test_prerequisites_must_reach_mastery(system):
    for _ in range(3):
        system.record_attempt("calculus", 600, True, prerequisites=["algebra"])

    assert system.get_recommendations("calculus").strategy.prerequisites_completed is False
    assert system.missing_prerequisites("calculus") == ["algebra"]

    for _ in range(3):
        system.record_attempt("algebra", 600, True)
    system.record_attempt("calculus", 600, True)

    assert system.missing_prerequisites("calculus") == []
    assert system.get_recommendations("calculus").strategy.prerequisites_completed is True


def test_failed_evolution_keeps_previous_strategy(system, monkeypatch, caplog):
    for _ in range(3):
        system.record_attempt("algebra", 600, True)
    previous = system.engine.get_strategy("algebra")

    def boom(pattern):
        raise ZeroDivisionError("regressed math")

    monkeypatch.setattr(system.engine, "optimal_attempts", boom)
    with caplog.at_level(logging.ERROR, logger="learning_scheduler.learning.strategy"):
        system.record_attempt("algebra", 900, False)

    assert system.engine.get_strategy("algebra") is previous
    assert system.ledger.get_metrics("algebra").attempts == 4
    assert "keeping previous strategy" in caplog.text


def test_analytics_bundle_pattern_strategy_and_insights(system):
    for _ in range(3):
        system.record_attempt("algebra", 600, True, prerequisites=["arithmetic"])

    analytics = system.get_analytics("algebra")

    assert analytics.pattern.topic_id == "algebra"
    assert analytics.strategy.topic_id == "algebra"
    assert analytics.missing_prerequisites == ["arithmetic"]
    assert system.get_analytics("unknown") is None


def test_excellent_progress_insight():
    pattern = _pattern(success_rate=0.9, consistency_score=0.8)
    insights = generate_insights(pattern, _strategy())

    assert [insight.type for insight in insights] == ["success"]
    assert insights[0].confidence == 0.9
    assert insights[0].recommendation


def test_long_session_and_irregular_practice_insights():
    pattern = _pattern(times=[1200.0, 1200.0, 1200.0], success_rate=0.5, consistency_score=0.1)
    insights = generate_insights(pattern, _strategy(recommended_time=600))

    assert [insight.type for insight in insights] == ["warning", "info"]
    assert [insight.confidence for insight in insights] == [0.8, 0.85]


def test_no_insights_for_middling_progress():
    pattern = _pattern(success_rate=0.6, consistency_score=0.5)
    assert generate_insights(pattern, _strategy()) == []
