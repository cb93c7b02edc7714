"""Tests for logging configuration."""

from __future__ import annotations

import logging

import pytest

from learning_scheduler.config.schema import LoggingConfig
from learning_scheduler.utils.logging import (
    SCHEDULER_LOGGER,
    configure_from_settings,
    resolve_level,
)


@pytest.mark.parametrize(
    "level, expected",
    [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_settings_drive_the_scheduler_logger_level():
    scheduler_logger = logging.getLogger(SCHEDULER_LOGGER)
    original = scheduler_logger.level
    try:
        configure_from_settings(LoggingConfig(level="warning", json=True))
        assert scheduler_logger.level == logging.WARNING
        assert logging.getLogger("learning_scheduler.learning.strategy").getEffectiveLevel() == logging.WARNING
    finally:
        scheduler_logger.setLevel(original)
