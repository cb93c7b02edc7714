from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class SchedulerConfig(BaseModel):
    """Constants governing the performance ledger and strategy engine."""

    max_history_items: int = Field(100, ge=1, description="Attempts kept per topic, newest first.")
    min_data_points: int = Field(3, ge=1, description="Attempts required before a strategy is derived.")
    retention_decay_rate: float = Field(0.1, ge=0)
    recency_decay_rate: float = Field(0.1, ge=0, description="Per-position decay for recency weights.")
    streak_gap_days: float = Field(2.0, gt=0)
    prerequisite_mastery_threshold: float = Field(0.7, ge=0, le=1)
    default_session_seconds: int = Field(600, ge=1)
    review_jitter: float = Field(0.1, ge=0, lt=1, description="Uniform +/- jitter on review intervals.")
    min_review_days: float = Field(1.0, ge=0)
    max_review_days: float = Field(30.0, gt=0)

    @field_validator("max_review_days")
    @classmethod
    def review_window_is_ordered(cls, value: float, info: ValidationInfo) -> float:
        """Ensure the review window upper bound never falls below the lower bound."""
        lower = info.data.get("min_review_days", 1.0)
        if value < lower:
            raise ValueError("max_review_days must be >= min_review_days")
        return value


class SequencerConfig(BaseModel):
    """Genetic-algorithm parameters for roadmap sequencing."""

    population_size: int = Field(50, ge=2)
    mutation_rate: float = Field(0.1, ge=0, le=1)
    crossover_rate: float = Field(0.8, ge=0, le=1)
    elitism_count: int = Field(2, ge=1)
    max_generations: int = Field(100, ge=0)
    tournament_size: int = Field(5, ge=1)
    plateau_threshold: float = Field(0.01, ge=0)
    plateau_min_generation: int = Field(10, ge=0)
    prerequisite_penalty: float = Field(0.3, ge=0)
    mastery_threshold: float = Field(0.7, ge=0, le=1)
    deadline_seconds: Optional[float] = Field(
        None, gt=0, description="Optional wall-clock budget checked between generations."
    )

    @field_validator("elitism_count")
    @classmethod
    def elites_fit_in_population(cls, value: int, info: ValidationInfo) -> int:
        """Elites must leave room for at least one offspring per generation."""
        population = info.data.get("population_size", 50)
        if value >= population:
            raise ValueError("elitism_count must be smaller than population_size")
        return value


class PathsConfig(BaseModel):
    """Filesystem layout for persisted ledgers."""

    ledger_dir: Path = Field(Path("data/ledgers"))


class LoggingConfig(BaseModel):
    """Controls for scheduler logging output and format."""

    level: str = Field("INFO")
    json_output: bool = Field(False, alias="json")

    model_config = {"populate_by_name": True}


class Settings(BaseModel):
    """Top-level project configuration aggregating all sub-settings."""

    project_name: str = Field("Adaptive Learning Scheduler")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    sequencer: SequencerConfig = Field(default_factory=SequencerConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
