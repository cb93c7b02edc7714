from __future__ import annotations

import json
import random
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from learning_scheduler.config import load_settings
from learning_scheduler.exceptions import InvalidInputError
from learning_scheduler.roadmap import Roadmap, RoadmapTopic
from learning_scheduler.storage import LedgerSnapshotStore
from learning_scheduler.system import SchedulerSystem
from learning_scheduler.utils.logging import get_logger

app = typer.Typer(help="Adaptive learning scheduler: practice strategies and roadmap sequencing.")
console = Console()
log = get_logger(__name__)

load_dotenv(override=False)


def _load_system(
    learner_id: str,
    config: Optional[Path],
    seed: Optional[int] = None,
) -> Tuple[SchedulerSystem, LedgerSnapshotStore]:
    """Build a `SchedulerSystem` holding the learner's persisted ledgers."""
    try:
        settings = load_settings(config)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    snapshots = LedgerSnapshotStore(settings.paths.ledger_dir)
    rng = random.Random(seed) if seed is not None else None
    system = SchedulerSystem(settings, store=snapshots.load(learner_id), rng=rng)
    return system, snapshots


def _read_roadmap(path: Path) -> List[RoadmapTopic]:
    """Accept either a full roadmap object or a bare list of topics."""
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    try:
        if isinstance(payload, list):
            return [RoadmapTopic.model_validate(item) for item in payload]
        return Roadmap.model_validate(payload).topics
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid roadmap file: {exc}") from exc


@app.command()
def record(
    learner_id: str = typer.Argument(...),
    topic_id: str = typer.Argument(...),
    seconds: float = typer.Option(..., help="Time spent on the attempt, in seconds."),
    success: bool = typer.Option(True, "--success/--failure", help="Outcome of the attempt."),
    prerequisite: List[str] = typer.Option([], help="Prerequisite topic id (repeatable)."),
    related: List[str] = typer.Option([], help="Related topic id (repeatable)."),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
):
    """
    Record a practice attempt and persist the learner's updated ledger.

    Calls `SchedulerSystem.record_attempt`, which recomputes metrics and the topic's strategy,
    then writes the snapshot back via `LedgerSnapshotStore.save`.
    """
    system, snapshots = _load_system(learner_id, config)
    try:
        pattern = system.record_attempt(
            topic_id,
            seconds,
            success,
            related_topics=related,
            prerequisites=prerequisite,
        )
    except InvalidInputError as exc:
        raise typer.BadParameter(str(exc)) from exc
    snapshots.save(learner_id, system.store)
    log.info("attempt_recorded", learner_id=learner_id, topic_id=topic_id, attempts=pattern.metrics.attempts)

    metrics = pattern.metrics
    console.print(
        f"Recorded {'success' if success else 'failure'} on [bold]{topic_id}[/bold] "
        f"({metrics.attempts} attempts, success rate {metrics.success_rate:.2f}, "
        f"streak {metrics.streak_days} days)"
    )


@app.command()
def recommend(
    learner_id: str = typer.Argument(...),
    topic_id: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
):
    """Show the current adaptive strategy and insights for a topic."""
    system, _ = _load_system(learner_id, config)
    recommendations = system.get_recommendations(topic_id)
    strategy = recommendations.strategy
    if strategy is None:
        console.print(f"Not enough practice data for [bold]{topic_id}[/bold] yet.")
        return

    console.print(f"[bold]Strategy for {topic_id}[/bold]")
    console.print(f"Time per session: {strategy.recommended_time_per_session}s "
                  f"(alternatives {list(strategy.alternative_strategies.time_per_session)})")
    console.print(f"Attempts per session: {strategy.recommended_attempts}")
    console.print(f"Difficulty: {strategy.suggested_difficulty} "
                  f"(alternatives {list(strategy.alternative_strategies.difficulty)})")
    console.print(f"Next review: {strategy.next_review_date.date().isoformat()}")
    console.print(f"Confidence: {strategy.confidence_score:.2f}")
    if not strategy.prerequisites_completed:
        missing = ", ".join(system.missing_prerequisites(topic_id))
        console.print(f"Prerequisites to revisit: {missing}")
    if recommendations.insights:
        console.print("\n[bold]Insights[/bold]")
        for insight in recommendations.insights:
            console.print(escape(f"- [{insight.type}] {insight.message}"))
            if insight.recommendation:
                console.print(f"  {insight.recommendation}")


@app.command()
def patterns(
    learner_id: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
):
    """List every tracked topic with its current metrics."""
    system, _ = _load_system(learner_id, config)
    tracked = sorted(system.all_patterns(), key=lambda pattern: pattern.topic_id)
    if not tracked:
        console.print(f"No practice recorded for {learner_id}.")
        return

    table = Table(title=f"Topics for {learner_id}")
    for column in ("Topic", "Attempts", "Success", "Difficulty", "Retention", "Streak"):
        table.add_column(column)
    for pattern in tracked:
        metrics = pattern.metrics
        table.add_row(
            pattern.topic_id,
            str(metrics.attempts),
            f"{metrics.success_rate:.2f}",
            str(metrics.display_difficulty),
            f"{metrics.retention_score:.2f}",
            str(metrics.streak_days),
        )
    console.print(table)


@app.command()
def sequence(
    learner_id: str = typer.Argument(...),
    roadmap: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    seed: Optional[int] = typer.Option(None, help="Seed for a reproducible run."),
    deadline: Optional[float] = typer.Option(None, help="Wall-clock budget in seconds."),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
):
    """Order a roadmap's topics using the learner's performance ledgers."""
    system, _ = _load_system(learner_id, config, seed=seed)
    topics = _read_roadmap(roadmap)
    try:
        result = system.sequence_roadmap(topics, deadline_seconds=deadline)
    except InvalidInputError as exc:
        raise typer.BadParameter(str(exc)) from exc
    log.info("roadmap_sequenced", learner_id=learner_id, topics=len(topics), fitness=result.fitness)

    console.print(f"[bold]Recommended order[/bold] (fitness {result.fitness:.3f}, "
                  f"{result.generations} generations)")
    for position, topic in enumerate(result.ordering, start=1):
        marker = " (completed)" if topic.completed else ""
        console.print(escape(f"{position}. {topic.title} [{topic.id}]{marker}"))


if __name__ == "__main__":
    app()
