"""
Genetic-algorithm search for a roadmap topic ordering.

Each chromosome is a permutation of the roadmap's topics. Fitness rewards
well-mastered, quick, low-attempt topics and penalizes placing a topic right
after one whose success rate is below the mastery threshold. Only relative
fitness matters, so scores are not normalized.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from learning_scheduler.config.schema import SequencerConfig
from learning_scheduler.exceptions import InvalidInputError
from learning_scheduler.learning.models import LearningPattern
from learning_scheduler.roadmap.models import RoadmapTopic, TopicPerformance

logger = logging.getLogger(__name__)

SUCCESS_WEIGHT = 0.4
TIME_WEIGHT = 0.2
ATTEMPTS_WEIGHT = 0.2
ATTEMPTS_SCALE = 10


@dataclass
class Chromosome:
    """Population member: one candidate ordering and its fitness for this run."""

    genes: Tuple[RoadmapTopic, ...]
    fitness: float

    @property
    def topic_ids(self) -> List[str]:
        return [topic.id for topic in self.genes]


@dataclass
class SequencingResult:
    """Outcome of one sequencer run."""

    ordering: List[RoadmapTopic]
    fitness: float
    initial_best_fitness: float
    generations: int
    stopped_early: bool = False
    best_fitness_history: List[float] = field(default_factory=list)


def performances_from_patterns(patterns: Iterable[LearningPattern]) -> List[TopicPerformance]:
    """Project ledger patterns onto the sequencer's fitness inputs."""
    return [
        TopicPerformance(
            topic_id=pattern.topic_id,
            success_rate=min(1.0, max(0.0, pattern.metrics.success_rate)),
            completion_time_hours=pattern.metrics.time_spent / 3600,
            attempts_count=pattern.metrics.attempts,
        )
        for pattern in patterns
    ]


class RoadmapSequencer:
    """
    Search for a near-optimal linear ordering of roadmap topics.

    Every run is self-contained: the population is built, evolved, and discarded
    inside `evolve`, so no state is shared across calls. The random source is
    injectable so tests can seed it.

    Examples
    --------
    >>> sequencer = RoadmapSequencer(SequencerConfig(), rng=random.Random(7))
    >>> ordering = sequencer.optimize(topics, performances)
    >>> sorted(t.id for t in ordering) == sorted(t.id for t in topics)
    True
    """

    def __init__(self, config: SequencerConfig | None = None, rng: random.Random | None = None):
        self.config = config or SequencerConfig()
        self.rng = rng or random.Random()

    def fitness(
        self,
        chromosome: Sequence[RoadmapTopic],
        performances: Dict[str, TopicPerformance] | Sequence[TopicPerformance],
    ) -> float:
        lookup = self._index_performances(performances)
        score = 0.0
        for position, topic in enumerate(chromosome):
            performance = lookup.get(topic.id)
            if performance is None:
                continue
            score += SUCCESS_WEIGHT * performance.success_rate
            score -= TIME_WEIGHT * performance.completion_time_hours
            score -= ATTEMPTS_WEIGHT * (performance.attempts_count / ATTEMPTS_SCALE)
            if position > 0:
                preceding = lookup.get(chromosome[position - 1].id)
                if preceding is not None and preceding.success_rate < self.config.mastery_threshold:
                    score -= self.config.prerequisite_penalty
        return score

    @staticmethod
    def _index_performances(
        performances: Dict[str, TopicPerformance] | Sequence[TopicPerformance],
    ) -> Dict[str, TopicPerformance]:
        if isinstance(performances, dict):
            return performances
        return {performance.topic_id: performance for performance in performances}

    @staticmethod
    def _validate(topics: Sequence[RoadmapTopic]) -> None:
        if not topics:
            raise InvalidInputError("roadmap must contain at least one topic")
        seen = set()
        duplicates = set()
        for topic in topics:
            if topic.id in seen:
                duplicates.add(topic.id)
            seen.add(topic.id)
        if duplicates:
            raise InvalidInputError(f"duplicate topic ids in roadmap: {sorted(duplicates)}")

    def _score(self, genes: Sequence[RoadmapTopic], lookup: Dict[str, TopicPerformance]) -> Chromosome:
        genes = tuple(genes)
        return Chromosome(genes=genes, fitness=self.fitness(genes, lookup))

    def initialize_population(
        self, topics: Sequence[RoadmapTopic], lookup: Dict[str, TopicPerformance]
    ) -> List[Chromosome]:
        return [
            self._score(self.rng.sample(list(topics), len(topics)), lookup)
            for _ in range(self.config.population_size)
        ]

    def select_parent(self, population: Sequence[Chromosome]) -> Chromosome:
        """Tournament selection: best of `tournament_size` draws with replacement."""
        tournament = [self.rng.choice(population) for _ in range(self.config.tournament_size)]
        return max(tournament, key=lambda member: member.fitness)

    def crossover(
        self, parent1: Sequence[RoadmapTopic], parent2: Sequence[RoadmapTopic]
    ) -> List[RoadmapTopic]:
        """
        Single-point crossover keeping a valid permutation.

        The offspring takes parent1's prefix up to a random point, then parent2's
        topics in parent2's order, skipping any already present.
        """
        if self.rng.random() >= self.config.crossover_rate:
            return list(parent1)
        point = self.rng.randrange(len(parent1))
        prefix = list(parent1[:point])
        taken = {topic.id for topic in prefix}
        return prefix + [topic for topic in parent2 if topic.id not in taken]

    def mutate(self, chromosome: Sequence[RoadmapTopic]) -> List[RoadmapTopic]:
        """Swap two random positions with probability `mutation_rate`."""
        mutated = list(chromosome)
        if self.rng.random() >= self.config.mutation_rate:
            return mutated
        first = self.rng.randrange(len(mutated))
        second = self.rng.randrange(len(mutated))
        mutated[first], mutated[second] = mutated[second], mutated[first]
        return mutated

    def _plateaued(self, generation: int, population: Sequence[Chromosome]) -> bool:
        if generation <= self.config.plateau_min_generation:
            return False
        weakest_elite = population[min(self.config.elitism_count, len(population)) - 1]
        return population[0].fitness - weakest_elite.fitness < self.config.plateau_threshold

    def evolve(
        self,
        topics: Sequence[RoadmapTopic],
        performances: Sequence[TopicPerformance] = (),
        deadline_seconds: Optional[float] = None,
    ) -> SequencingResult:
        """
        Run the genetic algorithm and report the best ordering found.

        Raises
        ------
        InvalidInputError
            If `topics` is empty or contains duplicate ids.
        """
        self._validate(topics)
        lookup = self._index_performances(performances)
        budget = deadline_seconds if deadline_seconds is not None else self.config.deadline_seconds
        deadline = time.monotonic() + budget if budget is not None else None

        logger.info(
            f"Sequencing {len(topics)} topics with {len(lookup)} performance records "
            f"(population={self.config.population_size}, generations={self.config.max_generations})"
        )

        population = self.initialize_population(topics, lookup)
        population.sort(key=lambda member: member.fitness, reverse=True)
        initial_best = population[0].fitness
        history: List[float] = []
        stopped_early = False
        generation = 0

        for generation in range(self.config.max_generations):
            population.sort(key=lambda member: member.fitness, reverse=True)
            history.append(population[0].fitness)

            if self._plateaued(generation, population):
                logger.info(f"Fitness plateau at generation {generation}; stopping early")
                stopped_early = True
                break
            if deadline is not None and time.monotonic() >= deadline:
                logger.info(f"Sequencing deadline reached at generation {generation}")
                stopped_early = True
                break

            next_population = population[: self.config.elitism_count]
            while len(next_population) < self.config.population_size:
                parent1 = self.select_parent(population)
                parent2 = self.select_parent(population)
                offspring = self.crossover(parent1.genes, parent2.genes)
                offspring = self.mutate(offspring)
                next_population.append(self._score(offspring, lookup))
            population = next_population
        else:
            generation = self.config.max_generations

        population.sort(key=lambda member: member.fitness, reverse=True)
        best = population[0]
        logger.info(
            f"Sequencing finished after {generation} generations; best fitness {best.fitness:.4f}"
        )
        return SequencingResult(
            ordering=list(best.genes),
            fitness=best.fitness,
            initial_best_fitness=initial_best,
            generations=generation,
            stopped_early=stopped_early,
            best_fitness_history=history,
        )

    def optimize(
        self,
        topics: Sequence[RoadmapTopic],
        performances: Sequence[TopicPerformance] = (),
        deadline_seconds: Optional[float] = None,
    ) -> List[RoadmapTopic]:
        """Return the best topic ordering found by `evolve`."""
        return self.evolve(topics, performances, deadline_seconds).ordering
