"""

Evolution manager for the timetable genetic optimizer.

The population is the seed timetable plus mutated copies of it. Each
generation is evaluated in a thread pool registered as the DEAP toolbox map;
selection waits for every evaluation. Elites are carried over unchanged so the
best fitness never decreases from one generation to the next.

"""

import logging
import os
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from deap import tools

from ..config import GeneticAlgorithmConfig
from ..constraints.scorer import ConstraintScorer
from ..core.constraint_types import ConstraintSet
from ..core.solution import Timetable
from ..exceptions import InputError
from ..utils.logging import GALogMetrics, SchedulingLogger
from .deap_setup import create_toolbox
from .operators import midpoint_crossover, select_breeding_pool, swap_mutation

logger = logging.getLogger(__name__)


@dataclass
class OptimizerParameters:
    population_size: int = 10
    generations: int = 50
    selection_ratio: float = 0.3
    elite_count: int = 1
    max_workers: Optional[int] = None
    seed: Optional[int] = None
    stagnation_limit: Optional[int] = None
    timeout_seconds: Optional[float] = None

    @classmethod
    def from_config(cls, ga_config: GeneticAlgorithmConfig) -> "OptimizerParameters":
        return cls(
            population_size=ga_config.population_size,
            generations=ga_config.num_generations,
            selection_ratio=ga_config.selection_ratio,
            elite_count=ga_config.elite_count,
            max_workers=ga_config.max_workers,
            seed=ga_config.random_seed,
            stagnation_limit=ga_config.stagnation_limit,
        )

    def validate(self) -> None:
        problems = []
        if not isinstance(self.population_size, int) or self.population_size < 1:
            problems.append("population_size must be a positive integer")
        if not isinstance(self.generations, int) or self.generations < 0:
            problems.append("generations must be a non-negative integer")
        if not 0 < self.selection_ratio <= 1:
            problems.append("selection_ratio must be in (0, 1]")
        if not isinstance(self.elite_count, int) or self.elite_count < 1:
            problems.append("elite_count must be at least 1")
        elif isinstance(self.population_size, int) and self.elite_count > self.population_size:
            problems.append("elite_count cannot exceed population_size")
        if self.max_workers is not None and self.max_workers < 1:
            problems.append("max_workers must be positive")
        if self.stagnation_limit is not None and self.stagnation_limit < 1:
            problems.append("stagnation_limit must be positive")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            problems.append("timeout_seconds must be positive")
        if problems:
            raise InputError(
                "Invalid optimizer parameters", field="options", details=problems
            )


@dataclass
class GenerationStats:
    generation: int
    best_fitness: float
    average_fitness: float
    worst_fitness: float
    fitness_std: float
    diversity: float
    best_conflicts: int


@dataclass
class OptimizationReport:
    best: Timetable
    generations_run: int = 0
    evaluations: int = 0
    total_time: float = 0.0
    initial_fitness: float = 0.0
    best_fitness: float = 0.0
    cancelled: bool = False
    timed_out: bool = False
    stagnated: bool = False
    history: List[GenerationStats] = field(default_factory=list)

    @property
    def stopped_early(self) -> bool:
        return self.cancelled or self.timed_out or self.stagnated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generations_run": self.generations_run,
            "evaluations": self.evaluations,
            "total_time": self.total_time,
            "initial_fitness": self.initial_fitness,
            "best_fitness": self.best_fitness,
            "fitness_improvement": self.best_fitness - self.initial_fitness,
            "cancelled": self.cancelled,
            "timed_out": self.timed_out,
            "stagnated": self.stagnated,
            "history": [asdict(stats) for stats in self.history],
        }


class GeneticOptimizer:
    def __init__(
        self,
        scorer: Optional[ConstraintScorer] = None,
        parameters: Optional[OptimizerParameters] = None,
        scheduling_logger: Optional[SchedulingLogger] = None,
    ):
        self.scorer = scorer or ConstraintScorer()
        self.parameters = parameters or OptimizerParameters()
        self.scheduling_logger = scheduling_logger

    def evaluate(self, individual: Timetable, constraints: ConstraintSet) -> tuple:
        return (self.scorer.fitness(individual, constraints),)

    def optimize(
        self,
        seed: Timetable,
        constraints: ConstraintSet,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> OptimizationReport:
        """Evolve ``seed`` and return the fittest timetable found.

        ``deadline`` is a ``time.monotonic()`` value. Cancellation and the
        deadline are checked between generations; either one ends the run with
        the best individual so far.
        """
        params = self.parameters
        params.validate()
        if not isinstance(seed, Timetable):
            raise InputError(
                f"Seed must be a Timetable, got {type(seed).__name__}", field="seed"
            )
        if not len(seed):
            raise InputError("Cannot optimize a timetable with no slots", field="seed")
        if deadline is None and params.timeout_seconds is not None:
            deadline = time.monotonic() + params.timeout_seconds

        start_time = time.time()
        rng = random.Random(params.seed)

        if params.generations == 0:
            seed.fitness.values = self.evaluate(seed, constraints)
            value = seed.fitness.values[0]
            logger.info("Zero generations requested; returning the seed timetable")
            return OptimizationReport(
                best=seed,
                evaluations=1,
                total_time=time.time() - start_time,
                initial_fitness=value,
                best_fitness=value,
            )

        workers = params.max_workers or os.cpu_count() or 1
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="fitness"
        ) as executor:
            toolbox = create_toolbox(
                evaluate=partial(self.evaluate, constraints=constraints),
                mate=midpoint_crossover,
                mutate=partial(swap_mutation, rng=rng),
                select=partial(select_breeding_pool, ratio=params.selection_ratio),
                map_fn=executor.map,
            )
            report = self._evolve(seed, toolbox, rng, cancel_event, deadline)

        report.total_time = time.time() - start_time
        logger.info(
            f"GA finished after {report.generations_run} generation(s): "
            f"best fitness {report.best_fitness:.2f} "
            f"(initial {report.initial_fitness:.2f}), {report.evaluations} evaluations"
        )
        return report

    def _evolve(
        self,
        seed: Timetable,
        toolbox,
        rng: random.Random,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ) -> OptimizationReport:
        params = self.parameters
        population = [seed] + [
            toolbox.mutate(seed) for _ in range(params.population_size - 1)
        ]
        evaluations = self._evaluate_population(population, toolbox)
        initial_fitness = seed.fitness.values[0]
        history = [self._record(0, population, evaluations)]

        report = OptimizationReport(best=seed, initial_fitness=initial_fitness)
        best_fitness = history[0].best_fitness
        stale_generations = 0

        for generation in range(1, params.generations + 1):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                self._log_stop(generation - 1, "cancelled")
                break
            if deadline is not None and time.monotonic() >= deadline:
                report.timed_out = True
                self._log_stop(generation - 1, "deadline reached")
                break

            pool = toolbox.select(population)
            offspring = list(toolbox.elite(population, params.elite_count))
            while len(offspring) < params.population_size:
                parent1 = rng.choice(pool)
                parent2 = rng.choice(pool)
                offspring.append(toolbox.mutate(toolbox.mate(parent1, parent2)))

            evaluated = self._evaluate_population(offspring, toolbox)
            evaluations += evaluated
            population = offspring
            history.append(self._record(generation, population, evaluated))
            report.generations_run = generation

            if history[-1].best_fitness > best_fitness:
                best_fitness = history[-1].best_fitness
                stale_generations = 0
            else:
                stale_generations += 1
            if params.stagnation_limit and stale_generations >= params.stagnation_limit:
                report.stagnated = True
                self._log_stop(generation, "no improvement")
                break

        report.best = tools.selBest(population, 1)[0]
        report.best_fitness = report.best.fitness.values[0]
        report.evaluations = evaluations
        report.history = history
        return report

    def _evaluate_population(self, population: Sequence[Timetable], toolbox) -> int:
        """Evaluate every individual without a valid fitness; returns the count."""
        invalid = [ind for ind in population if not ind.fitness.valid]
        # list() waits for the whole batch before selection
        fitnesses = list(toolbox.map(toolbox.evaluate, invalid))
        for individual, values in zip(invalid, fitnesses):
            individual.fitness.values = values
        return len(invalid)

    def _record(
        self, generation: int, population: Sequence[Timetable], evaluations: int
    ) -> GenerationStats:
        fits = np.array([ind.fitness.values[0] for ind in population], dtype=float)
        best = tools.selBest(population, 1)[0]
        diversity = len({ind.slots for ind in population}) / len(population)
        stats = GenerationStats(
            generation=generation,
            best_fitness=float(fits.max()),
            average_fitness=float(fits.mean()),
            worst_fitness=float(fits.min()),
            fitness_std=float(fits.std()),
            diversity=diversity,
            best_conflicts=best.conflict_count,
        )
        logger.debug(
            f"Gen {generation} | best={stats.best_fitness:.2f} "
            f"avg={stats.average_fitness:.2f} diversity={diversity:.2f}"
        )
        if self.scheduling_logger is not None:
            self.scheduling_logger.log_ga_generation(
                GALogMetrics(
                    generation=generation,
                    population_size=len(population),
                    best_fitness=stats.best_fitness,
                    average_fitness=stats.average_fitness,
                    worst_fitness=stats.worst_fitness,
                    fitness_std=stats.fitness_std,
                    diversity_score=diversity,
                    elite_count=self.parameters.elite_count,
                    evaluations=evaluations,
                )
            )
        return stats

    def _log_stop(self, generation: int, reason: str) -> None:
        logger.info(f"GA stopped after generation {generation}: {reason}")
        if self.scheduling_logger is not None:
            self.scheduling_logger.log_ga_stop(generation, reason)
