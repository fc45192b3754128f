# timetable_engine/genetic_algorithm/__init__.py
"""
DEAP-based genetic refinement of a seed timetable.

Key components:
- GeneticOptimizer: runs the generations and returns the fittest timetable.
- operators: midpoint crossover, swap mutation and breeding pool selection.
"""

from .evolution_manager import (
    GeneticOptimizer,
    GenerationStats,
    OptimizationReport,
    OptimizerParameters,
)
from .operators import midpoint_crossover, select_breeding_pool, swap_mutation

__all__ = [
    "GeneticOptimizer",
    "GenerationStats",
    "OptimizationReport",
    "OptimizerParameters",
    "midpoint_crossover",
    "select_breeding_pool",
    "swap_mutation",
]
