"""
DEAP Setup Module - builds the toolbox used by the genetic optimizer.

Individuals are Timetable values carrying a TimetableFitness (a plain
``base.Fitness`` subclass), so no ``creator`` classes are registered and
several optimizers can run in one process without clashing.
"""

import logging
from typing import Any, Callable

from deap import base, tools

logger = logging.getLogger(__name__)


def create_toolbox(
    evaluate: Callable[[Any], tuple],
    mate: Callable[[Any, Any], Any],
    mutate: Callable[[Any], Any],
    select: Callable[..., list],
    map_fn: Callable = map,
) -> base.Toolbox:
    """
    Register the genetic operators on a fresh toolbox.

    Args:
        evaluate: returns a one-element fitness tuple for an individual
        mate: produces one child from two parents
        mutate: produces a mutated copy of one individual
        select: picks the breeding pool from a population
        map_fn: map used for fitness evaluation (an executor's map for parallelism)
    """
    toolbox = base.Toolbox()
    toolbox.register("evaluate", evaluate)
    toolbox.register("mate", mate)
    toolbox.register("mutate", mutate)
    toolbox.register("select", select)
    toolbox.register("elite", tools.selBest)
    toolbox.register("map", map_fn)
    logger.debug("DEAP toolbox created")
    return toolbox
