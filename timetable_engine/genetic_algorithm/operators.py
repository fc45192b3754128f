# timetable_engine/genetic_algorithm/operators.py

"""
Genetic operators over Timetable individuals.

Every operator returns a new Timetable built from a fresh slot tuple; parents
are never modified, so the population can be evaluated concurrently.
"""

import random
from typing import List, Sequence
import logging

from deap import tools

from ..core.solution import ScheduleSlot, Timetable

logger = logging.getLogger(__name__)


def midpoint_crossover(parent1: Timetable, parent2: Timetable) -> Timetable:
    """Child takes parent1's first half and parent2's second half."""
    if len(parent1) != len(parent2):
        raise ValueError(
            f"Parents must have the same length ({len(parent1)} != {len(parent2)})"
        )
    mid = len(parent1) // 2
    return parent1.with_slots(parent1.slots[:mid] + parent2.slots[mid:])


def keeps_requirements(slot: ScheduleSlot) -> bool:
    """A moved slot must stay on its exam's fixed date and fit its duration."""
    activity = slot.activity
    if activity.date is not None and slot.date != activity.date:
        return False
    return activity.fits(slot.timeslot)


def swap_mutation(individual: Timetable, rng: random.Random) -> Timetable:
    """Swap the room, time and date of two random slots.

    Teachers stay with their activities. When the swap would break a fixed
    date or a duration the child is an unchanged copy.
    """
    size = len(individual)
    if size < 2:
        return individual.with_slots(individual.slots)
    i, j = rng.sample(range(size), 2)
    moved_i = individual[i].with_assignment_of(individual[j])
    moved_j = individual[j].with_assignment_of(individual[i])
    if not (keeps_requirements(moved_i) and keeps_requirements(moved_j)):
        return individual.with_slots(individual.slots)
    slots = list(individual.slots)
    slots[i], slots[j] = moved_i, moved_j
    return individual.with_slots(slots)


def select_breeding_pool(population: Sequence[Timetable], ratio: float) -> List[Timetable]:
    """Top ``ratio`` of the population by fitness, never fewer than one."""
    count = max(1, int(len(population) * ratio))
    return tools.selBest(population, count)
