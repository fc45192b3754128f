# timetable_engine/tests/unit/test_operators.py

"""
Tests for the genetic operators.
"""

import pytest
import random
from datetime import date

from timetable_engine.core.problem_model import Room
from timetable_engine.core.solution import Timetable
from timetable_engine.genetic_algorithm.deap_setup import create_toolbox
from timetable_engine.genetic_algorithm.operators import (
    keeps_requirements,
    midpoint_crossover,
    select_breeding_pool,
    swap_mutation,
)


def _timetable(make_slot, count):
    return Timetable(
        [
            make_slot(
                subject_id=f"s{i}",
                room=Room(i + 1),
                start=f"{8 + i:02d}:00",
                end=f"{9 + i:02d}:00",
            )
            for i in range(count)
        ]
    )


class TestCrossover:
    def test_midpoint_split(self, make_slot):
        """Test the child takes the first half of one parent and the rest of the other"""
        parent1 = _timetable(make_slot, 4)
        parent2 = Timetable(
            [slot.with_assignment_of(parent1[0]) for slot in parent1]
        )

        child = midpoint_crossover(parent1, parent2)

        assert child.slots == parent1.slots[:2] + parent2.slots[2:]
        assert child is not parent1
        assert not child.fitness.valid

    def test_parents_unchanged(self, make_slot):
        parent1 = _timetable(make_slot, 3)
        parent2 = _timetable(make_slot, 3)
        before = parent1.slots

        midpoint_crossover(parent1, parent2)

        assert parent1.slots == before

    def test_length_mismatch(self, make_slot):
        with pytest.raises(ValueError):
            midpoint_crossover(_timetable(make_slot, 2), _timetable(make_slot, 3))


class TestSwapMutation:
    """Tests for the assignment swap"""

    def test_swaps_two_assignments(self, make_slot):
        individual = _timetable(make_slot, 2)

        child = swap_mutation(individual, random.Random(0))

        assert child[0].activity == individual[0].activity
        assert child[0].teacher_id == individual[0].teacher_id
        assert child[0].room == individual[1].room
        assert child[0].timeslot == individual[1].timeslot
        assert child[1].timeslot == individual[0].timeslot
        assert individual[0].room.id == 1

    def test_single_slot_is_copied(self, make_slot):
        individual = _timetable(make_slot, 1)

        child = swap_mutation(individual, random.Random(0))

        assert child == individual
        assert child is not individual

    def test_fixed_date_blocks_swap(self, make_slot):
        """Test a swap that would move a fixed-date exam returns an unchanged copy"""
        individual = Timetable(
            [
                make_slot(
                    subject_id="a",
                    slot_date=date(2025, 3, 3),
                    activity_date=date(2025, 3, 3),
                ),
                make_slot(subject_id="b", slot_date=date(2025, 3, 4), start="11:00", end="12:00"),
            ]
        )

        child = swap_mutation(individual, random.Random(1))

        assert child == individual

    def test_keeps_requirements(self, make_slot):
        assert keeps_requirements(make_slot())
        assert not keeps_requirements(
            make_slot(slot_date=date(2025, 3, 4), activity_date=date(2025, 3, 3))
        )

    def test_seeded_mutation_is_reproducible(self, make_slot):
        individual = _timetable(make_slot, 5)

        first = swap_mutation(individual, random.Random(7))
        second = swap_mutation(individual, random.Random(7))

        assert first == second


class TestSelection:
    def test_breeding_pool_takes_best(self, make_slot):
        population = [_timetable(make_slot, 1) for _ in range(10)]
        for value, individual in enumerate(population):
            individual.fitness.values = (float(value),)

        pool = select_breeding_pool(population, 0.3)

        assert [ind.fitness.values[0] for ind in pool] == [9.0, 8.0, 7.0]

    def test_pool_never_empty(self, make_slot):
        population = [_timetable(make_slot, 1) for _ in range(2)]
        for individual in population:
            individual.fitness.values = (1.0,)

        assert len(select_breeding_pool(population, 0.1)) == 1


class TestToolbox:
    def test_registered_operators(self):
        toolbox = create_toolbox(
            evaluate=lambda ind: (1.0,),
            mate=lambda a, b: a,
            mutate=lambda a: a,
            select=lambda pop: pop,
        )

        assert toolbox.evaluate("x") == (1.0,)
        assert list(toolbox.map(toolbox.evaluate, [1, 2])) == [(1.0,), (1.0,)]
        assert hasattr(toolbox, "elite")
