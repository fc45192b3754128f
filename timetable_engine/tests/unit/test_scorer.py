# timetable_engine/tests/unit/test_scorer.py

"""
Tests for placement scoring and timetable fitness.
"""

import pytest
from datetime import date

from timetable_engine.config import ScoringConfig
from timetable_engine.constraints.scorer import ConstraintScorer
from timetable_engine.core.constraint_types import (
    ClassScheduleLoad,
    ConstraintSet,
    LearnedConflictAvoidance,
    LearnedTeacherPreference,
    RoomCapacity,
    SubjectRequirement,
    TeacherAvailability,
)
from timetable_engine.core.problem_model import Room
from timetable_engine.core.solution import Timetable


@pytest.fixture
def scorer():
    return ConstraintScorer()


class TestScoreSlot:
    """Tests for single placement scores"""

    def test_base_score(self, scorer, make_slot):
        assert scorer.score_slot(make_slot(), ConstraintSet()) == 100

    def test_unavailable_teacher(self, scorer, make_slot):
        constraints = ConstraintSet([TeacherAvailability(7, ["Mon-08:00"])])

        assert scorer.score_slot(make_slot(), constraints) == 50

    def test_available_teacher(self, scorer, make_slot):
        constraints = ConstraintSet([TeacherAvailability(7, ["Mon-09:00"])])

        assert scorer.score_slot(make_slot(), constraints) == 100

    def test_other_teachers_availability_ignored(self, scorer, make_slot):
        constraints = ConstraintSet([TeacherAvailability(8, ["Tue-08:00"])])

        assert scorer.score_slot(make_slot(), constraints) == 100

    def test_room_too_small(self, scorer, make_slot):
        constraints = ConstraintSet([RoomCapacity(1, 20)])

        assert scorer.score_slot(make_slot(student_count=25), constraints) == 70

    def test_subject_requirement(self, scorer, make_slot):
        constraints = ConstraintSet([SubjectRequirement("math", room_type="lab")])

        assert scorer.score_slot(make_slot(), constraints) == 80
        lab = Room(3, "Lab", capacity=30, room_type="lab")
        assert scorer.score_slot(make_slot(room=lab), constraints) == 100

    def test_learned_preference(self, scorer, make_slot):
        """Test preferred slot scores 101, avoided slot 99"""
        constraints = ConstraintSet(
            [
                LearnedTeacherPreference(
                    7,
                    preferred_slots=["Mon-11:00"],
                    avoided_slots=["Mon-09:00"],
                    confidence=1,
                )
            ]
        )

        preferred = make_slot(start="11:00", end="12:00")
        avoided = make_slot(start="09:00", end="10:00")

        assert scorer.score_slot(preferred, constraints) == 101
        assert scorer.score_slot(avoided, constraints) == 99

    def test_conflict_with_placed_slot(self, scorer, make_slot):
        placed = [make_slot(teacher_id=8, subject_id="physics", class_id="SS2")]

        assert scorer.score_slot(make_slot(), ConstraintSet(), placed) == 90

    def test_floor_at_zero(self, scorer, make_slot):
        constraints = ConstraintSet(
            [
                TeacherAvailability(7, ["Fri-08:00"]),
                RoomCapacity(1, 10),
                SubjectRequirement("math", min_capacity=100),
            ]
        )
        placed = [make_slot(teacher_id=8, subject_id="physics", class_id="SS2")]

        assert scorer.score_slot(make_slot(), constraints, placed) == 0

    def test_custom_floor(self, make_slot):
        scorer = ConstraintScorer(ScoringConfig(min_score=-1000))
        constraints = ConstraintSet(
            [
                TeacherAvailability(7, ["Fri-08:00"]),
                RoomCapacity(1, 10),
                SubjectRequirement("math", min_capacity=100),
            ]
        )

        assert scorer.score_slot(make_slot(), constraints) == 0

    def test_conflict_with_undated_placed_slot(self, scorer, make_slot):
        """Test a dated candidate is penalised by an undated slot in the same cell"""
        monday = date(2025, 3, 3)
        candidate = make_slot(slot_date=monday, activity_date=monday)
        placed = [make_slot(subject_id="biology", class_id="SS2")]

        assert scorer.score_slot(candidate, ConstraintSet(), placed) == 90

    def test_class_sitting_two_exams_at_once(self, scorer, make_slot):
        constraints = ConstraintSet([ClassScheduleLoad("SS1")])
        placed = [make_slot(subject_id="physics", teacher_id=8, room=Room(2))]

        assert scorer.score_slot(make_slot(), constraints, placed) == 90

    def test_class_over_daily_limit(self, scorer, make_slot):
        constraints = ConstraintSet([ClassScheduleLoad("SS1", max_per_day=1)])
        placed = [make_slot(subject_id="physics", start="11:00", end="12:00")]

        assert scorer.score_slot(make_slot(), constraints, placed) == 90

    def test_learned_conflict_avoidance(self, scorer, make_slot):
        """Test a learned pair costs its weight when placed concurrently"""
        constraints = ConstraintSet([LearnedConflictAvoidance("SS1", "SS2", weight=3)])
        placed = [
            make_slot(subject_id="physics", class_id="SS2", teacher_id=8, room=Room(2))
        ]

        assert scorer.score_slot(make_slot(), constraints, placed) == 97
        later = make_slot(start="11:00", end="12:00")
        assert scorer.score_slot(later, constraints, placed) == 100

    @pytest.mark.parametrize(
        "entity_a,expected",
        [(7, 97), (("teacher", 7), 97), (("room", 7), 100)],
    )
    def test_tagged_conflict_pair_matches_only_its_kind(
        self, scorer, make_slot, entity_a, expected
    ):
        """Test a room-tagged id does not match a teacher with the same id"""
        constraints = ConstraintSet(
            [LearnedConflictAvoidance(entity_a, ("class", "SS3"), weight=3)]
        )
        placed = [
            make_slot(subject_id="physics", class_id="SS3", teacher_id=8, room=Room(2))
        ]

        assert scorer.score_slot(make_slot(teacher_id=7), constraints, placed) == expected

    def test_relevant_constraints(self, scorer, make_slot):
        constraints = ConstraintSet(
            [
                RoomCapacity(1, 30),
                RoomCapacity(2, 30),
                LearnedConflictAvoidance(7, 8),
                LearnedConflictAvoidance(5, 6),
            ]
        )

        relevant = scorer.relevant_constraints(make_slot(), constraints)

        assert relevant == [RoomCapacity(1, 30), LearnedConflictAvoidance(7, 8)]

    def test_score_timetable(self, scorer, make_slot):
        slots = [
            make_slot(),
            make_slot(teacher_id=8, subject_id="physics", class_id="SS2"),
        ]

        assert scorer.score_timetable(slots, ConstraintSet()) == 180


class TestDispatch:
    """Tests that unknown constraint objects are refused"""

    def test_slot_effect_rejects_unknown(self, scorer, make_slot):
        with pytest.raises(TypeError):
            scorer.slot_effect(object(), make_slot(), ())

    def test_satisfies_rejects_unknown(self, scorer):
        with pytest.raises(TypeError):
            scorer.satisfies("room_capacity", [])


class TestFitness:
    """Tests for timetable-level fitness"""

    def test_worked_example(self, scorer, make_slot):
        """Test -10 per conflict plus satisfied weight plus learned bonus"""
        timetable = Timetable(
            [
                make_slot(),
                make_slot(teacher_id=8, subject_id="physics", class_id="SS2"),
            ]
        )
        constraints = ConstraintSet(
            [
                RoomCapacity(1, 30),
                TeacherAvailability(8, ["Tue-08:00"]),
                LearnedTeacherPreference(
                    7, preferred_slots=["Mon-09:00"], confidence=4, weight=4
                ),
            ]
        )

        assert timetable.conflict_count == 1
        assert scorer.satisfied_weight(timetable, constraints) == 12
        assert scorer.learned_bonus(timetable, constraints) == 4
        assert scorer.fitness(timetable, constraints) == 6

    def test_empty_timetable(self, scorer):
        constraints = ConstraintSet([RoomCapacity(1, 30)])

        assert scorer.fitness(Timetable.empty(), constraints) == 8

    def test_constraint_status(self, scorer, make_slot):
        timetable = Timetable([make_slot(student_count=40)])
        constraints = ConstraintSet([RoomCapacity(1, 30), RoomCapacity(2, 10)])

        satisfied, unsatisfied = scorer.constraint_status(timetable, constraints)

        assert satisfied == [RoomCapacity(2, 10)]
        assert unsatisfied == [RoomCapacity(1, 30)]

    def test_class_load_satisfaction(self, scorer, make_slot):
        constraint = ClassScheduleLoad("SS1", max_per_day=2)
        ok = [make_slot(), make_slot(subject_id="bio", start="11:00", end="12:00")]
        too_many = ok + [make_slot(subject_id="chem", start="13:00", end="14:00")]

        assert scorer.satisfies(constraint, ok)
        assert not scorer.satisfies(constraint, too_many)

    def test_conflict_weight_is_configurable(self, make_slot):
        scorer = ConstraintScorer(conflict_weight=25)
        timetable = Timetable(
            [make_slot(), make_slot(teacher_id=8, subject_id="physics", class_id="SS2")]
        )

        assert scorer.fitness(timetable, ConstraintSet()) == -25

    def test_breakdown(self, scorer, make_slot):
        timetable = Timetable([make_slot()])

        assert scorer.breakdown(timetable, ConstraintSet([RoomCapacity(1, 30)])) == {
            "conflicts": 0,
            "satisfied_weight": 8,
            "learned_bonus": 0,
            "fitness": 8,
        }
