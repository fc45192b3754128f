# timetable_engine/tests/unit/test_constraint_builder.py

"""
Tests for building constraint sets from entities and learned state.
"""

from timetable_engine.constraints.constraint_builder import (
    apply_learned_patterns,
    build_constraints,
)
from timetable_engine.core.constraint_types import (
    ClassScheduleLoad,
    ConstraintKind,
    LearnedConflictAvoidance,
    RoomCapacity,
    SubjectRequirement,
    TeacherAvailability,
)
from timetable_engine.core.problem_model import Activity, Room, Subject, Teacher
from timetable_engine.learning.learning_store import LearningSnapshot, LearningStore


class TestBuildConstraints:
    """Tests for entity-derived constraints"""

    def test_builds_each_kind(self):
        teachers = [
            Teacher(7, availability=["Mon-09:00"]),
            Teacher(8),
        ]
        rooms = [Room(1, capacity=30), Room(2, capacity=40)]
        subjects = [Subject("chem", room_type="lab"), Subject("math")]
        activities = [
            Activity("midterm", "chem", "SS1"),
            Activity("midterm", "math", "SS2"),
            Activity("midterm", "math", "SS1"),
        ]

        constraints = build_constraints(teachers, rooms, subjects, activities)

        assert constraints == [
            TeacherAvailability(7, ["Mon-09:00"]),
            RoomCapacity(1, 30),
            RoomCapacity(2, 40),
            SubjectRequirement("chem", room_type="lab"),
            ClassScheduleLoad("SS1"),
            ClassScheduleLoad("SS2"),
        ]

    def test_weights_and_daily_limit(self):
        constraints = build_constraints(
            [],
            [Room(1, capacity=30)],
            activities=[Activity("midterm", "math", "SS1")],
            weights={"room_capacity": 2.0, "class_schedule_load": 4.0},
            max_exams_per_day=3,
        )

        assert constraints[0].weight == 2.0
        assert constraints[1] == ClassScheduleLoad("SS1", max_per_day=3, weight=4.0)


class TestApplyLearnedPatterns:
    """Tests for merging a learning snapshot"""

    def test_empty_snapshot_adds_nothing(self):
        constraint_set = apply_learned_patterns(
            [RoomCapacity(1, 30)], LearningSnapshot.empty()
        )

        assert len(constraint_set) == 1

    def test_learned_state_becomes_constraints(self):
        store = LearningStore()
        store.submit_feedback(
            [
                {
                    "type": "teacher_preference",
                    "teacherId": 7,
                    "oldSlot": "Mon-09:00",
                    "newSlot": "Mon-11:00",
                },
                {"type": "conflict_avoidance", "entityA": "SS2", "entityB": "SS1"},
            ]
        )

        constraint_set = apply_learned_patterns([], store.snapshot())

        preferences = constraint_set.of_kind(ConstraintKind.LEARNED_TEACHER_PREFERENCE)
        assert len(preferences) == 1
        assert preferences[0].preferred_slots == ("Mon-11:00",)
        assert preferences[0].avoided_slots == ("Mon-09:00",)
        assert preferences[0].confidence == 1
        assert preferences[0].weight == 1.0
        assert constraint_set.of_kind(ConstraintKind.LEARNED_CONFLICT_AVOIDANCE) == (
            LearnedConflictAvoidance("SS1", "SS2", weight=1.0),
        )
