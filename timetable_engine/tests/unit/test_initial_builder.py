# timetable_engine/tests/unit/test_initial_builder.py

"""
Tests for the greedy initial placement.
"""

import pytest
from datetime import date

from timetable_engine.core.constraint_types import ConstraintSet, TeacherAvailability
from timetable_engine.core.problem_model import Activity, ExamDay, Period, Room, Teacher
from timetable_engine.core.solution import UnplaceableReason
from timetable_engine.scheduling.initial_builder import InitialScheduleBuilder, room_order


@pytest.fixture
def builder():
    return InitialScheduleBuilder()


class TestRoomOrder:
    def test_numeric_then_string_ids(self):
        rooms = [Room("lab"), Room(10), Room(2), Room("annex")]

        assert [r.id for r in room_order(rooms)] == [2, 10, "annex", "lab"]


class TestInitialScheduleBuilder:
    """Tests for InitialScheduleBuilder.build"""

    def test_ties_take_first_cell(self, builder, teachers, rooms, days, periods):
        """Test an unconstrained activity lands in the first day, period and room"""
        activity = Activity("midterm", "math", "SS1", student_count=25)

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        slot = timetable[0]
        assert slot.key == "Mon-08:00"
        assert slot.room_id == 1
        assert slot.teacher_id == 7
        assert slot.score == 100

    def test_same_teacher_moves_to_next_period(self, builder, teachers, rooms, days, periods):
        activities = [
            Activity("midterm", "math", "SS1", student_count=25),
            Activity("midterm", "math", "SS2", student_count=20),
        ]

        timetable = builder.build(activities, teachers, rooms, ConstraintSet(), days, periods)

        assert timetable[1].key == "Mon-09:00"
        assert timetable[1].room_id == 1
        assert timetable.conflict_count == 0

    def test_different_teacher_takes_second_room(self, builder, teachers, rooms, days, periods):
        activities = [
            Activity("midterm", "math", "SS1", student_count=25),
            Activity("midterm", "physics", "SS2", student_count=20),
        ]

        timetable = builder.build(activities, teachers, rooms, ConstraintSet(), days, periods)

        assert timetable[1].teacher_id == 8
        assert timetable[1].key == "Mon-08:00"
        assert timetable[1].room_id == 2

    def test_single_cell_forces_conflict(self, builder, teachers):
        """Test the builder still places when every option conflicts"""
        activities = [
            Activity("midterm", "math", "SS1"),
            Activity("midterm", "math", "SS2"),
        ]

        timetable = builder.build(
            activities,
            teachers,
            [Room(1, capacity=30)],
            ConstraintSet(),
            [ExamDay("Mon")],
            [Period("08:00", "09:00")],
        )

        assert len(timetable) == 2
        assert [c.pair for c in timetable.conflicts] == [(0, 1)]
        assert timetable[1].score == 90

    def test_availability_steers_placement(self, builder, teachers, rooms, days, periods):
        constraints = ConstraintSet([TeacherAvailability(7, ["Tue-10:00"])])
        activity = Activity("midterm", "math", "SS1")

        timetable = builder.build([activity], teachers, rooms, constraints, days, periods)

        assert timetable[0].key == "Tue-10:00"

    def test_unqualified_subject_is_unplaceable(self, builder, teachers, rooms, days, periods):
        activities = [
            Activity("midterm", "art", "SS1"),
            Activity("midterm", "math", "SS1"),
        ]

        timetable = builder.build(activities, teachers, rooms, ConstraintSet(), days, periods)

        assert len(timetable) == 1
        assert len(timetable.unplaceable) == 1
        assert timetable.unplaceable[0].reason is UnplaceableReason.NO_QUALIFIED_TEACHER
        assert timetable.unplaceable[0].activity.subject_id == "art"

    def test_preassigned_teacher_is_used(self, builder, teachers, rooms, days, periods):
        activity = Activity("midterm", "math", "SS1", teacher_id=8)

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        assert timetable[0].teacher_id == 8

    def test_unknown_preassigned_teacher_is_unplaceable(
        self, builder, teachers, rooms, days, periods
    ):
        activity = Activity("midterm", "math", "SS1", teacher_id=99)

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        assert len(timetable) == 0
        assert timetable.unplaceable[0].reason is UnplaceableReason.NO_QUALIFIED_TEACHER

    def test_fixed_date_on_dated_days(self, builder, teachers, rooms, periods):
        dated = [ExamDay("Mon", date(2025, 3, 3)), ExamDay("Tue", date(2025, 3, 4))]
        activity = Activity("midterm", "math", "SS1", date=date(2025, 3, 4))

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), dated, periods)

        assert timetable[0].day == "Tue"
        assert timetable[0].date == date(2025, 3, 4)

    def test_fixed_date_on_weekday_grid(self, builder, teachers, rooms, days, periods):
        """Test an undated grid matches the exam date by weekday"""
        activity = Activity("midterm", "math", "SS1", date=date(2025, 3, 4))

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        assert timetable[0].key == "Tue-08:00"
        assert timetable[0].date == date(2025, 3, 4)

    def test_no_cell_long_enough(self, builder, teachers, rooms, days, periods):
        activity = Activity("midterm", "math", "SS1", duration_minutes=120)

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        assert len(timetable) == 0
        assert timetable.unplaceable[0].reason is UnplaceableReason.NO_CANDIDATE_SLOT

    def test_date_outside_grid(self, builder, teachers, rooms, days, periods):
        """Test a Saturday exam has no cell on a Mon/Tue grid"""
        activity = Activity("midterm", "math", "SS1", date=date(2025, 3, 8))

        timetable = builder.build([activity], teachers, rooms, ConstraintSet(), days, periods)

        assert timetable.unplaceable[0].reason is UnplaceableReason.NO_CANDIDATE_SLOT

    def test_candidate_cells(self, builder, days, periods):
        activity = Activity("midterm", "math", "SS1")

        cells = builder.candidate_cells(activity, days, periods)

        assert len(cells) == len(days) * len(periods)
        assert cells[0] == (days[0], periods[0])
        assert cells[1] == (days[0], periods[1])

    def test_deterministic(self, builder, teachers, rooms, days, periods, activities):
        first = builder.build(activities, teachers, rooms, ConstraintSet(), days, periods)
        second = builder.build(activities, teachers, rooms, ConstraintSet(), days, periods)

        assert first == second
