# timetable_engine/tests/unit/test_metrics.py

"""
Tests for QualityReporter and QualityReport.
"""

import pytest

from timetable_engine.core.constraint_types import (
    ConstraintSet,
    LearnedTeacherPreference,
    RoomCapacity,
)
from timetable_engine.core.metrics import QualityReporter, time_of_day
from timetable_engine.core.problem_model import Activity, Room
from timetable_engine.core.solution import Timetable, UnplaceableActivity, UnplaceableReason


@pytest.fixture
def reporter():
    return QualityReporter()


class TestOverallScore:
    """Tests for the 0-100 quality score"""

    def test_empty_timetable_scores_full(self, reporter):
        report = reporter.report(Timetable.empty(), ConstraintSet())

        assert report.overall == 100
        assert report.conflicts == 0
        assert report.is_conflict_free

    def test_conflict_costs_ten(self, reporter, make_slot):
        timetable = Timetable(
            [make_slot(), make_slot(teacher_id=8, subject_id="physics", class_id="SS2")]
        )

        report = reporter.report(timetable, ConstraintSet())

        assert report.overall == 90
        assert report.conflicts == 1
        assert report.conflict_breakdown == {"room": 1, "teacher": 0, "exam_subject": 0}

    def test_unsatisfied_constraint_costs_its_weight(self, reporter, make_slot):
        timetable = Timetable([make_slot(student_count=40)])

        report = reporter.report(timetable, ConstraintSet([RoomCapacity(1, 30)]))

        assert report.overall == 92
        assert report.constraint_satisfaction == -8
        assert report.satisfaction_rate == 0.0
        assert report.unsatisfied_constraints == [
            {"type": "room_capacity", "entity": 1, "weight": 8.0}
        ]

    def test_preferred_slots_capped_at_hundred(self, reporter, make_slot):
        constraints = ConstraintSet(
            [LearnedTeacherPreference(7, preferred_slots=["Mon-09:00"], confidence=1)]
        )

        report = reporter.report(Timetable([make_slot()]), constraints)

        assert report.optimization_score == 10
        assert report.overall == 100

    def test_avoided_slots_lower_the_score(self, reporter, make_slot):
        constraints = ConstraintSet(
            [
                LearnedTeacherPreference(
                    7, avoided_slots=["Mon-09:00"], confidence=1, weight=3
                )
            ]
        )

        report = reporter.report(Timetable([make_slot()]), constraints)

        assert report.optimization_score == -10
        assert report.overall == 87

    def test_partial_alignment(self, reporter, make_slot):
        constraints = ConstraintSet(
            [LearnedTeacherPreference(7, preferred_slots=["Mon-09:00"], confidence=2)]
        )
        timetable = Timetable(
            [make_slot(), make_slot(subject_id="bio", start="11:00", end="12:00")]
        )

        assert reporter.optimization_score(timetable, constraints) == 5

    def test_score_never_negative(self, reporter, make_slot):
        slots = [make_slot(class_id=f"C{i}") for i in range(6)]

        report = reporter.report(Timetable(slots), ConstraintSet())

        assert report.conflicts == 15
        assert report.overall == 0

    def test_report_is_repeatable(self, reporter, make_slot):
        timetable = Timetable([make_slot(), make_slot(class_id="SS2")])
        constraints = ConstraintSet([RoomCapacity(1, 30)])

        first = reporter.report(timetable, constraints)
        second = reporter.report(timetable, constraints)

        assert first == second


class TestDistributions:
    """Tests for the breakdown tables"""

    def test_distributions(self, reporter, make_slot):
        timetable = Timetable(
            [
                make_slot(start="08:00", end="09:00"),
                make_slot(subject_id="bio", start="13:00", end="15:00", room=Room(2)),
                make_slot(subject_id="chem", day="Tue", start="17:00", end="18:00"),
            ],
            [
                UnplaceableActivity(
                    Activity("midterm", "art", "SS1"),
                    UnplaceableReason.NO_QUALIFIED_TEACHER,
                )
            ],
        )

        report = reporter.report(timetable, ConstraintSet())

        assert report.scheduled_count == 3
        assert report.unplaceable_count == 1
        assert report.time_slot_analysis == {"morning": 1, "afternoon": 1, "evening": 1}
        assert report.day_distribution == {"Mon": 2, "Tue": 1}
        assert report.subject_distribution == {"math": 1, "bio": 1, "chem": 1}
        assert report.exam_distribution == {"midterm": 3}
        assert report.room_utilization[1] == {
            "total_exams": 2,
            "total_hours": 2.0,
            "average_hours_per_exam": 1.0,
        }
        assert report.room_utilization[2]["total_hours"] == 2.0
        assert report.teacher_workload == {7: {"Mon": 2, "Tue": 1}}
        assert report.slot_distribution["Tue-17:00"] == 1

    def test_to_dict_and_summary(self, reporter, make_slot):
        report = reporter.report(Timetable([make_slot()]), ConstraintSet([RoomCapacity(1, 30)]))

        data = report.to_dict()
        summary = report.summary()

        assert data["overall"] == 100
        assert data["satisfied_weight"] == 8
        assert "Overall quality: 100.0/100" in summary
        assert "Conflicts: 0" in summary

    @pytest.mark.parametrize(
        "hour,label", [(8, "morning"), (11, "morning"), (12, "afternoon"), (16, "afternoon"), (17, "evening")]
    )
    def test_time_of_day(self, hour, label):
        assert time_of_day(hour) == label
