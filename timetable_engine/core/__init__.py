# timetable_engine/core/__init__.py

"""
Core module for timetable data structures, conflict detection and metrics
"""

from .problem_model import (
    Activity,
    Exam,
    ExamDay,
    Period,
    Room,
    SchoolClass,
    Subject,
    Teacher,
    TimeSlot,
    activities_for_exam,
    dated_days,
    default_days,
    default_periods,
)
from .constraint_types import (
    ClassScheduleLoad,
    Constraint,
    ConstraintKind,
    ConstraintSet,
    LearnedConflictAvoidance,
    LearnedTeacherPreference,
    RoomCapacity,
    SubjectRequirement,
    TeacherAvailability,
)
from .solution import (
    Conflict,
    ConflictKind,
    ScheduleSlot,
    Timetable,
    UnplaceableActivity,
    UnplaceableReason,
)
from .conflicts import (
    check_conflicts,
    find_conflicts,
    overlaps,
    validate_timetable,
    ValidationResult,
)
from .metrics import QualityReport, QualityReporter

__all__ = [
    # Problem model
    "Activity",
    "Exam",
    "ExamDay",
    "Period",
    "Room",
    "SchoolClass",
    "Subject",
    "Teacher",
    "TimeSlot",
    "activities_for_exam",
    "dated_days",
    "default_days",
    "default_periods",
    # Constraint types
    "ClassScheduleLoad",
    "Constraint",
    "ConstraintKind",
    "ConstraintSet",
    "LearnedConflictAvoidance",
    "LearnedTeacherPreference",
    "RoomCapacity",
    "SubjectRequirement",
    "TeacherAvailability",
    # Solution model
    "Conflict",
    "ConflictKind",
    "ScheduleSlot",
    "Timetable",
    "UnplaceableActivity",
    "UnplaceableReason",
    # Conflicts and metrics
    "check_conflicts",
    "find_conflicts",
    "overlaps",
    "validate_timetable",
    "ValidationResult",
    "QualityReport",
    "QualityReporter",
]
