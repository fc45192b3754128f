# timetable_engine/__init__.py

"""
Timetable Engine Package Initialization

Schedules exam sittings onto rooms, time slots and invigilating teachers:
greedy constraint-scored placement, genetic refinement, quality reporting and
a learning store that biases later runs from human corrections.
"""

from .config import (
    SchedulingEngineConfig,
    EngineSettings,
    config,
    get_logger,
)
from .exceptions import SchedulingEngineError, InputError, FeedbackError
from .core import (
    Activity,
    ExamDay,
    Period,
    Room,
    Subject,
    Teacher,
    TimeSlot,
    ScheduleSlot,
    Timetable,
    Conflict,
    ConstraintSet,
    QualityReport,
    QualityReporter,
    check_conflicts,
    find_conflicts,
    overlaps,
)
from .learning import LearningStore, FeedbackRecord, LearnedPattern
from .engine import TimetableEngine, GenerateOptions, GenerationResult

__version__ = "1.0.0"

# Package-level exports
__all__ = [
    # Configuration
    "SchedulingEngineConfig",
    "EngineSettings",
    "config",
    "get_logger",
    # Errors
    "SchedulingEngineError",
    "InputError",
    "FeedbackError",
    # Core components
    "Activity",
    "ExamDay",
    "Period",
    "Room",
    "Subject",
    "Teacher",
    "TimeSlot",
    "ScheduleSlot",
    "Timetable",
    "Conflict",
    "ConstraintSet",
    "QualityReport",
    "QualityReporter",
    "check_conflicts",
    "find_conflicts",
    "overlaps",
    # Learning
    "LearningStore",
    "FeedbackRecord",
    "LearnedPattern",
    # Engine
    "TimetableEngine",
    "GenerateOptions",
    "GenerationResult",
]

# Initialize package-level logger
logger = get_logger("main")
logger.debug(f"Timetable Engine v{__version__} initialized")
