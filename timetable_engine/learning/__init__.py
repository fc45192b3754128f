# timetable_engine/learning/__init__.py

from .corrections import (
    ConflictAvoidanceCorrection,
    ConstraintViolationCorrection,
    Correction,
    TeacherPreferenceCorrection,
    parse_correction,
    parse_corrections,
)
from .learning_store import (
    FeedbackRecord,
    LearnedPattern,
    LearningSnapshot,
    LearningStore,
    improvement_rate,
)

__all__ = [
    "ConflictAvoidanceCorrection",
    "ConstraintViolationCorrection",
    "Correction",
    "TeacherPreferenceCorrection",
    "parse_correction",
    "parse_corrections",
    "FeedbackRecord",
    "LearnedPattern",
    "LearningSnapshot",
    "LearningStore",
    "improvement_rate",
]
