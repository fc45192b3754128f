# timetable_engine/constraints/constraint_builder.py

"""
Builds the constraint set for a run from entity snapshots and a learning
store snapshot.
"""

from typing import Dict, Iterable, List, Optional, TYPE_CHECKING
import logging

from ..config import LearningConfig
from ..core.constraint_types import (
    ClassScheduleLoad,
    Constraint,
    ConstraintSet,
    LearnedConflictAvoidance,
    LearnedTeacherPreference,
    RoomCapacity,
    SubjectRequirement,
    TeacherAvailability,
)
from ..core.problem_model import Activity, Room, Subject, Teacher

if TYPE_CHECKING:
    from ..learning.learning_store import LearningSnapshot

logger = logging.getLogger(__name__)


def build_constraints(
    teachers: Iterable[Teacher],
    rooms: Iterable[Room],
    subjects: Iterable[Subject] = (),
    activities: Iterable[Activity] = (),
    weights: Optional[Dict[str, float]] = None,
    max_exams_per_day: int = 2,
) -> List[Constraint]:
    """Hard rules implied by the entities themselves."""
    weights = weights or {}
    constraints: List[Constraint] = []

    for teacher in teachers:
        if teacher.availability is not None:
            constraints.append(
                TeacherAvailability(
                    teacher.id,
                    teacher.availability,
                    weight=weights.get("teacher_availability", 10.0),
                )
            )

    for room in rooms:
        constraints.append(
            RoomCapacity(
                room.id, room.capacity, weight=weights.get("room_capacity", 8.0)
            )
        )

    for subject in subjects:
        if subject.has_requirements:
            constraints.append(
                SubjectRequirement(
                    subject.id,
                    room_type=subject.room_type,
                    min_capacity=subject.min_capacity,
                    weight=weights.get("subject_requirement", 7.0),
                )
            )

    seen_classes = []
    for activity in activities:
        if activity.class_id not in seen_classes:
            seen_classes.append(activity.class_id)
    for class_id in seen_classes:
        constraints.append(
            ClassScheduleLoad(
                class_id,
                max_per_day=max_exams_per_day,
                weight=weights.get("class_schedule_load", 9.0),
            )
        )

    logger.debug(f"Built {len(constraints)} entity constraints")
    return constraints


def apply_learned_patterns(
    constraints: Iterable[Constraint],
    snapshot: "LearningSnapshot",
    learning_config: Optional[LearningConfig] = None,
) -> ConstraintSet:
    """Append learned teacher preferences and conflict pairs to ``constraints``."""
    learning_config = learning_config or LearningConfig()
    enhanced = list(constraints)

    for teacher_id, pattern in snapshot.patterns.items():
        if not pattern.preferred_slots and not pattern.avoided_slots:
            continue
        enhanced.append(
            LearnedTeacherPreference(
                teacher_id,
                preferred_slots=pattern.preferred_slots,
                avoided_slots=pattern.avoided_slots,
                confidence=pattern.confidence,
                weight=float(
                    pattern.confidence or learning_config.default_preference_weight
                ),
            )
        )

    for (entity_a, entity_b), weight in snapshot.conflict_weights.items():
        if weight > 0:
            enhanced.append(LearnedConflictAvoidance(entity_a, entity_b, weight=weight))

    logger.debug(
        f"Applied {len(snapshot.patterns)} learned patterns and "
        f"{len(snapshot.conflict_weights)} conflict weights"
    )
    return ConstraintSet(enhanced)
