# timetable_engine/scheduling/initial_builder.py

"""
Greedy constraint-satisfaction pass producing the seed timetable.

Activities are placed one at a time in the order given. Each one takes the
highest scoring (day, period, room) cell given everything placed before it;
ties keep the first cell found in day, period, room-id order.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from ..constraints.scorer import ConstraintScorer
from ..core.constraint_types import ConstraintSet
from ..core.problem_model import Activity, ExamDay, Period, Room, Teacher, EntityId
from ..core.solution import (
    ScheduleSlot,
    Timetable,
    UnplaceableActivity,
    UnplaceableReason,
)

logger = logging.getLogger(__name__)


def room_order(rooms: Iterable[Room]) -> List[Room]:
    """Rooms by ascending id; string ids sort after numeric ones."""
    return sorted(rooms, key=lambda room: (isinstance(room.id, str), room.id))


class InitialScheduleBuilder:
    def __init__(self, scorer: Optional[ConstraintScorer] = None):
        self.scorer = scorer or ConstraintScorer()

    def build(
        self,
        activities: Sequence[Activity],
        teachers: Sequence[Teacher],
        rooms: Sequence[Room],
        constraints: ConstraintSet,
        days: Sequence[ExamDay],
        periods: Sequence[Period],
    ) -> Timetable:
        ordered_rooms = room_order(rooms)
        teachers_by_id: Dict[EntityId, Teacher] = {t.id: t for t in teachers}
        placed: List[ScheduleSlot] = []
        unplaceable: List[UnplaceableActivity] = []

        for activity in activities:
            teacher = self._teacher_for(activity, teachers, teachers_by_id)
            if teacher is None:
                logger.warning(
                    f"No qualified teacher for subject {activity.subject_id} "
                    f"(exam {activity.exam_id}, class {activity.class_id})"
                )
                unplaceable.append(
                    UnplaceableActivity(
                        activity,
                        UnplaceableReason.NO_QUALIFIED_TEACHER,
                        f"no teacher qualified for subject {activity.subject_id}",
                    )
                )
                continue

            best = self._best_slot(
                activity, teacher, ordered_rooms, constraints, days, periods, placed
            )
            if best is None:
                logger.warning(
                    f"No candidate cell for exam {activity.exam_id}, "
                    f"subject {activity.subject_id}, class {activity.class_id}"
                )
                unplaceable.append(
                    UnplaceableActivity(
                        activity,
                        UnplaceableReason.NO_CANDIDATE_SLOT,
                        "no grid cell matches the exam date and duration",
                    )
                )
                continue
            placed.append(best)

        logger.info(
            f"Initial build placed {len(placed)} of {len(activities)} activities "
            f"({len(unplaceable)} unplaceable)"
        )
        return Timetable(placed, unplaceable)

    def _teacher_for(
        self,
        activity: Activity,
        teachers: Sequence[Teacher],
        teachers_by_id: Dict[EntityId, Teacher],
    ) -> Optional[Teacher]:
        if activity.teacher_id is not None:
            return teachers_by_id.get(activity.teacher_id)
        for teacher in teachers:
            if teacher.can_teach(activity.subject_id):
                return teacher
        return None

    def candidate_cells(
        self,
        activity: Activity,
        days: Sequence[ExamDay],
        periods: Sequence[Period],
    ) -> List[Tuple[ExamDay, Period]]:
        if activity.date is not None:
            days = [day for day in days if day.matches(activity.date)]
        usable = [p for p in periods if activity.fits(p)]
        return [(day, period) for day in days for period in usable]

    def _best_slot(
        self,
        activity: Activity,
        teacher: Teacher,
        rooms: Sequence[Room],
        constraints: ConstraintSet,
        days: Sequence[ExamDay],
        periods: Sequence[Period],
        placed: Sequence[ScheduleSlot],
    ) -> Optional[ScheduleSlot]:
        best: Optional[ScheduleSlot] = None
        best_score = float("-inf")
        for day, period in self.candidate_cells(activity, days, periods):
            slot_date = activity.date if activity.date is not None else day.date
            timeslot = period.on(day.name)
            for room in rooms:
                candidate = ScheduleSlot(activity, teacher.id, room, timeslot, slot_date)
                score = self.scorer.score_slot(candidate, constraints, placed)
                if score > best_score:
                    best, best_score = candidate, score
        if best is None:
            return None
        return replace(best, score=best_score)
