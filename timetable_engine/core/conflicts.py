# timetable_engine/core/conflicts.py

"""
Conflict detection over schedule slots.

Pure functions: no logging of results and no errors for ordinary input.
Two slots conflict when they fall on the same day, their intervals overlap
and they share a room, a teacher or an (exam, subject) pair. Dates only tell
two slots apart when both carry one; otherwise the grid day decides.
"""

from typing import Dict, List, Iterable, Sequence, Tuple, Union
from dataclasses import dataclass, field
from collections import Counter

from .problem_model import TimeSlot
from .solution import Conflict, ConflictKind, ScheduleSlot, Timetable


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """Half-open interval intersection on the same day.

    Back-to-back slots (``a.end == b.start``) do not overlap, and an empty
    slot overlaps nothing, including itself.
    """
    if a.day != b.day or a.is_empty or b.is_empty:
        return False
    return a.start < b.end and b.start < a.end


def same_date(a: ScheduleSlot, b: ScheduleSlot) -> bool:
    """False only when both slots are dated and the dates differ."""
    return a.date is None or b.date is None or a.date == b.date


def concurrent(a: ScheduleSlot, b: ScheduleSlot) -> bool:
    return same_date(a, b) and overlaps(a.timeslot, b.timeslot)


def conflict_kinds(a: ScheduleSlot, b: ScheduleSlot) -> Tuple[ConflictKind, ...]:
    """Exclusivity rules violated by placing ``a`` and ``b`` together."""
    if not concurrent(a, b):
        return ()
    kinds = []
    if a.room.id == b.room.id:
        kinds.append(ConflictKind.ROOM)
    if a.teacher_id == b.teacher_id:
        kinds.append(ConflictKind.TEACHER)
    if a.exam_id == b.exam_id and a.subject_id == b.subject_id:
        kinds.append(ConflictKind.EXAM_SUBJECT)
    return tuple(kinds)


def _slots_of(source: Union[Timetable, Sequence[ScheduleSlot]]) -> Sequence[ScheduleSlot]:
    if isinstance(source, Timetable):
        return source.slots
    return source


def find_conflicts(source: Union[Timetable, Sequence[ScheduleSlot]]) -> List[Conflict]:
    """Every conflicting pair ``(i, j)`` with ``i < j``, ordered by ``i`` then ``j``."""
    slots = _slots_of(source)
    conflicts = []
    for i in range(len(slots)):
        for j in range(i + 1, len(slots)):
            kinds = conflict_kinds(slots[i], slots[j])
            if kinds:
                conflicts.append(Conflict(i, j, slots[i], slots[j], kinds))
    return conflicts


def conflicts_with(
    candidate: ScheduleSlot, placed: Iterable[ScheduleSlot]
) -> List[Conflict]:
    """Conflicts between a candidate (index -1) and already placed slots."""
    conflicts = []
    for index, slot in enumerate(placed):
        kinds = conflict_kinds(candidate, slot)
        if kinds:
            conflicts.append(Conflict(-1, index, candidate, slot, kinds))
    return conflicts


def check_conflicts(
    candidate: ScheduleSlot, timetable: Union[Timetable, Sequence[ScheduleSlot]]
) -> List[Conflict]:
    """Pre-flight check of a single manual edit against an existing timetable."""
    return conflicts_with(candidate, _slots_of(timetable))


def conflict_breakdown(conflicts: Iterable[Conflict]) -> Dict[str, int]:
    counts = Counter()
    for conflict in conflicts:
        for kind in conflict.kinds:
            counts[kind.value] += 1
    return {kind.value: counts.get(kind.value, 0) for kind in ConflictKind}


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def validate_timetable(
    timetable: Union[Timetable, Sequence[ScheduleSlot]],
    max_teacher_slots_per_day: int = 8,
) -> ValidationResult:
    """Human-readable validation: conflicts and date mismatches are errors,
    repeated subjects and overloaded teachers are warnings."""
    slots = _slots_of(timetable)
    result = ValidationResult()

    for conflict in find_conflicts(slots):
        result.errors.append(conflict.describe())

    for index, slot in enumerate(slots):
        if slot.timeslot.is_empty:
            result.errors.append(f"Slot {index} has an empty time interval")
        fixed = slot.activity.date
        if fixed is not None and slot.date is not None and slot.date != fixed:
            result.errors.append(
                f"Slot {index} is on {slot.date.isoformat()} but its exam is "
                f"fixed to {fixed.isoformat()}"
            )

    dated = all(s.date is not None for s in slots)

    def day_of(slot: ScheduleSlot):
        return (slot.date if dated else None, slot.day)

    subject_days = Counter((s.class_id, s.subject_id) + day_of(s) for s in slots)
    for (class_id, subject_id, _, day), count in sorted(
        subject_days.items(), key=lambda item: str(item[0])
    ):
        if count > 1:
            result.warnings.append(
                f"Class {class_id} sits subject {subject_id} {count} times on {day}"
            )

    teacher_days = Counter((s.teacher_id,) + day_of(s) for s in slots)
    for (teacher_id, _, day), count in sorted(
        teacher_days.items(), key=lambda item: str(item[0])
    ):
        if count > max_teacher_slots_per_day:
            result.warnings.append(
                f"Teacher {teacher_id} has {count} sittings on {day} "
                f"(limit {max_teacher_slots_per_day})"
            )

    result.is_valid = not result.errors
    return result
